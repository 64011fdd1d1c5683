# -*- coding: UTF-8 -*-
"""
@File ：__init__.py
@IDE ：PyCharm
@Author ：zhanzhicai
@Date ：2025/11/5 10:02
@DOC: Download access package

Short-lived, single-document download tokens for extracted certificates.
"""
