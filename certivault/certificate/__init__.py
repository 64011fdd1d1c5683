# -*- coding: UTF-8 -*-
"""
@File ：__init__.py
@IDE ：PyCharm
@Author ：zhanzhicai
@Date ：2025/10/29 17:31
@DOC: Certificate package

- repository.py: the metadata store (records and processing log)
- service.py: read-only query and download service
- routes.py: REST endpoints under /certificates
"""
