# -*- coding: UTF-8 -*-
"""
@File ：__init__.py
@IDE ：PyCharm
@Author ：zhanzhicai
@Date ：2025/11/4 18:07
@DOC: Ingestion package

Turns "a new file appeared in storage" into a verified certificate record:
- keys.py: idempotency key derivation
- events.py: storage notification parsing
- normalization.py: extraction output normalization
- orchestrator.py: the per-document state machine
"""
