# -*- coding: UTF-8 -*-
"""
@File ：exceptions.py
@IDE ：PyCharm
@Author ：zhanzhicai
@Date ：2025/10/31 17:54
@DOC: Exception types

HTTP-facing exceptions are rendered by FastAPI directly. Pipeline exceptions
classify extraction failures as retryable or terminal.
"""

from fastapi import HTTPException, status


class NotFoundException(HTTPException):
    """
    404 resource not found
    """
    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)

class AlreadyExistsException(HTTPException):
    """
    409 unique constraint violated
    """
    def __init__(self, detail: str = "Resource already exists"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)

class NotReadyException(HTTPException):
    """
    409 certificate has not finished extraction
    """
    def __init__(self, detail: str = "Certificate is not ready"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)

class ConflictException(HTTPException):
    """
    409 request conflicts with the current state
    """
    def __init__(self, detail: str = "Request conflicts with current state"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)

class BadRequestException(HTTPException):
    """
    400 invalid request
    """
    def __init__(self, detail: str = "Invalid request"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

class ForbiddenException(HTTPException):
    """
    403 forbidden
    """
    def __init__(self, detail: str = "Access denied"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)

class GoneException(HTTPException):
    """
    410 expired link
    """
    def __init__(self, detail: str = "Link has expired"):
        super().__init__(status_code=status.HTTP_410_GONE, detail=detail)


class ExtractionError(Exception):
    """Base class for failures while turning a document into a record."""


class TransientExtractionError(ExtractionError):
    """Timeouts, rate limits and transport errors. Retried with backoff."""


class PermanentExtractionError(ExtractionError):
    """Malformed documents, missing required fields, unrecoverable analyzer errors."""


class InvalidStatusTransition(ValueError):
    """Raised when a caller asks the store for a transition the status table forbids."""
