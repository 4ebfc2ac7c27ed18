"""
core/errors.py

Exception hierarchy for the CRM console.

    CrmError
    ├── ApiError            non-2xx response (status + parsed body)
    ├── NetworkError        transport failure, no response received
    └── AuthenticationError login succeeded at HTTP level but yielded no credential

Callers distinguish API error kinds by ``ApiError.status``.
"""

from __future__ import annotations

from typing import Any, Optional


class CrmError(Exception):
    """Base class for all CRM console errors."""


class ApiError(CrmError):
    """Raised for any non-2xx API response."""

    def __init__(self, status: int, body: Any = None, *, method: Optional[str] = None, url: Optional[str] = None):
        super().__init__(f"API Error {status}")
        self.status = status
        self.body = body
        self.method = method
        self.url = url


class NetworkError(CrmError):
    """Raised when the request never produced a response."""

    def __init__(self, method: str, url: str, cause: BaseException):
        super().__init__(f"{method} {url} failed: {cause}")
        self.method = method
        self.url = url
        self.cause = cause


class AuthenticationError(CrmError):
    """Raised when login returns no usable credential."""
