"""Error taxonomy raised by the Moneytree LINK client."""
from __future__ import annotations

from typing import Any, Dict, Optional


class MoneytreeError(Exception):
    """Base class for every error raised by the client."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(MoneytreeError):
    """Raised when the client is built from a missing or incomplete config."""


class TransportError(MoneytreeError):
    """Raised when the request never produced an HTTP response."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message, {"url": url} if url else None)
        self.url = url


class DecodeError(MoneytreeError):
    """Raised when a successful response body is not the expected JSON."""

    def __init__(self, message: str, url: Optional[str] = None, raw_message: str = ""):
        super().__init__(message, {"url": url, "raw_message": raw_message})
        self.url = url
        self.raw_message = raw_message


class APIError(MoneytreeError):
    """
    Raised for any non-2xx response.

    ``error_type`` and ``error_description`` mirror the ``error`` and
    ``error_description`` fields of the upstream envelope. When the body could
    not be decoded, ``error_type`` is None and ``error_description`` holds a
    message produced by the client; ``raw_message`` always keeps the body.
    """

    def __init__(
        self,
        status_code: int,
        error_type: Optional[str] = None,
        error_description: Optional[str] = None,
        raw_message: str = "",
        url: Optional[str] = None,
    ):
        self.status_code = status_code
        self.error_type = error_type
        self.error_description = error_description
        self.raw_message = raw_message
        self.url = url
        super().__init__(
            self._render(),
            {
                "status_code": status_code,
                "error": error_type,
                "error_description": error_description,
                "url": url,
            },
        )

    def _render(self) -> str:
        if self.error_description:
            if self.error_type:
                return f"{self.status_code}: {self.error_type} - {self.error_description}"
            return f"{self.status_code}: {self.error_description}"
        if self.error_type:
            return f"{self.status_code}: {self.error_type}"
        return str(self.status_code)

    def __str__(self) -> str:
        return self._render()
