"""Exceptions shared across fetch and storage stages."""

from __future__ import annotations


class ConfigurationError(Exception):
    """Raised at startup when a required setting is missing or unusable."""


class NetworkError(Exception):
    """Raised when an upstream or storage endpoint answers with a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None, url: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class AuthExpiredError(NetworkError):
    """Raised when a bearer credential is rejected even after a refresh."""


class StorageError(Exception):
    """Raised when a write target rejects a batch."""

    def __init__(self, status_code: int | None, body: str) -> None:
        super().__init__(f"{status_code}: {body}")
        self.status_code = status_code
        self.body = body
