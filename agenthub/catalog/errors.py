# -*- coding: utf-8 -*-
"""
Catalog Errors - Exception hierarchy for catalog operations.

Author
------
Agent Hub contributors

License
-------
MIT License
Copyright (c) 2026 Agent Hub contributors
See LICENSE file for full text.

Created
-------
2026-09-14

Modified
--------
2026-10-02
"""

from typing import Optional


class CatalogError(Exception):
    """Base error for catalog, search, update and install operations."""
    pass


class NetworkError(CatalogError):
    """Transport failure or server (5xx) error after retries ran out."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class HttpClientError(CatalogError):
    """HTTP 4xx response. Never retried."""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class ValidationError(CatalogError):
    """Malformed manifest, stored row or request."""
    pass


class InvalidUrl(ValidationError):
    """URL without a usable scheme or host."""
    pass


class NotFoundError(CatalogError):
    """Catalog, artifact or installation does not exist."""
    pass


class AuthResolutionError(CatalogError):
    """A secret or environment reference could not be resolved."""
    pass


class FilesystemError(CatalogError):
    """Install or uninstall I/O failure."""
    pass


class StoreError(CatalogError):
    """Database transaction failure. The transaction was rolled back."""
    pass
