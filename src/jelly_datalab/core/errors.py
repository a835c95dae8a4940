"""Error kinds raised by the query core and its providers.

Hierarchy:
    DataLabError
    ├── ConfigurationError      (also ValueError)
    ├── InvalidQueryError       (also ValueError)
    ├── StoreClosedError
    └── ProviderError
        ├── ApiRequestFailed
        └── MalformedResponse

Nothing in the core retries or recovers from these; they propagate to the
immediate caller.
"""

from __future__ import annotations

from typing import Optional


class DataLabError(Exception):
    """Base class for all package errors."""


class ConfigurationError(DataLabError, ValueError):
    """Dataset configuration is invalid or does not cover a query."""


class InvalidQueryError(DataLabError, ValueError):
    """A query or its raw parameters violate the query model."""


class StoreClosedError(DataLabError):
    """The row store handle was used outside its open scope."""


class ProviderError(DataLabError):
    """A provider could not produce a result."""


class ApiRequestFailed(ProviderError):
    """The remote API could not be reached or answered with a non-2xx status.

    Attributes:
        status_code: HTTP status, or None for transport failures (DNS,
            connection refused, timeout).
        detail: Human readable detail.
    """

    def __init__(self, status_code: Optional[int], detail: str = "") -> None:
        self.status_code = status_code
        self.detail = detail
        if status_code is not None:
            message = f"API error {status_code}"
            if detail:
                message = f"{message}: {detail}"
        else:
            message = f"API request failed: {detail}" if detail else "API request failed"
        super().__init__(message)


class MalformedResponse(ProviderError):
    """The remote API answered with a body that does not fit its ApiConfig."""


__all__ = [
    "DataLabError",
    "ConfigurationError",
    "InvalidQueryError",
    "StoreClosedError",
    "ProviderError",
    "ApiRequestFailed",
    "MalformedResponse",
]
