"""Exception types shared across the ingestion pipeline."""

from __future__ import annotations


class OmniScopeError(Exception):
    """Base class for errors raised by the intelligence backend."""


class ConfigurationError(OmniScopeError):
    """A required setting (API key, provider name, database URL) is missing or invalid."""


class FathomAPIError(OmniScopeError):
    """The Fathom API answered with a non-2xx status."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"Fathom API error: {status_code} {message}")
        self.status_code = status_code
        self.message = message


class IngestionError(OmniScopeError):
    """Persisting a meeting failed for a reason other than a duplicate."""
