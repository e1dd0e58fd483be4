"""Exceptions raised by the incident enrichment engine."""

from typing import Optional


class IncidentEnrichmentError(Exception):
    """Base exception for incident enrichment."""

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.key = key
        self.cause = cause


class ConfigurationError(IncidentEnrichmentError):
    """Invalid settings or cache backend unreachable at startup."""
    pass


class CacheOperationError(IncidentEnrichmentError):
    """A single get/set/delete/touch against the cache failed."""
    pass
