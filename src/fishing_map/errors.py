"""
Exception hierarchy for fishing-map components.

Every component resolves these at its own boundary into a documented
outcome (fallback coordinate, absent boundary, failed engine state, partial
POI batch). They are raised internally, by providers and sources, and are not
expected to reach the UI.
"""
from __future__ import annotations

from typing import Optional


class FishingMapError(Exception):
    """Base exception for all application-specific errors."""

    def __init__(self, message: str, details: Optional[dict] = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(FishingMapError):
    """A required credential or setting is missing. Never retried."""


class TransientProviderError(FishingMapError):
    """Network or engine-load failure that may succeed on a later attempt."""


class DataIntegrityError(FishingMapError):
    """A payload arrived but did not have the expected shape."""


class UnsupportedEnvironmentError(FishingMapError):
    """No position capability is available in this environment."""


class PositionError(FishingMapError):
    """A position read failed. ``code`` is the failure classification."""

    def __init__(self, code: str, message: str = "", details: Optional[dict] = None) -> None:
        self.code = code
        super().__init__(message or code, details)


class SearchUnavailableError(FishingMapError):
    """The places search capability is missing entirely."""
