"""
Acquire the user's position with a timeout and a deterministic fallback.

Every call produces exactly one notification (success or the specific failure)
and always returns a usable coordinate.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Dict, Optional

from fishing_map.core.models import Coordinate, LocationOutcome, LocationResult
from fishing_map.errors import PositionError, UnsupportedEnvironmentError
from fishing_map.providers.base import PositionSource

log = logging.getLogger(__name__)


_FAILURE_MESSAGES: Dict[str, str] = {
    "permission_denied": "Location permission denied. Using default location.",
    "position_unavailable": "Location unavailable. Using default location.",
    "timeout": "Location timeout. Using default location.",
    "unsupported": "Geolocation not supported. Using default location.",
    "unknown": "Location error. Using default location.",
}


class Notifier:
    """User-visible notifications. The base implementation just logs."""

    def success(self, message: str) -> None:
        log.info("[notify] %s", message)

    def error(self, message: str) -> None:
        log.warning("[notify] %s", message)


class LocationProvider:
    def __init__(
        self,
        source: Optional[PositionSource],
        notifier: Optional[Notifier] = None,
        max_age_ms: int = 60000,
    ):
        self.source = source
        self.notifier = notifier or Notifier()
        self.max_age_ms = max_age_ms

    async def _read(self, timeout_ms: int) -> Coordinate:
        if self.source is None:
            raise UnsupportedEnvironmentError("No position source configured")
        fix = await asyncio.wait_for(
            self.source.read(high_accuracy=True, max_age_s=self.max_age_ms / 1000.0),
            timeout=timeout_ms / 1000.0,
        )
        log.info("Position obtained: %s (accuracy=%s m)", fix.coordinate, fix.accuracy_m)
        return fix.coordinate

    @staticmethod
    def _classify(exc: BaseException) -> LocationOutcome:
        if isinstance(exc, UnsupportedEnvironmentError):
            return "unsupported"
        if isinstance(exc, asyncio.TimeoutError):
            return "timeout"
        if isinstance(exc, PositionError) and exc.code in _FAILURE_MESSAGES:
            return exc.code  # type: ignore[return-value]
        return "unknown"

    async def acquire(self, timeout_ms: int, fallback: Coordinate) -> LocationResult:
        try:
            coord = await self._read(timeout_ms)
        except Exception as e:
            outcome = self._classify(e)
            message = _FAILURE_MESSAGES[outcome]
            log.warning("Position read failed (%s): %s", outcome, e)
            self.notifier.error(message)
            return LocationResult(coordinate=fallback, outcome=outcome, message=message)

        message = f"Location updated: {coord.lat:.4f}, {coord.lng:.4f}"
        self.notifier.success(message)
        return LocationResult(coordinate=coord, outcome="measured", message=message)
