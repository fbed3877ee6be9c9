"""Position sources: a fixed coordinate and coarse IP geolocation."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from fishing_map.core.models import Coordinate, LocationFix
from fishing_map.errors import PositionError, TransientProviderError
from fishing_map.providers.base import PositionSource
from fishing_map.providers.http import HTTPClient

log = logging.getLogger(__name__)


class FixedPositionSource(PositionSource):
    """Always reports the same coordinate (configured or pushed by a client)."""

    def __init__(self, coordinate: Coordinate, accuracy_m: Optional[float] = None):
        self.coordinate = coordinate
        self.accuracy_m = accuracy_m

    async def read(self, high_accuracy: bool, max_age_s: float) -> LocationFix:
        return LocationFix(coordinate=self.coordinate, accuracy_m=self.accuracy_m)


class IPPositionSource(PositionSource):
    """
    Coarse position from ip-api.com:
      http://ip-api.com/json -> {"status": "success", "lat": .., "lon": ..}

    A previous fix younger than ``max_age_s`` is returned without a new request.
    """

    URL = "http://ip-api.com/json"

    def __init__(self, client: HTTPClient):
        self.client = client
        self._last: Optional[LocationFix] = None

    def _read_sync(self) -> LocationFix:
        try:
            data = self.client.get_json(self.URL, params={"fields": "status,message,lat,lon"})
        except TransientProviderError as e:
            raise PositionError("position_unavailable", str(e)) from e

        if not isinstance(data, dict) or data.get("status") != "success":
            msg = data.get("message", "lookup failed") if isinstance(data, dict) else "lookup failed"
            raise PositionError("position_unavailable", f"IP geolocation: {msg}")

        try:
            coord = Coordinate(lat=float(data["lat"]), lng=float(data["lon"]))
        except (KeyError, TypeError, ValueError) as e:
            raise PositionError("unknown", f"IP geolocation returned bad coordinates: {e}") from e

        # city-level accuracy at best
        return LocationFix(coordinate=coord, accuracy_m=5000.0)

    async def read(self, high_accuracy: bool, max_age_s: float) -> LocationFix:
        if self._last is not None:
            age_s = (datetime.now(timezone.utc) - self._last.timestamp).total_seconds()
            if age_s <= max_age_s:
                log.debug("Reusing cached IP fix (%.0fs old)", age_s)
                return self._last

        fix = await asyncio.to_thread(self._read_sync)
        self._last = fix
        return fix
