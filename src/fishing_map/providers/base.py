from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Tuple

from fishing_map.core.models import Coordinate, LocationFix, PlacesResponse


class PlacesProvider(ABC):
    """Nearby place search against an external provider."""

    @abstractmethod
    async def nearby_search(self, origin: Coordinate, radius_km: float, keyword: str) -> PlacesResponse:
        raise NotImplementedError

    def photo_url(self, photo_ref: str) -> Optional[str]:
        return None


class PositionSource(ABC):
    """Reads the device's current position.

    Implementations raise ``PositionError`` with one of the classification
    codes (permission_denied, position_unavailable, timeout, unknown).
    """

    @abstractmethod
    async def read(self, high_accuracy: bool, max_age_s: float) -> LocationFix:
        raise NotImplementedError


class EngineTransport(ABC):
    """Loads the mapping/search engine client."""

    @abstractmethod
    async def load(self, api_key: str, libraries: Tuple[str, ...]) -> None:
        """Fire one load. Returning means the load signal fired.

        Raises ``TransientProviderError`` on transport failure.
        """
        raise NotImplementedError

    @abstractmethod
    def surface(self) -> Optional[PlacesProvider]:
        """The engine's search surface, or None while it is not attached."""
        raise NotImplementedError
