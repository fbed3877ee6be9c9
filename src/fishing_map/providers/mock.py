from __future__ import annotations

import math
from typing import List, Optional, Tuple

from fishing_map.core.models import Coordinate, PlaceResult, PlacesResponse
from fishing_map.providers.base import EngineTransport, PlacesProvider


class MockPlacesProvider(PlacesProvider):
    """
    Deterministic fake places so the pipeline runs end-to-end without APIs.
    Scatters results around the origin, varying with the keyword.
    """

    def __init__(self, per_query: int = 3):
        self.per_query = per_query

    async def nearby_search(self, origin: Coordinate, radius_km: float, keyword: str) -> PlacesResponse:
        seed = sum(ord(ch) for ch in keyword)
        results: List[PlaceResult] = []

        for i in range(self.per_query):
            # Keyword-driven bearing, index-driven range (kept inside the radius)
            bearing = math.radians((seed * 37 + i * 113) % 360)
            frac = 0.15 + 0.25 * i + 0.1 * abs(math.sin(seed + i))
            dist_km = min(radius_km * 0.95, radius_km * frac)

            dlat = (dist_km / 111.32) * math.cos(bearing)
            dlng = (dist_km / (111.32 * max(0.01, math.cos(math.radians(origin.lat))))) * math.sin(bearing)

            results.append(
                PlaceResult(
                    name=f"{keyword.title()} #{i + 1}",
                    location=Coordinate(
                        lat=max(-90.0, min(90.0, origin.lat + dlat)),
                        lng=((origin.lng + dlng + 180.0) % 360.0) - 180.0,
                    ),
                    rating=round(3.0 + 2.0 * abs(math.sin(seed * (i + 1))), 1),
                    vicinity=f"{round(dist_km, 1)} km from you",
                    provider_id=f"mock-{seed}-{i}",
                )
            )

        return PlacesResponse(status="OK" if results else "ZERO_RESULTS", results=results)


class MockEngine(EngineTransport):
    """Engine transport that attaches a MockPlacesProvider on every load."""

    def __init__(self, provider: Optional[PlacesProvider] = None):
        self._provider = provider or MockPlacesProvider()
        self._surface: Optional[PlacesProvider] = None

    async def load(self, api_key: str, libraries: Tuple[str, ...]) -> None:
        self._surface = self._provider

    def surface(self) -> Optional[PlacesProvider]:
        return self._surface
