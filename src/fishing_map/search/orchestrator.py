"""
Staggered multi-category nearby search with partial-failure aggregation.

Each category is dispatched at ``index * stagger_ms`` on one timeline. Every
query, successful or not, bumps the completion tally; when the tally reaches
the number of categories the batch is finalized from whatever succeeded.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Sequence

from fishing_map.core.models import (
    Coordinate,
    PlaceResult,
    PlacesResponse,
    PointOfInterest,
    SearchCategory,
)
from fishing_map.errors import SearchUnavailableError
from fishing_map.geo.geomath import distance_km
from fishing_map.providers.base import PlacesProvider

log = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]

ID_STRIDE = 10  # id = category_index * 10 + result_index


@dataclass
class CategoryOutcome:
    index: int
    category: str
    status: str               # provider status, or "TRANSPORT_ERROR"
    result_count: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "OK"


@dataclass
class SearchBatch:
    generation: int
    origin: Coordinate
    total: int
    completed: int = 0
    outcomes: List[CategoryOutcome] = field(default_factory=list)
    pois: List[PointOfInterest] = field(default_factory=list)

    @property
    def failures(self) -> List[CategoryOutcome]:
        return [o for o in self.outcomes if o.status not in ("OK", "ZERO_RESULTS")]

    @property
    def complete(self) -> bool:
        return self.completed == self.total


def place_to_poi(
    place: PlaceResult,
    origin: Coordinate,
    category: SearchCategory,
    category_index: int,
    result_index: int,
    provider: PlacesProvider,
) -> Optional[PointOfInterest]:
    if place.location is None:
        return None

    photo_urls: List[str] = []
    for ref in place.photo_refs[:1]:
        url = provider.photo_url(ref)
        if url:
            photo_urls.append(url)

    rating = place.rating
    if rating is not None and not (0.0 <= rating <= 5.0):
        rating = None

    return PointOfInterest(
        id=category_index * ID_STRIDE + result_index,
        name=place.name or "Unknown Location",
        category=category.category,
        location=place.location,
        distance_km=distance_km(origin, place.location),
        description=place.vicinity or "No description available",
        rating=rating,
        provider_id=place.provider_id,
        price_level=place.price_level,
        photo_urls=photo_urls,
    )


class SearchOrchestrator:
    def __init__(self, provider: Optional[PlacesProvider] = None, sleep: Sleep = asyncio.sleep):
        self.provider = provider
        self.sleep = sleep
        self._generation = 0
        self._ranked: List[PointOfInterest] = []
        self.last_batch: Optional[SearchBatch] = None

    @property
    def ranked(self) -> List[PointOfInterest]:
        return list(self._ranked)

    async def search(
        self,
        origin: Coordinate,
        categories: Sequence[SearchCategory],
        radius_km: float = 25.0,
        max_per_category: int = 3,
        stagger_ms: int = 200,
    ) -> List[PointOfInterest]:
        if not 1 <= max_per_category <= ID_STRIDE:
            raise ValueError(f"max_per_category must be between 1 and {ID_STRIDE}, got {max_per_category}")
        provider = self.provider
        if provider is None:
            raise SearchUnavailableError("Places search is not available (engine not loaded)")

        self._generation += 1
        batch = SearchBatch(generation=self._generation, origin=origin, total=len(categories))
        slots: List[List[PointOfInterest]] = [[] for _ in categories]
        outcomes: List[Optional[CategoryOutcome]] = [None] * len(categories)

        async def run_one(index: int, cat: SearchCategory) -> None:
            if index:
                await self.sleep(index * stagger_ms / 1000.0)
            keyword = cat.keyword_string
            try:
                resp: PlacesResponse = await provider.nearby_search(origin, radius_km, keyword)
            except Exception as e:
                log.warning("Places search error for '%s': %s", keyword, e)
                outcomes[index] = CategoryOutcome(index, cat.category, "TRANSPORT_ERROR", error=str(e))
            else:
                if resp.ok:
                    for result_index, place in enumerate(resp.results[:max_per_category]):
                        poi = place_to_poi(place, origin, cat, index, result_index, provider)
                        if poi is not None:
                            slots[index].append(poi)
                elif resp.status == "ZERO_RESULTS":
                    log.debug("No places for '%s'", keyword)
                else:
                    log.warning("Places search failed with status: %s for '%s'", resp.status, keyword)
                outcomes[index] = CategoryOutcome(
                    index, cat.category, resp.status,
                    result_count=len(slots[index]), error=resp.error_message,
                )
            finally:
                batch.completed += 1

        await asyncio.gather(*(run_one(i, c) for i, c in enumerate(categories)))

        # all slots settled; aggregate in category order so ties keep discovery order
        found = [poi for slot in slots for poi in slot]
        batch.pois = sorted(found, key=lambda p: p.distance_km)
        batch.outcomes = [o for o in outcomes if o is not None]

        log.info(
            "Search batch %d complete: %d/%d queries, %d failed, %d POIs",
            batch.generation, batch.completed, batch.total, len(batch.failures), len(batch.pois),
        )

        if batch.generation == self._generation:
            self._ranked = batch.pois
            self.last_batch = batch
        else:
            log.debug("Search batch %d superseded by %d", batch.generation, self._generation)

        return list(batch.pois)
