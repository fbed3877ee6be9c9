"""Google Maps Platform adapters: engine bootstrap + Places Nearby Search."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

from fishing_map.core.models import Coordinate, PlaceResult, PlacesResponse
from fishing_map.errors import TransientProviderError
from fishing_map.providers.base import EngineTransport, PlacesProvider
from fishing_map.providers.http import HTTPClient

log = logging.getLogger(__name__)


def _parse_place(raw: Dict[str, Any]) -> PlaceResult:
    loc = ((raw.get("geometry") or {}).get("location")) or {}
    coord: Optional[Coordinate] = None
    if loc.get("lat") is not None and loc.get("lng") is not None:
        try:
            coord = Coordinate(lat=float(loc["lat"]), lng=float(loc["lng"]))
        except (TypeError, ValueError):
            coord = None

    photo_refs: List[str] = []
    for ph in raw.get("photos") or []:
        ref = ph.get("photo_reference") if isinstance(ph, dict) else None
        if ref:
            photo_refs.append(str(ref))

    return PlaceResult(
        name=raw.get("name"),
        location=coord,
        rating=raw.get("rating"),
        price_level=raw.get("price_level"),
        photo_refs=photo_refs,
        vicinity=raw.get("vicinity"),
        provider_id=raw.get("place_id"),
    )


class GooglePlacesProvider(PlacesProvider):
    """
    Places API Nearby Search (web service):
      https://maps.googleapis.com/maps/api/place/nearbysearch/json
    Photos are served through:
      https://maps.googleapis.com/maps/api/place/photo
    """

    NEARBY_URL = "https://maps.googleapis.com/maps/api/place/nearbysearch/json"
    PHOTO_URL = "https://maps.googleapis.com/maps/api/place/photo"

    def __init__(
        self,
        api_key: str,
        client: HTTPClient,
        photo_max_width: int = 300,
        photo_max_height: int = 200,
    ):
        self.api_key = api_key
        self.client = client
        self.photo_max_width = photo_max_width
        self.photo_max_height = photo_max_height

    def _search_sync(self, origin: Coordinate, radius_km: float, keyword: str) -> PlacesResponse:
        params = {
            "location": f"{origin.lat},{origin.lng}",
            "radius": int(round(radius_km * 1000)),
            "keyword": keyword,
            "key": self.api_key,
        }
        data = self.client.get_json(self.NEARBY_URL, params=params)
        if not isinstance(data, dict):
            raise TransientProviderError("Nearby search returned a non-object body")

        return PlacesResponse(
            status=str(data.get("status", "UNKNOWN_ERROR")),
            results=[_parse_place(r) for r in data.get("results") or [] if isinstance(r, dict)],
            error_message=data.get("error_message"),
        )

    async def nearby_search(self, origin: Coordinate, radius_km: float, keyword: str) -> PlacesResponse:
        return await asyncio.to_thread(self._search_sync, origin, radius_km, keyword)

    def photo_url(self, photo_ref: str) -> Optional[str]:
        return (
            f"{self.PHOTO_URL}?maxwidth={self.photo_max_width}&maxheight={self.photo_max_height}"
            f"&photo_reference={photo_ref}&key={self.api_key}"
        )


class GoogleMapsEngine(EngineTransport):
    """
    Loads the Maps JavaScript bootstrap with the requested libraries and, once
    it answers, attaches a Places search surface bound to the same key.
    """

    BOOTSTRAP_URL = "https://maps.googleapis.com/maps/api/js"

    def __init__(self, client: HTTPClient, photo_max_width: int = 300, photo_max_height: int = 200):
        self.client = client
        self.photo_max_width = photo_max_width
        self.photo_max_height = photo_max_height
        self._surface: Optional[GooglePlacesProvider] = None

    def _load_sync(self, api_key: str, libraries: Tuple[str, ...]) -> None:
        params = {"key": api_key, "libraries": ",".join(libraries), "loading": "async"}
        body = self.client.get_text(self.BOOTSTRAP_URL, params=params)
        if not body.strip():
            # Load "succeeded" but nothing came back; the surface stays detached
            log.warning("Maps bootstrap returned an empty body")
            return
        self._surface = GooglePlacesProvider(
            api_key,
            self.client,
            photo_max_width=self.photo_max_width,
            photo_max_height=self.photo_max_height,
        )

    async def load(self, api_key: str, libraries: Tuple[str, ...]) -> None:
        self._surface = None
        await asyncio.to_thread(self._load_sync, api_key, libraries)

    def surface(self) -> Optional[PlacesProvider]:
        return self._surface
