from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

import requests

from fishing_map.core.models import Coordinate, LocationFix, PlaceResult, PlacesResponse
from fishing_map.errors import TransientProviderError
from fishing_map.providers.base import EngineTransport, PlacesProvider, PositionSource
from fishing_map.providers.http import HTTPClient


# ---- requests fakes ----

@dataclass
class FakeResponse:
    status_code: int = 200
    json_data: Any = None
    text: str = ""
    url: str = "http://test"

    def json(self) -> Any:
        if self.json_data is None:
            raise ValueError("No JSON body")
        return self.json_data

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error", response=self)


class FakeSession:
    def __init__(self, responses: Optional[List[Union[FakeResponse, Exception]]] = None) -> None:
        self._responses = list(responses or [])
        self.requests: List[Tuple[str, Dict[str, Any]]] = []
        self.headers: Dict[str, str] = {}

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        self.requests.append((url, kwargs))
        if not self._responses:
            raise AssertionError("No fake responses available")
        nxt = self._responses.pop(0)
        if isinstance(nxt, Exception):
            raise nxt
        return nxt


def fake_client(*responses: Union[FakeResponse, Exception]) -> HTTPClient:
    client = HTTPClient(user_agent="test-agent")
    client.s = FakeSession(list(responses))  # type: ignore[assignment]
    return client


# ---- async helpers ----

class SleepRecorder:
    """Stand-in for asyncio.sleep: records durations, yields once, never waits."""

    def __init__(self) -> None:
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        await asyncio.sleep(0)


class RecordingNotifier:
    def __init__(self) -> None:
        self.messages: List[Tuple[str, str]] = []

    def success(self, message: str) -> None:
        self.messages.append(("success", message))

    def error(self, message: str) -> None:
        self.messages.append(("error", message))


# ---- provider fakes ----

def place(name: str, lat: float, lng: float, **kw: Any) -> PlaceResult:
    return PlaceResult(name=name, location=Coordinate(lat=lat, lng=lng), **kw)


class FakePlacesProvider(PlacesProvider):
    def __init__(self, responses: Optional[Dict[str, Union[PlacesResponse, Exception]]] = None,
                 default: Optional[PlacesResponse] = None) -> None:
        self.responses = dict(responses or {})
        self.default = default or PlacesResponse(status="ZERO_RESULTS")
        self.calls: List[Tuple[Coordinate, float, str]] = []

    async def nearby_search(self, origin: Coordinate, radius_km: float, keyword: str) -> PlacesResponse:
        self.calls.append((origin, radius_km, keyword))
        resp = self.responses.get(keyword, self.default)
        if isinstance(resp, Exception):
            raise resp
        return resp

    def photo_url(self, photo_ref: str) -> Optional[str]:
        return f"https://photos.test/{photo_ref}"


class FakeTransport(EngineTransport):
    def __init__(self, failures: int = 0, attach: bool = True,
                 provider: Optional[PlacesProvider] = None, gate: Optional[asyncio.Event] = None) -> None:
        self.failures = failures
        self.attach = attach
        self.provider = provider or FakePlacesProvider()
        self.gate = gate
        self.loads = 0
        self._surface: Optional[PlacesProvider] = None

    async def load(self, api_key: str, libraries: Tuple[str, ...]) -> None:
        self.loads += 1
        if self.gate is not None:
            await self.gate.wait()
        await asyncio.sleep(0)
        if self.loads <= self.failures:
            raise TransientProviderError("script failed to load")
        if self.attach:
            self._surface = self.provider

    def surface(self) -> Optional[PlacesProvider]:
        return self._surface


class FakePositionSource(PositionSource):
    def __init__(self, coordinate: Optional[Coordinate] = None, error: Optional[BaseException] = None,
                 delay_s: float = 0.0) -> None:
        self.coordinate = coordinate
        self.error = error
        self.delay_s = delay_s
        self.reads = 0

    async def read(self, high_accuracy: bool, max_age_s: float) -> LocationFix:
        self.reads += 1
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        if self.error is not None:
            raise self.error
        assert self.coordinate is not None
        return LocationFix(coordinate=self.coordinate, accuracy_m=12.0)


def square_ring(lat0: float, lng0: float, lat1: float, lng1: float) -> List[List[float]]:
    """GeoJSON ring ([lng, lat] positions) for an axis-aligned box."""
    return [[lng0, lat0], [lng0, lat1], [lng1, lat1], [lng1, lat0], [lng0, lat0]]


def feature_collection(*geometries: Dict[str, Any], properties: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    props = properties if properties is not None else {
        "geoname": "Indian Exclusive Economic Zone",
        "territory1": "India",
        "area_km2": 2305143,
    }
    return {
        "type": "FeatureCollection",
        "features": [{"type": "Feature", "properties": props, "geometry": g} for g in geometries],
    }
