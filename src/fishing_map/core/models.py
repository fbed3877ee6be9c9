from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr


POICategory = Literal[
    "marina",
    "fishing_spot",
    "bait_shop",
    "safety_station",
    "port",
    "fishing_charter",
    "boat_ramp",
]

LocationOutcome = Literal[
    "measured",
    "permission_denied",
    "position_unavailable",
    "timeout",
    "unsupported",
    "unknown",
]

EngineState = Literal["not_started", "loading", "ready", "failed"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Coordinate(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float = Field(ge=-90.0, le=90.0)
    lng: float = Field(ge=-180.0, le=180.0)


class SearchCategory(BaseModel):
    keywords: List[str]
    category: POICategory

    @property
    def keyword_string(self) -> str:
        return " ".join(k.strip() for k in self.keywords if k.strip())


class PointOfInterest(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    category: POICategory
    location: Coordinate
    distance_km: float = Field(ge=0.0)
    description: str
    rating: Optional[float] = Field(default=None, ge=0.0, le=5.0)
    provider_id: Optional[str] = None
    price_level: Optional[int] = None
    photo_urls: List[str] = Field(default_factory=list, max_length=1)


# ---- Provider wire shapes ----

class PlaceResult(BaseModel):
    """One entry of a nearby-search response, already decoded from the wire."""
    name: Optional[str] = None
    location: Optional[Coordinate] = None
    rating: Optional[float] = None
    price_level: Optional[int] = None
    photo_refs: List[str] = Field(default_factory=list)
    vicinity: Optional[str] = None
    provider_id: Optional[str] = None


class PlacesResponse(BaseModel):
    status: str
    results: List[PlaceResult] = Field(default_factory=list)
    error_message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "OK"


# ---- Boundary ----

class BoundaryPart(BaseModel):
    """One member polygon of a zone: an exterior shell and the holes cut from it."""
    shell: List[Coordinate]
    holes: List[List[Coordinate]] = Field(default_factory=list)


class BoundaryPolygon(BaseModel):
    """
    A geofence zone: one or more member polygons, OR-combined.

    Each member keeps its own holes, so a member lying inside another member's
    hole stays part of the zone. Rings are sequences of Coordinate (first ==
    last is not required; the containment test closes them).
    """
    name: str
    territory: str = ""
    area_km2: Optional[float] = None
    parts: List[BoundaryPart] = Field(min_length=1)

    # Prepared shapely geometry, built lazily by geo.geomath
    _geometry: Any = PrivateAttr(default=None)

    @property
    def rings(self) -> List[List[Coordinate]]:
        return [p.shell for p in self.parts]

    @property
    def holes(self) -> List[List[Coordinate]]:
        return [h for p in self.parts for h in p.holes]


class CrossingEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    boundary_name: str
    direction: Literal["entered", "exited"]
    location: Optional[Coordinate] = None
    timestamp: datetime = Field(default_factory=_utcnow)


# ---- Location ----

class LocationFix(BaseModel):
    coordinate: Coordinate
    accuracy_m: Optional[float] = None
    timestamp: datetime = Field(default_factory=_utcnow)


class LocationResult(BaseModel):
    coordinate: Coordinate
    outcome: LocationOutcome
    message: str = ""

    @property
    def measured(self) -> bool:
        return self.outcome == "measured"


# ---- Engine / session ----

class EngineStatus(BaseModel):
    state: EngineState = "not_started"
    reason: Optional[Literal["missing_credentials", "exhausted_retries"]] = None
    attempts: int = 0
    message: str = ""

    @property
    def ready(self) -> bool:
        return self.state == "ready"


class SessionReadiness(BaseModel):
    """
    Three-slot readiness gate. Each slot flips False -> True once.

    ``boundary_available`` records whether the settled boundary slot actually
    holds a polygon; an unavailable boundary still counts as settled.
    """
    engine_ready: bool = False
    location_ready: bool = False
    boundary_ready: bool = False
    boundary_available: Optional[bool] = None

    @property
    def is_open(self) -> bool:
        return self.engine_ready and self.location_ready and self.boundary_ready

    def settle(self, slot: Literal["engine", "location", "boundary"]) -> bool:
        """Mark a slot settled. Returns False if it was already settled."""
        attr = f"{slot}_ready"
        if getattr(self, attr):
            return False
        setattr(self, attr, True)
        return True
