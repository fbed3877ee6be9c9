"""FastAPI surface for the UI collaborator: one in-memory session per process."""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from fishing_map.config import settings
from fishing_map.core.models import (
    BoundaryPolygon,
    Coordinate,
    CrossingEvent,
    EngineStatus,
    PointOfInterest,
    SessionReadiness,
)
from fishing_map.session import FishingMapSession, build_session

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [fishing_map] %(levelname)s %(message)s",
)
log = logging.getLogger(__name__)

_session: Optional[FishingMapSession] = None
_background: set = set()


def _spawn(coro) -> None:
    task = asyncio.create_task(coro)
    _background.add(task)
    task.add_done_callback(_background.discard)


@asynccontextmanager
async def lifespan(app: FastAPI):
    global _session
    _session = build_session(settings)
    _spawn(_session.start())
    yield
    for task in list(_background):
        task.cancel()


app = FastAPI(title="Fishing Map", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_session() -> FishingMapSession:
    if _session is None:
        raise HTTPException(status_code=503, detail="Session not started")
    return _session


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------

class ReadinessOut(BaseModel):
    readiness: SessionReadiness
    is_open: bool
    engine: EngineStatus
    location_outcome: Optional[str] = None
    location_message: str = ""
    retry_available: bool = False


class POIOut(PointOfInterest):
    directions_url: str


class LocationIn(BaseModel):
    lat: float = Field(ge=-90.0, le=90.0)
    lng: float = Field(ge=-180.0, le=180.0)


class LocationUpdateOut(BaseModel):
    inside: Optional[bool] = None
    event: Optional[CrossingEvent] = None


class BoundaryOut(BaseModel):
    name: str
    territory: str
    area_km2: Optional[float] = None
    rings: int
    holes: int


def _boundary_out(b: BoundaryPolygon) -> BoundaryOut:
    return BoundaryOut(
        name=b.name, territory=b.territory, area_km2=b.area_km2,
        rings=len(b.rings), holes=len(b.holes),
    )


def _readiness_out(s: FishingMapSession) -> ReadinessOut:
    r = s.get_readiness()
    return ReadinessOut(
        readiness=r,
        is_open=r.is_open,
        engine=s.engine_status,
        location_outcome=s.location.outcome if s.location else None,
        location_message=s.location.message if s.location else "",
        retry_available=s.engine_status.state == "failed",
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@app.get("/health")
def health(session: FishingMapSession = Depends(get_session)):
    return {
        "status": "ok",
        "engine": session.engine_status.state,
        "boundary": session.boundary is not None,
    }


@app.get("/readiness", response_model=ReadinessOut)
def readiness(session: FishingMapSession = Depends(get_session)):
    return _readiness_out(session)


@app.get("/boundary", response_model=Optional[BoundaryOut])
def boundary(session: FishingMapSession = Depends(get_session)):
    return _boundary_out(session.boundary) if session.boundary is not None else None


@app.get("/pois", response_model=List[POIOut])
def pois(
    limit: Optional[int] = Query(default=None, ge=1),
    session: FishingMapSession = Depends(get_session),
):
    ranked = session.get_ranked_pois()
    if limit is not None:
        ranked = ranked[:limit]
    return [POIOut(**p.model_dump(), directions_url=session.directions_to(p)) for p in ranked]


@app.get("/crossings", response_model=List[CrossingEvent])
def crossings(session: FishingMapSession = Depends(get_session)):
    return list(session.alerts)


@app.post("/location", response_model=LocationUpdateOut)
def push_location(body: LocationIn, session: FishingMapSession = Depends(get_session)):
    event = session.update_location(Coordinate(lat=body.lat, lng=body.lng))
    inside = session.monitor.inside if session.monitor is not None else None
    return LocationUpdateOut(inside=inside, event=event)


@app.post("/search", response_model=List[POIOut])
async def search(session: FishingMapSession = Depends(get_session)):
    if not session.get_readiness().is_open:
        raise HTTPException(status_code=409, detail="Session is not ready yet")
    ranked = await session.run_search()
    return [POIOut(**p.model_dump(), directions_url=session.directions_to(p)) for p in ranked]


@app.post("/retry", response_model=ReadinessOut, status_code=202)
async def retry(session: FishingMapSession = Depends(get_session)):
    if session.engine.state.in_flight:
        raise HTTPException(status_code=409, detail="Engine load already in progress")
    session.restart()
    _spawn(session.start())
    return _readiness_out(session)
