"""
One user session: concurrent initialization behind a readiness gate, then
search + boundary monitoring.

Engine, location and boundary start together and settle independently. Once
all three have settled (success or fallback) the gate opens and the search
runs and the monitor starts accepting location updates.
"""
from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterable, Callable, List, Optional, Sequence

from fishing_map.boundary.store import BoundaryStore
from fishing_map.config import Settings, settings
from fishing_map.core.categories import DEFAULT_CATEGORIES
from fishing_map.core.models import (
    BoundaryPolygon,
    Coordinate,
    CrossingEvent,
    EngineStatus,
    LocationResult,
    PointOfInterest,
    SearchCategory,
    SessionReadiness,
)
from fishing_map.engine.loader import EngineLoader, EngineLoadState, Sleep
from fishing_map.errors import SearchUnavailableError
from fishing_map.location.provider import LocationProvider, Notifier
from fishing_map.monitor.boundary_monitor import BoundaryMonitor, CrossingHandler
from fishing_map.providers.base import EngineTransport, PositionSource
from fishing_map.providers.http import HTTPClient
from fishing_map.search.orchestrator import SearchOrchestrator

log = logging.getLogger(__name__)


def directions_url(origin: Coordinate, poi: PointOfInterest) -> str:
    return (
        f"https://www.google.com/maps/dir/{origin.lat},{origin.lng}/"
        f"{poi.location.lat},{poi.location.lng}"
    )


class FishingMapSession:
    def __init__(
        self,
        engine_transport: EngineTransport,
        position_source: Optional[PositionSource],
        boundary_client: HTTPClient,
        cfg: Settings = settings,
        notifier: Optional[Notifier] = None,
        categories: Sequence[SearchCategory] = DEFAULT_CATEGORIES,
        engine_state: Optional[EngineLoadState] = None,
        sleep: Sleep = asyncio.sleep,
        map_handle: object = None,
        api_key: Optional[str] = None,
    ):
        self.cfg = cfg
        self.api_key = api_key if api_key is not None else cfg.google_maps_api_key
        self.categories = list(categories)
        self.map_handle = map_handle
        self.boundary_client = boundary_client

        self.engine = EngineLoader(
            engine_transport,
            state=engine_state,
            settle_ms=cfg.engine_settle_ms,
            poll_ms=cfg.engine_poll_ms,
            sleep=sleep,
        )
        self.locator = LocationProvider(position_source, notifier, max_age_ms=cfg.location_max_age_ms)
        self.orchestrator = SearchOrchestrator(sleep=sleep)

        self._handlers: List[CrossingHandler] = []
        self.alerts: List[CrossingEvent] = []
        self._epoch = 0
        self._reset()

    def _reset(self) -> None:
        self._epoch += 1
        self.readiness = SessionReadiness()
        self._gate = asyncio.Event()
        self.boundary_store = BoundaryStore(self.boundary_client, typename=self.cfg.boundary_typename)
        self.location: Optional[LocationResult] = None
        self.boundary: Optional[BoundaryPolygon] = None
        self.monitor: Optional[BoundaryMonitor] = None

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    @property
    def fallback(self) -> Coordinate:
        return Coordinate(lat=self.cfg.fallback_lat, lng=self.cfg.fallback_lng)

    @property
    def engine_status(self) -> EngineStatus:
        return self.engine.state.status

    async def _init_engine(self, epoch: int) -> None:
        try:
            await self.engine.ensure_loaded(
                self.api_key,
                max_retries=self.cfg.engine_max_retries,
                retry_delay_ms=self.cfg.engine_retry_delay_ms,
            )
        finally:
            self._settle("engine", epoch)

    async def _init_location(self, epoch: int) -> None:
        result: Optional[LocationResult] = None
        try:
            result = await self.locator.acquire(self.cfg.location_timeout_ms, self.fallback)
        finally:
            if epoch == self._epoch:
                self.location = result
            self._settle("location", epoch)

    async def _init_boundary(self, epoch: int) -> None:
        store = self.boundary_store
        polygon: Optional[BoundaryPolygon] = None
        try:
            polygon = await store.load(self.cfg.boundary_endpoint, self.cfg.boundary_mrgid)
        finally:
            if epoch == self._epoch:
                self.boundary = polygon
                self.readiness.boundary_available = polygon is not None
            self._settle("boundary", epoch)

    def _settle(self, slot: str, epoch: int) -> None:
        if epoch != self._epoch:
            log.debug("Dropping %s result from superseded initialization", slot)
            return
        if not self.readiness.settle(slot):  # type: ignore[arg-type]
            log.debug("Readiness slot %s already settled", slot)
        if self.readiness.is_open and not self._gate.is_set():
            self._open_gate()

    def _open_gate(self) -> None:
        self.monitor = BoundaryMonitor(self.boundary, map_handle=self.map_handle)
        self.monitor.on_crossing(self._on_crossing)
        if self.location is not None:
            # first evaluation sets the baseline, no event
            self.monitor.update(self.location.coordinate)
        self.orchestrator.provider = self.engine.surface
        self._gate.set()
        log.info(
            "Session ready (engine=%s, location=%s, boundary=%s)",
            self.engine_status.state,
            self.location.outcome if self.location else None,
            "available" if self.boundary is not None else "unavailable",
        )

    async def initialize(self) -> SessionReadiness:
        epoch = self._epoch
        await asyncio.gather(
            self._init_engine(epoch),
            self._init_location(epoch),
            self._init_boundary(epoch),
        )
        return self.readiness

    async def start(self) -> SessionReadiness:
        epoch = self._epoch
        await self.initialize()
        if epoch != self._epoch:
            # superseded by restart()
            return self.readiness
        await self.run_search()
        return self.readiness

    async def wait_ready(self) -> None:
        await self._gate.wait()

    # ------------------------------------------------------------------
    # Search + monitoring
    # ------------------------------------------------------------------

    async def run_search(self) -> List[PointOfInterest]:
        await self.wait_ready()
        origin = self.location.coordinate if self.location else self.fallback
        try:
            return await self.orchestrator.search(
                origin,
                self.categories,
                radius_km=self.cfg.search_radius_km,
                max_per_category=self.cfg.search_max_per_category,
                stagger_ms=self.cfg.search_stagger_ms,
            )
        except SearchUnavailableError as e:
            log.warning("Search skipped: %s", e.message)
            return []

    def update_location(self, location: Coordinate) -> Optional[CrossingEvent]:
        if not self._gate.is_set() or self.monitor is None:
            log.debug("Location update before readiness gate opened; ignored")
            return None
        return self.monitor.update(location)

    async def follow(self, stream: AsyncIterable[Coordinate]) -> None:
        await self.wait_ready()
        async for location in stream:
            self.update_location(location)

    def _on_crossing(self, event: CrossingEvent) -> None:
        self.alerts.append(event)
        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception:
                log.exception("Crossing handler %r failed", handler)

    # ------------------------------------------------------------------
    # Consumer surface
    # ------------------------------------------------------------------

    def get_ranked_pois(self) -> List[PointOfInterest]:
        return self.orchestrator.ranked

    def on_crossing_event(self, handler: CrossingHandler) -> Callable[[], None]:
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    def get_readiness(self) -> SessionReadiness:
        return self.readiness.model_copy()

    def directions_to(self, poi: PointOfInterest) -> str:
        origin = self.location.coordinate if self.location else self.fallback
        return directions_url(origin, poi)

    def restart(self) -> None:
        """Drop engine, location and boundary results. Not allowed mid engine-load."""
        self.engine.state.reset()
        self._reset()

    async def retry(self) -> SessionReadiness:
        """Re-run engine, location and boundary from scratch, then search again."""
        if self.engine.state.in_flight:
            await self.engine.state.wait(self.cfg.engine_poll_ms / 1000.0, self.engine.sleep)
        self.restart()
        return await self.start()


def build_session(cfg: Settings = settings, notifier: Optional[Notifier] = None) -> FishingMapSession:
    """Wire a session from settings: real providers or the offline mock."""
    from fishing_map.providers.google_places import GoogleMapsEngine
    from fishing_map.providers.mock import MockEngine
    from fishing_map.providers.positions import FixedPositionSource, IPPositionSource

    client = HTTPClient(user_agent=cfg.user_agent, timeout_s=cfg.http_timeout_s)

    if cfg.places_provider == "mock":
        transport: EngineTransport = MockEngine()
    elif cfg.places_provider == "google":
        transport = GoogleMapsEngine(
            client, photo_max_width=cfg.photo_max_width, photo_max_height=cfg.photo_max_height
        )
    else:
        raise ValueError(f"Unknown places provider: '{cfg.places_provider}' (supported: google, mock)")

    source: PositionSource
    if cfg.fixed_lat is not None and cfg.fixed_lng is not None:
        source = FixedPositionSource(Coordinate(lat=cfg.fixed_lat, lng=cfg.fixed_lng))
    else:
        source = IPPositionSource(client)

    api_key = cfg.google_maps_api_key
    if cfg.places_provider == "mock" and not api_key:
        api_key = "mock"

    return FishingMapSession(transport, source, client, cfg=cfg, notifier=notifier, api_key=api_key)
