"""Emit crossing events when a location stream enters or leaves the boundary."""
from __future__ import annotations

import logging
from typing import Any, AsyncIterable, Callable, List, Optional, Tuple

from fishing_map.core.models import BoundaryPolygon, Coordinate, CrossingEvent
from fishing_map.geo.geomath import point_in_polygon

log = logging.getLogger(__name__)

CrossingHandler = Callable[[CrossingEvent], None]


class BoundaryMonitor:
    """
    Compares each containment result with the previous one. No event on the
    first evaluation and none while consecutive results agree. With no
    polygon, updates are ignored entirely.
    """

    def __init__(self, polygon: Optional[BoundaryPolygon], map_handle: Any = None):
        self.polygon = polygon
        self.map_handle = map_handle
        self._inside: Optional[bool] = None
        self._events: List[CrossingEvent] = []
        self._handlers: List[CrossingHandler] = []

    @property
    def inside(self) -> Optional[bool]:
        return self._inside

    @property
    def events(self) -> Tuple[CrossingEvent, ...]:
        return tuple(self._events)

    def on_crossing(self, handler: CrossingHandler) -> Callable[[], None]:
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    def update(self, location: Coordinate) -> Optional[CrossingEvent]:
        if self.polygon is None:
            return None

        now_inside = point_in_polygon(location, self.polygon)
        prev = self._inside
        self._inside = now_inside

        if prev is None or prev == now_inside:
            return None

        event = CrossingEvent(
            boundary_name=self.polygon.name,
            direction="entered" if now_inside else "exited",
            location=location,
        )
        self._events.append(event)
        log.info("Border crossing detected: %s %s", event.direction, event.boundary_name)

        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception:
                log.exception("Crossing handler %r failed", handler)
        return event

    async def run(self, stream: AsyncIterable[Coordinate]) -> None:
        async for location in stream:
            self.update(location)
