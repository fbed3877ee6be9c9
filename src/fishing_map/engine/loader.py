"""
Engine loading with idempotent detection and bounded retry.

    not_started -> loading -> ready
                           -> failed (missing_credentials | exhausted_retries)

``EngineLoadState`` is shared process-wide by default. The caller that moves
it to ``loading`` is its only writer; every other caller awaits the same
completion future instead of starting a second load.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Tuple

from fishing_map.core.models import EngineStatus
from fishing_map.errors import ConfigurationError
from fishing_map.providers.base import EngineTransport, PlacesProvider

log = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]

ENGINE_LIBRARIES: Tuple[str, ...] = ("places", "geometry")


class EngineLoadState:
    def __init__(self) -> None:
        self.status = EngineStatus()
        self.surface: Optional[PlacesProvider] = None
        self._done: Optional[asyncio.Future] = None

    @property
    def in_flight(self) -> bool:
        return self.status.state == "loading"

    def begin(self) -> None:
        self.status = EngineStatus(state="loading")
        self._done = asyncio.get_running_loop().create_future()

    def finish(self, status: EngineStatus, surface: Optional[PlacesProvider] = None) -> None:
        self.status = status
        self.surface = surface
        if self._done is not None and not self._done.done():
            self._done.set_result(status)

    async def wait(self, poll_s: float, sleep: Sleep) -> EngineStatus:
        if self._done is not None:
            return await asyncio.shield(self._done)
        # Marked loading without a completion signal: fall back to polling
        while self.in_flight:
            await sleep(poll_s)
        return self.status

    def reset(self) -> None:
        if self.in_flight:
            raise RuntimeError("Cannot reset engine state while a load is in flight")
        self.status = EngineStatus()
        self.surface = None
        self._done = None


ENGINE_STATE = EngineLoadState()


class EngineLoader:
    def __init__(
        self,
        transport: EngineTransport,
        state: Optional[EngineLoadState] = None,
        settle_ms: int = 100,
        poll_ms: int = 100,
        sleep: Sleep = asyncio.sleep,
        libraries: Tuple[str, ...] = ENGINE_LIBRARIES,
    ):
        self.transport = transport
        self.state = state if state is not None else ENGINE_STATE
        self.settle_ms = settle_ms
        self.poll_ms = poll_ms
        self.sleep = sleep
        self.libraries = libraries

    @property
    def surface(self) -> Optional[PlacesProvider]:
        return self.state.surface

    async def ensure_loaded(
        self,
        api_key: Optional[str],
        max_retries: int = 3,
        retry_delay_ms: int = 2000,
    ) -> EngineStatus:
        st = self.state.status.state

        if st in ("ready", "failed"):
            return self.state.status

        if st == "loading":
            log.debug("Engine load already in flight; waiting for it")
            status = await self.state.wait(self.poll_ms / 1000.0, self.sleep)
            if status.state != "not_started":
                return status
            # the owning load was cancelled; this caller runs its own
            log.info("In-flight engine load was abandoned; starting a fresh load")
            return await self.ensure_loaded(api_key, max_retries, retry_delay_ms)

        existing = self.transport.surface()
        if existing is not None:
            log.info("Engine already loaded")
            self.state.finish(EngineStatus(state="ready"), existing)
            return self.state.status

        self.state.begin()
        try:
            status, surface = await self._load(api_key, max_retries, retry_delay_ms)
        except BaseException:
            # cancelled mid-load: back to not_started, waiters start their own load
            self.state.finish(EngineStatus())
            raise
        self.state.finish(status, surface)
        return status

    async def _load(
        self,
        api_key: Optional[str],
        max_retries: int,
        retry_delay_ms: int,
    ) -> Tuple[EngineStatus, Optional[PlacesProvider]]:
        if not api_key:
            err = ConfigurationError(
                "Map engine API key is not configured. Set FISHING_MAP_GOOGLE_MAPS_API_KEY."
            )
            log.error("Engine load aborted: %s", err.message)
            return EngineStatus(state="failed", reason="missing_credentials", message=err.message), None

        attempts = 0
        while True:
            attempts += 1
            self.state.status = EngineStatus(state="loading", attempts=attempts)
            try:
                await self.transport.load(api_key, self.libraries)
                # load event can fire before the API surface is attached
                await self.sleep(self.settle_ms / 1000.0)
                surface = self.transport.surface()
                if surface is None:
                    raise RuntimeError("engine loaded but API surface not available")
                log.info("Engine ready after %d attempt(s)", attempts)
                return EngineStatus(state="ready", attempts=attempts), surface
            except Exception as e:
                log.warning("Engine load attempt %d/%d failed: %s", attempts, max_retries, e)

            if attempts >= max_retries:
                msg = (
                    f"Failed to load map engine after {attempts} attempts. "
                    "Please check your internet connection and API key."
                )
                log.error(msg)
                return EngineStatus(state="failed", reason="exhausted_retries",
                                    attempts=attempts, message=msg), None

            await self.sleep(retry_delay_ms / 1000.0)
