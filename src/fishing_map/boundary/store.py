"""EEZ boundary loading: one WFS fetch per session, validated and cached."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from fishing_map.core.models import BoundaryPart, BoundaryPolygon, Coordinate
from fishing_map.errors import DataIntegrityError, TransientProviderError
from fishing_map.providers.http import HTTPClient

log = logging.getLogger(__name__)

Ring = List[Coordinate]


def wfs_params(filter_id: Any, typename: str = "MarineRegions:eez") -> Dict[str, str]:
    """GetFeature query selecting one Marine Regions zone by ``mrgid``."""
    return {
        "request": "getfeature",
        "service": "wfs",
        "version": "1.1.0",
        "typename": typename,
        "outputformat": "json",
        "filter": (
            "<PropertyIsEqualTo><PropertyName>mrgid</PropertyName>"
            f"<Literal>{filter_id}</Literal></PropertyIsEqualTo>"
        ),
    }


def _ring(raw: Any) -> Ring:
    if not isinstance(raw, list):
        raise DataIntegrityError("ring is not a list")
    out: Ring = []
    for pos in raw:
        if not isinstance(pos, (list, tuple)) or len(pos) < 2:
            raise DataIntegrityError(f"bad position: {pos!r}")
        # GeoJSON positions are [lng, lat(, alt)]
        out.append(Coordinate(lat=float(pos[1]), lng=float(pos[0])))
    return out


def _polygon_part(coords: Any) -> BoundaryPart:
    if not isinstance(coords, list) or not coords:
        raise DataIntegrityError("polygon has no rings")
    return BoundaryPart(shell=_ring(coords[0]), holes=[_ring(h) for h in coords[1:]])


def parse_feature_collection(data: Any) -> BoundaryPolygon:
    """Turn a GeoJSON FeatureCollection into a BoundaryPolygon.

    Raises DataIntegrityError for anything that is not a non-empty collection
    of Polygon/MultiPolygon features.
    """
    if not isinstance(data, dict) or data.get("type") != "FeatureCollection":
        raise DataIntegrityError("payload is not a FeatureCollection")

    features = data.get("features")
    if not isinstance(features, list) or not features:
        raise DataIntegrityError("FeatureCollection has no features")

    parts: List[BoundaryPart] = []
    try:
        for feat in features:
            geom = (feat or {}).get("geometry") or {}
            gtype = geom.get("type")
            coords = geom.get("coordinates")
            if gtype == "Polygon":
                parts.append(_polygon_part(coords))
            elif gtype == "MultiPolygon":
                for poly in coords or []:
                    parts.append(_polygon_part(poly))
            else:
                log.debug("Skipping boundary feature with geometry %s", gtype)
    except (ValidationError, TypeError, ValueError) as e:
        raise DataIntegrityError(f"invalid coordinates: {e}") from e

    if not parts:
        raise DataIntegrityError("no polygon geometry in FeatureCollection")

    props = (features[0] or {}).get("properties") or {}
    area = props.get("area_km2")
    try:
        area_km2 = float(area) if area is not None else None
    except (TypeError, ValueError):
        area_km2 = None

    return BoundaryPolygon(
        name=str(props.get("geoname") or "Exclusive Economic Zone"),
        territory=str(props.get("territory1") or ""),
        area_km2=area_km2,
        parts=parts,
    )


class BoundaryStore:
    """
    Fetches the boundary once. Any failure (transport, non-2xx, malformed body)
    leaves the boundary absent for the rest of the session; there is no retry.
    """

    def __init__(self, client: HTTPClient, typename: str = "MarineRegions:eez"):
        self.client = client
        self.typename = typename
        self._loaded = False
        self._polygon: Optional[BoundaryPolygon] = None
        self._lock = asyncio.Lock()

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def polygon(self) -> Optional[BoundaryPolygon]:
        return self._polygon

    def _fetch_sync(self, endpoint: str, filter_id: Any) -> BoundaryPolygon:
        data = self.client.get_json(endpoint, params=wfs_params(filter_id, self.typename))
        return parse_feature_collection(data)

    async def load(self, endpoint: str, filter_id: Any) -> Optional[BoundaryPolygon]:
        async with self._lock:
            if self._loaded:
                return self._polygon

            try:
                self._polygon = await asyncio.to_thread(self._fetch_sync, endpoint, filter_id)
                log.info(
                    "Boundary loaded: %s (%d ring(s), %d hole(s))",
                    self._polygon.name, len(self._polygon.rings), len(self._polygon.holes),
                )
            except (TransientProviderError, DataIntegrityError) as e:
                log.warning("Boundary unavailable (%s): %s", type(e).__name__, e)
                self._polygon = None
            except Exception as e:
                log.exception("Unexpected error loading boundary: %s", e)
                self._polygon = None

            self._loaded = True
            return self._polygon
