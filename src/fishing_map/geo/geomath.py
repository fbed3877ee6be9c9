"""Great-circle distance and polygon containment."""
from __future__ import annotations

from math import atan2, cos, radians, sin, sqrt
from typing import List, Sequence, Tuple

from shapely import make_valid, prepare
from shapely.geometry import Point, Polygon
from shapely.geometry.base import BaseGeometry
from shapely.ops import unary_union

from fishing_map.core.models import BoundaryPart, BoundaryPolygon, Coordinate


EARTH_RADIUS_KM = 6371.0


def distance_km(a: Coordinate, b: Coordinate) -> float:
    """Haversine great-circle distance in kilometres."""
    lat1r, lon1r, lat2r, lon2r = map(radians, [a.lat, a.lng, b.lat, b.lng])
    dlat = lat2r - lat1r
    dlon = lon2r - lon1r
    h = sin(dlat / 2) ** 2 + cos(lat1r) * cos(lat2r) * sin(dlon / 2) ** 2
    return EARTH_RADIUS_KM * 2 * atan2(sqrt(h), sqrt(1 - h))


def _xy(ring: Sequence[Coordinate]) -> List[Tuple[float, float]]:
    # shapely is x/y, i.e. lng/lat
    return [(c.lng, c.lat) for c in ring]


def _part_polygon(part: BoundaryPart) -> BaseGeometry:
    poly = Polygon(_xy(part.shell), [_xy(h) for h in part.holes if len(h) >= 3])
    if not poly.is_valid:
        poly = make_valid(poly)
    return poly


def boundary_geometry(polygon: BoundaryPolygon) -> BaseGeometry:
    """Prepared shapely geometry for *polygon*, built once and cached on it."""
    if polygon._geometry is None:
        geom = unary_union([_part_polygon(p) for p in polygon.parts if len(p.shell) >= 3])
        prepare(geom)
        polygon._geometry = geom
    return polygon._geometry


def point_in_polygon(p: Coordinate, polygon: BoundaryPolygon) -> bool:
    """
    True when *p* lies strictly inside any member of *polygon*, outside that member's holes.

    Tie-break: a point exactly on a ring or hole edge counts as outside
    (shapely ``contains`` semantics), for every call.
    """
    return bool(boundary_geometry(polygon).contains(Point(p.lng, p.lat)))
