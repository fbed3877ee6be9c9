import pytest

from fishing_map.core.models import BoundaryPart, BoundaryPolygon, Coordinate


def _ring(lat0: float, lng0: float, lat1: float, lng1: float):
    return [
        Coordinate(lat=lat0, lng=lng0),
        Coordinate(lat=lat1, lng=lng0),
        Coordinate(lat=lat1, lng=lng1),
        Coordinate(lat=lat0, lng=lng1),
    ]


@pytest.fixture
def square() -> BoundaryPolygon:
    """0..10 x 0..10 degree box."""
    return BoundaryPolygon(name="Test Zone", territory="Testland", parts=[BoundaryPart(shell=_ring(0, 0, 10, 10))])


@pytest.fixture
def ring_factory():
    return _ring
