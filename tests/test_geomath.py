import itertools

import pytest

from fishing_map.core.models import BoundaryPart, BoundaryPolygon, Coordinate
from fishing_map.geo.geomath import distance_km, point_in_polygon

POINTS = [
    Coordinate(lat=13.0827, lng=80.2707),
    Coordinate(lat=13.10, lng=80.30),
    Coordinate(lat=-33.86, lng=151.21),
    Coordinate(lat=51.5, lng=-0.12),
    Coordinate(lat=89.9, lng=179.9),
]


@pytest.mark.parametrize("p", POINTS)
def test_distance_to_self_is_zero(p):
    assert distance_km(p, p) == 0.0


def test_distance_is_symmetric():
    for a, b in itertools.combinations(POINTS, 2):
        assert distance_km(a, b) == pytest.approx(distance_km(b, a), abs=1e-9)


def test_triangle_inequality():
    for a, b, c in itertools.permutations(POINTS, 3):
        assert distance_km(a, c) <= distance_km(a, b) + distance_km(b, c) + 1e-6


def test_known_distance_chennai():
    d = distance_km(Coordinate(lat=13.0827, lng=80.2707), Coordinate(lat=13.10, lng=80.30))
    assert d == pytest.approx(3.711, abs=0.01)


def test_one_degree_of_latitude():
    d = distance_km(Coordinate(lat=0, lng=0), Coordinate(lat=1, lng=0))
    assert d == pytest.approx(111.195, abs=0.01)


def test_square_inside_outside(square):
    assert point_in_polygon(Coordinate(lat=5, lng=5), square) is True
    assert point_in_polygon(Coordinate(lat=15, lng=5), square) is False
    assert point_in_polygon(Coordinate(lat=-0.001, lng=5), square) is False
    assert point_in_polygon(Coordinate(lat=9.999, lng=5), square) is True
    assert point_in_polygon(Coordinate(lat=10.001, lng=5), square) is False


def test_edge_points_count_as_outside(square):
    on_edge = Coordinate(lat=10, lng=5)
    corner = Coordinate(lat=0, lng=0)
    for _ in range(5):
        assert point_in_polygon(on_edge, square) is False
        assert point_in_polygon(corner, square) is False


def test_repeated_calls_are_consistent(square):
    p = Coordinate(lat=3.3, lng=7.7)
    results = {point_in_polygon(p, square) for _ in range(10)}
    assert results == {True}


def test_multiple_rings_are_or_combined(ring_factory):
    zone = BoundaryPolygon(
        name="Split Zone",
        parts=[
            BoundaryPart(shell=ring_factory(0, 0, 10, 10)),
            BoundaryPart(shell=ring_factory(20, 20, 30, 30)),
        ],
    )
    assert point_in_polygon(Coordinate(lat=5, lng=5), zone)
    assert point_in_polygon(Coordinate(lat=25, lng=25), zone)
    assert not point_in_polygon(Coordinate(lat=15, lng=15), zone)


def test_holes_are_excluded(ring_factory):
    zone = BoundaryPolygon(
        name="Holed Zone",
        parts=[BoundaryPart(shell=ring_factory(0, 0, 10, 10), holes=[ring_factory(4, 4, 6, 6)])],
    )
    assert not point_in_polygon(Coordinate(lat=5, lng=5), zone)
    assert point_in_polygon(Coordinate(lat=2, lng=2), zone)
    # hole edge behaves like any other edge
    assert not point_in_polygon(Coordinate(lat=4, lng=5), zone)


def test_island_inside_another_members_hole_is_inside(ring_factory):
    lagoon = BoundaryPart(shell=ring_factory(0, 0, 10, 10), holes=[ring_factory(3, 3, 7, 7)])
    island = BoundaryPart(shell=ring_factory(4, 4, 6, 6))
    zone = BoundaryPolygon(name="Atoll Zone", parts=[lagoon, island])

    assert point_in_polygon(Coordinate(lat=5, lng=5), zone)
    assert not point_in_polygon(Coordinate(lat=3.5, lng=3.5), zone)
    assert point_in_polygon(Coordinate(lat=1, lng=1), zone)
    assert len(zone.rings) == 2
    assert len(zone.holes) == 1


def test_coordinate_range_is_validated():
    with pytest.raises(ValueError):
        Coordinate(lat=91, lng=0)
    with pytest.raises(ValueError):
        Coordinate(lat=0, lng=-180.5)
