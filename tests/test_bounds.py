"""Bounding set collection and viewport fitting."""

from mapping.bounds import DEFAULT_CENTER, DEFAULT_ZOOM, Viewport, bounds_rectangle, collect_bounding_set
from tests.conftest import feature_collection, square


def test_polygon_contributes_outer_ring_only():
    outer = square(72.8, 19.0, 0.1)
    hole = square(72.82, 19.02, 0.01)
    collection = feature_collection(
        {"type": "Feature", "properties": {}, "geometry": {"type": "Polygon", "coordinates": [outer, hole]}}
    )

    points = collect_bounding_set(collection)

    assert len(points) == len(outer)
    assert points[0] == [19.0, 72.8]


def test_multipolygon_contributes_each_outer_ring():
    first = square(72.8, 19.0)
    second = square(72.9, 19.1)
    collection = feature_collection(
        {
            "type": "Feature",
            "properties": {},
            "geometry": {"type": "MultiPolygon", "coordinates": [[first], [second, square(72.91, 19.11, 0.001)]]},
        }
    )

    points = collect_bounding_set(collection)

    assert len(points) == len(first) + len(second)


def test_other_geometries_are_ignored():
    collection = feature_collection(
        {"type": "Feature", "properties": {}, "geometry": {"type": "Point", "coordinates": [72.8, 19.0]}},
        {"type": "Feature", "properties": {}, "geometry": None},
    )

    assert collect_bounding_set(collection) == []


def test_bounds_rectangle():
    assert bounds_rectangle([]) is None
    assert bounds_rectangle([[19.0, 72.9], [19.2, 72.8], [18.9, 72.85]]) == [[18.9, 72.8], [19.2, 72.9]]


def test_viewport_fit_centres_on_bounds():
    viewport = Viewport()

    changed = viewport.fit([[19.0, 72.8], [19.2, 73.0]])

    assert changed
    assert viewport.bounds == [[19.0, 72.8], [19.2, 73.0]]
    assert abs(viewport.center[0] - 19.1) < 1e-9
    assert abs(viewport.center[1] - 72.9) < 1e-9


def test_empty_bounding_set_leaves_viewport_unchanged():
    viewport = Viewport()
    viewport.fit([[19.0, 72.8], [19.2, 73.0]])
    before = viewport.snapshot()

    assert viewport.fit([]) is False
    assert viewport.snapshot() == before


def test_viewport_defaults():
    viewport = Viewport()

    assert viewport.center == DEFAULT_CENTER
    assert viewport.zoom == DEFAULT_ZOOM
    assert viewport.bounds is None


def test_malformed_rings_are_skipped():
    good = square(72.8, 19.0)
    collection = feature_collection(
        {"type": "Feature", "properties": {}, "geometry": {"type": "Polygon", "coordinates": [[72.8, 19.0]]}},
        {"type": "Feature", "properties": {}, "geometry": {"type": "Polygon", "coordinates": [72.8, 19.0]}},
        {"type": "Feature", "properties": {}, "geometry": {"type": "MultiPolygon", "coordinates": [5, [], [[None, "x"]]]}},
        {"type": "Feature", "properties": {}, "geometry": {"type": "Polygon", "coordinates": [[[72.8], "19.0", [True, 1]]]}},
        {"type": "Feature", "properties": {}, "geometry": {"type": "Polygon", "coordinates": [good]}},
    )

    points = collect_bounding_set(collection)

    assert points == [[lat, lng] for lng, lat in good]
