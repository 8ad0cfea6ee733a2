"""
Bounds Calculator

Flattens the outer rings of every ward polygon into one list of
[latitude, longitude] points (Leaflet's coordinate order) and fits the map
viewport to them.
"""

from typing import Any, Dict, List, Optional, Sequence

from loguru import logger

DEFAULT_CENTER = [19.076, 72.8777]
DEFAULT_ZOOM = 11


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def _is_position(value: Any) -> bool:
    return (
        _is_sequence(value)
        and len(value) >= 2
        and all(isinstance(axis, (int, float)) and not isinstance(axis, bool) for axis in value[:2])
    )


def _outer_rings(geometry: Optional[Dict[str, Any]]) -> List[Sequence[Any]]:
    if not isinstance(geometry, dict):
        return []
    coords = geometry.get("coordinates")
    if not _is_sequence(coords) or not coords:
        return []
    geom_type = geometry.get("type")
    if geom_type == "Polygon":
        polygons = [coords]
    elif geom_type == "MultiPolygon":
        polygons = coords
    else:
        return []
    return [
        polygon[0] for polygon in polygons if _is_sequence(polygon) and polygon and _is_sequence(polygon[0])
    ]


def collect_bounding_set(collection: Dict[str, Any]) -> List[List[float]]:
    """
    Collect [lat, lng] points from the outer ring of each polygon.

    Polygon contributes its first ring only; MultiPolygon contributes the
    first ring of each member polygon. Other geometry types and malformed
    rings or positions are skipped.
    """
    points: List[List[float]] = []
    for feature in collection.get("features") or []:
        for ring in _outer_rings(feature.get("geometry")):
            for position in ring:
                if _is_position(position):
                    lng, lat = position[0], position[1]
                    points.append([lat, lng])
    return points


def bounds_rectangle(points: Sequence[Sequence[float]]) -> Optional[List[List[float]]]:
    """[[south, west], [north, east]] for a bounding set, or None if empty."""
    if not points:
        return None
    lats = [point[0] for point in points]
    lngs = [point[1] for point in points]
    return [[min(lats), min(lngs)], [max(lats), max(lngs)]]


class Viewport:
    """Map centre, zoom and fitted bounds."""

    def __init__(self, center: Optional[Sequence[float]] = None, zoom: int = DEFAULT_ZOOM):
        self.center = list(center) if center else list(DEFAULT_CENTER)
        self.zoom = zoom
        self.bounds: Optional[List[List[float]]] = None

    def fit(self, points: Sequence[Sequence[float]]) -> bool:
        """
        Fit the viewport to a bounding set.

        An empty set leaves the viewport untouched. Returns True if the
        viewport changed.
        """
        rectangle = bounds_rectangle(points)
        if rectangle is None:
            logger.debug("📍 Empty bounding set, keeping current viewport")
            return False

        (south, west), (north, east) = rectangle
        self.bounds = rectangle
        self.center = [(south + north) / 2, (west + east) / 2]
        logger.debug(f"📍 Viewport fitted to {rectangle} ({len(points)} points)")
        return True

    def snapshot(self) -> Dict[str, Any]:
        return {"center": list(self.center), "zoom": self.zoom, "bounds": self.bounds}
