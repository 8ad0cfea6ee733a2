"""
Geometry Loader

Fetches the ward boundary FeatureCollection for one election year, from a
local file (bmc_{year}_cleaned.geojson) or a URL, and validates its shape
before anything is joined against it.
"""

from typing import Any, Dict, Optional

from loguru import logger
from shapely.geometry import shape

from ops import Config

from .errors import FetchError, GeometryLoadError
from .fetch import Fetcher

SUPPORTED_GEOMETRIES = ("Polygon", "MultiPolygon")


def validate_feature_collection(payload: Any, year: str) -> Dict[str, Any]:
    """
    Check a parsed payload is a FeatureCollection and normalise its features.

    Null properties become {}. Features with unsupported or invalid geometry
    are kept (they simply contribute nothing to bounds) but logged.
    """
    if not isinstance(payload, dict) or payload.get("type") != "FeatureCollection":
        raise GeometryLoadError(year, "payload is not a GeoJSON FeatureCollection")

    features = payload.get("features")
    if not isinstance(features, list):
        raise GeometryLoadError(year, "FeatureCollection has no features array")

    unsupported = 0
    for index, feature in enumerate(features):
        if not isinstance(feature, dict):
            raise GeometryLoadError(year, f"feature #{index} is not an object")
        if feature.get("properties") is None:
            feature["properties"] = {}

        geometry = feature.get("geometry")
        geom_type = geometry.get("type") if isinstance(geometry, dict) else None
        if geom_type not in SUPPORTED_GEOMETRIES:
            unsupported += 1
            logger.debug(f"   Feature #{index} has unsupported geometry: {geom_type}")
            continue

        try:
            if not shape(geometry).is_valid:
                logger.debug(f"   Feature #{index} has an invalid {geom_type}")
        except Exception as e:
            logger.debug(f"   Feature #{index} geometry could not be parsed: {e}")

    if unsupported:
        logger.warning(f"⚠️ {unsupported} features in {year} are not Polygon/MultiPolygon")

    return payload


class GeometryLoader:
    """Loads the ward FeatureCollection for a year."""

    def __init__(self, config: Config, fetcher: Fetcher, location_template: Optional[str] = None):
        self.config = config
        self.fetcher = fetcher
        self.location_template = location_template or config.get("geometry.location")

    def location_for(self, year: str) -> str:
        return self.config.resolve_location(self.location_template, year=year)

    async def load(self, year: str) -> Dict[str, Any]:
        """
        Fetch and parse the FeatureCollection for a year.

        Raises:
            GeometryLoadError: on HTTP status, missing file or parse failure
        """
        year = str(year)
        location = self.location_for(year)
        logger.info(f"🗺️ Loading ward geometry for {year} from {location}")

        try:
            payload = await self.fetcher.fetch_json(location)
        except FetchError as e:
            raise GeometryLoadError(year, str(e), status_code=e.status_code) from e

        collection = validate_feature_collection(payload, year)
        logger.success(f"  ✅ Loaded {len(collection['features'])} ward features for {year}")
        return collection
