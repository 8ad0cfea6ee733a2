"""Export of a joined year dataset as a GeoJSON file."""

from pathlib import Path
from typing import Union

import geopandas as gpd
from loguru import logger

from .dataset import YearDataset


def dataset_to_geodataframe(dataset: YearDataset) -> gpd.GeoDataFrame:
    """Joined wards as a GeoDataFrame in WGS84."""
    gdf = gpd.GeoDataFrame.from_features(dataset.features, crs="EPSG:4326")
    logger.debug(f"   GeoDataFrame for {dataset.year}: {len(gdf)} rows, columns {list(gdf.columns)}")
    return gdf


def export_geojson(dataset: YearDataset, output_path: Union[str, Path]) -> Path:
    """Write the joined FeatureCollection of a dataset to GeoJSON."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    gdf = dataset_to_geodataframe(dataset)
    if gdf.empty:
        logger.warning(f"⚠️ {dataset.year} has no wards to export")

    gdf.to_file(output_path, driver="GeoJSON")
    logger.success(f"  ✅ Exported {len(gdf)} wards for {dataset.year} → {output_path}")
    return output_path
