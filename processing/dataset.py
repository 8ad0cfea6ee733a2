"""
Year dataset cycle: fetch geometry and attributes, join once, aggregate.

A YearDataset is built completely before anyone sees it; the view swaps it
in with a single assignment so consumers never observe a half-joined state.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from loguru import logger

from mapping.bounds import collect_bounding_set
from ops import Config

from .aggregate import tally_party_seats
from .fetch import Fetcher
from .geometry import GeometryLoader
from .join import JoinReport, join_attributes
from .sources import build_attribute_source


@dataclass
class YearDataset:
    """Joined ward data for one election year."""

    year: str
    collection: Dict[str, Any]
    records: List[Dict[str, Any]]
    tally: Dict[str, int]
    bounding_set: List[List[float]]
    join_report: JoinReport = field(default_factory=JoinReport)
    loaded_at: float = field(default_factory=time.time)

    @property
    def features(self) -> List[Dict[str, Any]]:
        return self.collection.get("features") or []

    @property
    def ward_count(self) -> int:
        return len(self.features)


class DatasetBuilder:
    """Runs one fetch-join-aggregate cycle for a year."""

    def __init__(self, config: Config, fetcher: Optional[Fetcher] = None):
        self.config = config
        self.fetcher = fetcher or Fetcher(
            timeout=config.get_http_timeout(), base_dir=config.project_root
        )
        self.geometry_loader = GeometryLoader(config, self.fetcher)

    async def build(self, year: str) -> YearDataset:
        """
        Build the joined dataset for a year.

        Raises:
            ConfigMissing: before any fetch, if the year has no source
            GeometryLoadError / AttributeSourceError: on fetch or parse failure
        """
        year = str(year)
        source = build_attribute_source(self.config, year, self.fetcher)

        start_time = time.time()
        collection, records = await source.load(year, self.geometry_loader)

        report = join_attributes(collection, records)
        tally = tally_party_seats(collection)
        bounding_set = collect_bounding_set(collection)

        elapsed = time.time() - start_time
        logger.success(
            f"✅ {year}: {report.matched}/{report.total_features} wards joined "
            f"from {source.kind} source in {elapsed:.1f}s"
        )
        return YearDataset(
            year=year,
            collection=collection,
            records=records,
            tally=tally,
            bounding_set=bounding_set,
            join_report=report,
        )
