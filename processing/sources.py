"""
Attribute Source Adapters

Each election year's ward attributes (Party, Candidate Name, Areas, ...) come
from one of several interchangeable sources, selected by the year's `source`
key in config.yaml:

    embedded     - attributes already on the GeoJSON feature properties
    local        - a JSON array sidecar (bmc_{year}_attributes.json)
    spreadsheet  - a published spreadsheet exported as CSV
    relay        - the relay API returning {geojson, attributes}

All of them produce a list of attribute records (plain dicts) for the join.
"""

import asyncio
import io
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
from loguru import logger

from ops import Config

from .errors import AttributeSourceError, ConfigMissing, FetchError
from .fetch import Fetcher
from .geometry import GeometryLoader, validate_feature_collection

Record = Dict[str, Any]


def _balance_quotes(text: str) -> str:
    """
    Drop the quotes of every line whose quotes do not pair up.

    An unterminated quote would otherwise run on to the end of the text and
    swallow every later row. Quoted cells spanning several lines are split
    the same way.
    """
    lines = text.splitlines()
    unbalanced = 0
    for index, line in enumerate(lines):
        if line.count('"') % 2:
            lines[index] = line.replace('"', "")
            unbalanced += 1
    if unbalanced:
        logger.warning(f"⚠️ {unbalanced} CSV lines had unbalanced quotes, split them unquoted")
    return "\n".join(lines)


def parse_csv_records(text: str) -> List[Record]:
    """
    Parse delimited text into records keyed by the header row.

    Values stay strings. Row-level problems never abort the parse: blank
    lines are skipped, rows with extra fields are cut to the header width,
    rows with missing fields simply lack those keys, and a line with an
    unbalanced quote is split without quoting.

    Raises:
        ValueError: if the text cannot be tokenised at all
    """
    if not text or not text.strip():
        return []

    text = _balance_quotes(text)
    # Upper bound on fields per row, so short and long rows both fit the frame
    max_fields = max(line.count(",") for line in text.splitlines()) + 1
    try:
        raw = pd.read_csv(
            io.StringIO(text),
            header=None,
            names=list(range(max_fields)),
            dtype=object,
            keep_default_na=False,
            engine="python",
            on_bad_lines=lambda bad_line: bad_line[:max_fields],
        )
    except pd.errors.EmptyDataError:
        return []
    except pd.errors.ParserError as e:
        raise ValueError(f"unreadable CSV: {e}") from e

    if raw.empty:
        return []

    header = raw.iloc[0]
    present = [position for position, value in enumerate(header) if not pd.isna(value)]
    width = present[-1] + 1 if present else 0
    columns = [str(value) for value in header.iloc[:width]]

    records = []
    for row in raw.iloc[1:, :width].itertuples(index=False, name=None):
        records.append({key: value for key, value in zip(columns, row) if not pd.isna(value)})
    return records


def embedded_records(collection: Dict[str, Any]) -> List[Record]:
    """Records taken straight from the feature properties."""
    return [dict(feature.get("properties") or {}) for feature in collection.get("features") or []]


def _coerce_records(payload: Any, year: str, location: str) -> List[Record]:
    if not isinstance(payload, list):
        raise AttributeSourceError(year, f"{location} is not a JSON array")
    records = [item for item in payload if isinstance(item, dict)]
    skipped = len(payload) - len(records)
    if skipped:
        logger.warning(f"⚠️ Skipped {skipped} non-object attribute entries in {location}")
    return records


class AttributeSource(ABC):
    """Produces attribute records for an election year."""

    kind = ""

    def __init__(self, config: Config, fetcher: Fetcher):
        self.config = config
        self.fetcher = fetcher

    @abstractmethod
    async def fetch_records(self, year: str) -> List[Record]:
        """Fetch the attribute records for a year."""

    async def load(
        self, year: str, geometry_loader: GeometryLoader
    ) -> Tuple[Dict[str, Any], List[Record]]:
        """Load geometry and attributes for a year concurrently."""
        collection, records = await asyncio.gather(
            geometry_loader.load(year), self.fetch_records(year)
        )
        return collection, records


class EmbeddedSource(AttributeSource):
    """Attributes live on the geometry itself; the adapter is identity."""

    kind = "embedded"

    def __init__(
        self, config: Config, fetcher: Fetcher, geometry_loader: Optional[GeometryLoader] = None
    ):
        super().__init__(config, fetcher)
        self.geometry_loader = geometry_loader or GeometryLoader(config, fetcher)

    async def fetch_records(self, year: str) -> List[Record]:
        collection = await self.geometry_loader.load(year)
        return embedded_records(collection)

    async def load(
        self, year: str, geometry_loader: GeometryLoader
    ) -> Tuple[Dict[str, Any], List[Record]]:
        collection = await geometry_loader.load(year)
        return collection, embedded_records(collection)


class LocalFileSource(AttributeSource):
    """JSON array sidecar, from a local path or URL."""

    kind = "local"

    def location_for(self, year: str) -> str:
        template = self.config.get("attributes.local_location")
        return self.config.resolve_location(template, year=year)

    async def fetch_records(self, year: str) -> List[Record]:
        location = self.location_for(year)
        logger.info(f"📄 Loading attributes for {year} from {location}")
        try:
            payload = await self.fetcher.fetch_json(location)
        except FetchError as e:
            raise AttributeSourceError(year, str(e), status_code=e.status_code) from e

        records = _coerce_records(payload, year, location)
        logger.success(f"  ✅ Loaded {len(records)} attribute records for {year}")
        return records


class SpreadsheetSource(AttributeSource):
    """Published spreadsheet tab exported as CSV."""

    kind = "spreadsheet"

    def __init__(self, config: Config, fetcher: Fetcher, year: str):
        super().__init__(config, fetcher)
        # Raises ConfigMissing up front so no fetch is attempted
        self.sheet_id, self.gid = config.get_sheet_config(year)

    def location_for(self, year: str) -> str:
        template = self.config.get("attributes.spreadsheet_url")
        return template.format(sheet_id=self.sheet_id, gid=self.gid, year=year)

    async def fetch_records(self, year: str) -> List[Record]:
        url = self.location_for(year)
        logger.info(f"📊 Fetching spreadsheet attributes for {year}")
        logger.debug(f"   {url}")
        try:
            text = await self.fetcher.fetch_text(url)
        except FetchError as e:
            raise AttributeSourceError(year, str(e), status_code=e.status_code) from e

        try:
            records = parse_csv_records(text)
        except ValueError as e:
            raise AttributeSourceError(year, str(e)) from e

        logger.success(f"  ✅ Parsed {len(records)} spreadsheet rows for {year}")
        return records


class RelaySource(AttributeSource):
    """
    Relay API: GET {api_base_url}/api/geojson/{year} returns both the
    FeatureCollection and the attribute array in one response.
    """

    kind = "relay"

    def location_for(self, year: str) -> str:
        template = self.config.get("attributes.relay_location")
        return self.config.resolve_location(template, year=year)

    async def _fetch_payload(self, year: str) -> Tuple[Dict[str, Any], List[Record]]:
        url = self.location_for(year)
        logger.info(f"🌐 Fetching {year} from relay {url}")
        try:
            status, body = await self.fetcher.fetch_json_with_status(url)
        except FetchError as e:
            raise AttributeSourceError(year, str(e), status_code=e.status_code) from e

        if status >= 400 or not isinstance(body, dict) or "error" in body:
            message = "unexpected relay response"
            if isinstance(body, dict) and body.get("error"):
                message = str(body["error"])
                if body.get("details"):
                    message = f"{message}: {body['details']}"
            raise AttributeSourceError(year, message, status_code=status)

        collection = validate_feature_collection(body.get("geojson"), year)
        records = _coerce_records(body.get("attributes"), year, url)
        logger.success(
            f"  ✅ Relay returned {len(collection['features'])} features, {len(records)} records"
        )
        return collection, records

    async def fetch_records(self, year: str) -> List[Record]:
        _, records = await self._fetch_payload(year)
        return records

    async def load(
        self, year: str, geometry_loader: GeometryLoader
    ) -> Tuple[Dict[str, Any], List[Record]]:
        return await self._fetch_payload(year)


SOURCE_KINDS = ("embedded", "local", "spreadsheet", "relay")


def build_attribute_source(config: Config, year: str, fetcher: Fetcher) -> AttributeSource:
    """
    Select the attribute source for a year from configuration.

    Raises:
        ConfigMissing: unknown year, unknown source kind, or missing sheet ids
    """
    year = str(year)
    kind = config.get_source_kind(year)
    logger.debug(f"🔌 Attribute source for {year}: {kind}")

    if kind == "embedded":
        return EmbeddedSource(config, fetcher)
    if kind == "local":
        return LocalFileSource(config, fetcher)
    if kind == "spreadsheet":
        return SpreadsheetSource(config, fetcher, year)
    if kind == "relay":
        return RelaySource(config, fetcher)
    raise ConfigMissing(
        year, f"Unknown attribute source '{kind}' for year {year}, expected one of {', '.join(SOURCE_KINDS)}"
    )
