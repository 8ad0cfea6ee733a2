"""
Ward Join Engine

Matches each ward feature of a GeoJSON FeatureCollection to its attribute
record and replaces the feature's properties in place.

Matching order per record (first record satisfying any rule wins):
    1. record ward_number == feature id (strict: "12" != 12)
    2. record name == feature id
    3. record ward_number == feature id after numeric coercion of both sides

Rule 3 exists because spreadsheet exports deliver ward numbers as strings
while JSON sidecars carry numbers. Identifiers should really be normalised to
one type at ingestion; the fallback order is kept as-is for compatibility.

The join is a nested scan, O(features x records). That is fine for the ~227
BMC wards but does not scale to materially larger datasets.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from loguru import logger

from .errors import JoinMismatch


def _is_present(value: Any) -> bool:
    return value is not None and value != ""


def ward_identifier(properties: Optional[Dict[str, Any]]) -> Any:
    """Raw identifier of a feature: ward_number if present, else name."""
    if not properties:
        return None
    ward_number = properties.get("ward_number")
    if _is_present(ward_number):
        return ward_number
    name = properties.get("name")
    return name if _is_present(name) else None


def _as_number(value: Any) -> Optional[float]:
    """Numeric coercion; None for anything that is not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    return number if math.isfinite(number) else None


def _strict_equal(left: Any, right: Any) -> bool:
    return type(left) is type(right) and left == right


def record_matches(record: Dict[str, Any], ward_id: Any) -> bool:
    """True if an attribute record matches a feature identifier."""
    record_ward = record.get("ward_number")
    if _strict_equal(record_ward, ward_id):
        return True
    if _strict_equal(record.get("name"), ward_id):
        return True
    left = _as_number(record_ward)
    return left is not None and left == _as_number(ward_id)


def find_record(records: Sequence[Dict[str, Any]], ward_id: Any) -> Optional[Dict[str, Any]]:
    """First record in sequence order matching ward_id, or None."""
    if ward_id is None:
        return None
    for record in records:
        if isinstance(record, dict) and record_matches(record, ward_id):
            return record
    return None


@dataclass
class JoinReport:
    """Outcome of one join pass."""

    total_features: int = 0
    matched: int = 0
    mismatches: List[JoinMismatch] = field(default_factory=list)

    @property
    def unmatched(self) -> int:
        return len(self.mismatches)


def join_attributes(
    collection: Dict[str, Any], records: Sequence[Dict[str, Any]]
) -> JoinReport:
    """
    Join attribute records onto a FeatureCollection in place.

    Each matched feature receives a shallow copy of its record as properties;
    an unmatched feature receives an empty dict.

    Args:
        collection: GeoJSON FeatureCollection dict (mutated)
        records: Attribute records in priority order

    Returns:
        JoinReport with match counts and per-feature mismatches
    """
    features = collection.get("features") or []
    report = JoinReport(total_features=len(features))

    for index, feature in enumerate(features):
        ward_id = ward_identifier(feature.get("properties"))
        match = find_record(records, ward_id)
        if match is not None:
            feature["properties"] = dict(match)
            report.matched += 1
        else:
            feature["properties"] = {}
            mismatch = JoinMismatch(ward_id, index)
            report.mismatches.append(mismatch)
            logger.debug(f"   {mismatch}")

    if report.mismatches:
        logger.warning(
            f"⚠️ {report.unmatched}/{report.total_features} wards had no attribute record"
        )
    logger.debug(f"🔗 Joined {report.matched}/{report.total_features} wards to {len(records)} records")
    return report
