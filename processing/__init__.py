"""
Processing package for Mumbai Ward Maps

Attribute sourcing, geometry loading, the ward join and seat aggregation.
"""

from .aggregate import tally_party_seats
from .errors import (
    AttributeSourceError,
    ConfigMissing,
    DataUnavailable,
    FetchError,
    GeometryLoadError,
    JoinMismatch,
    WardMapError,
)
from .join import join_attributes, ward_identifier

__all__ = [
    "WardMapError",
    "FetchError",
    "DataUnavailable",
    "GeometryLoadError",
    "AttributeSourceError",
    "ConfigMissing",
    "JoinMismatch",
    "join_attributes",
    "ward_identifier",
    "tally_party_seats",
]
