"""
Error taxonomy for the ward map pipeline.

Every failure a fetch cycle can hit derives from WardMapError so the refresh
scheduler can catch them at one boundary. DataUnavailable covers I/O failures
for a given year; ConfigMissing is raised before any fetch is attempted.
"""

from typing import Any, Optional


class WardMapError(Exception):
    """Base class for all ward map errors."""


class FetchError(WardMapError):
    """A single fetch of a local file or URL failed."""

    def __init__(self, location: str, message: str, status_code: Optional[int] = None):
        self.location = location
        self.status_code = status_code
        super().__init__(f"{location}: {message}")


class DataUnavailable(WardMapError):
    """Data for a year could not be fetched or parsed."""

    def __init__(self, year: str, message: str, status_code: Optional[int] = None):
        self.year = str(year)
        self.status_code = status_code
        super().__init__(message)


class GeometryLoadError(DataUnavailable):
    """The ward boundary FeatureCollection for a year failed to load."""

    def __init__(self, year: str, message: str, status_code: Optional[int] = None):
        status = f" (HTTP {status_code})" if status_code is not None else ""
        super().__init__(year, f"Geometry for {year} unavailable{status}: {message}", status_code)


class AttributeSourceError(DataUnavailable):
    """Tabular ward attributes for a year failed to load."""

    def __init__(self, year: str, message: str, status_code: Optional[int] = None):
        status = f" (HTTP {status_code})" if status_code is not None else ""
        super().__init__(year, f"Attributes for {year} unavailable{status}: {message}", status_code)


class ConfigMissing(WardMapError):
    """No source configuration exists for the requested year."""

    def __init__(self, year: Any, message: Optional[str] = None):
        self.year = str(year)
        super().__init__(message or f"No source configured for year {year}")


class JoinMismatch(WardMapError):
    """
    A feature whose identifier matched no attribute record.

    Not raised: the join collects these in its report and the feature keeps
    an empty attribute mapping.
    """

    def __init__(self, ward_id: Any, feature_index: int):
        self.ward_id = ward_id
        self.feature_index = feature_index
        super().__init__(f"No attribute record for ward {ward_id!r} (feature #{feature_index})")
