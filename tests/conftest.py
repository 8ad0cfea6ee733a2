"""Shared fixtures: sample ward collections, a fake requests session, temp configs."""

import copy
import json
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest
import requests
import yaml

from ops import Config


def square(lng: float, lat: float, size: float = 0.01) -> List[List[float]]:
    """Closed ring of a small square with its south-west corner at (lng, lat)."""
    return [
        [lng, lat],
        [lng + size, lat],
        [lng + size, lat + size],
        [lng, lat + size],
        [lng, lat],
    ]


def ward_feature(properties: Optional[Dict[str, Any]], lng: float = 72.85, lat: float = 19.05) -> Dict[str, Any]:
    return {
        "type": "Feature",
        "properties": properties,
        "geometry": {"type": "Polygon", "coordinates": [square(lng, lat)]},
    }


def feature_collection(*features: Dict[str, Any]) -> Dict[str, Any]:
    return {"type": "FeatureCollection", "features": list(features)}


SAMPLE_WARDS = feature_collection(
    ward_feature({"ward_number": 1, "name": "Colaba"}, 72.80, 18.90),
    ward_feature({"ward_number": 2, "name": "Fort"}, 72.83, 18.93),
    ward_feature({"ward_number": 3, "name": "Byculla"}, 72.83, 18.97),
)

SAMPLE_RECORDS = [
    {"ward_number": 1, "Party": "BJP", "Candidate Name": "A. Patil", "Areas": "Colaba, Cuffe Parade"},
    {"ward_number": 2, "Party": "INC", "Candidate Name": "B. Shaikh", "Areas": "Fort"},
    {"ward_number": 3, "Party": "ShivSena", "Candidate Name": "C. Sawant", "Areas": "Byculla"},
]


class FakeResponse:
    """Just enough of requests.Response for the Fetcher."""

    def __init__(self, status_code: int = 200, text: str = "", payload: Any = None):
        self.status_code = status_code
        self.text = text if payload is None else json.dumps(payload)

    def json(self) -> Any:
        return json.loads(self.text)

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)


class FakeSession:
    """Records every GET and answers from a url -> FakeResponse table."""

    def __init__(self, responses: Optional[Dict[str, Any]] = None):
        self.responses = responses or {}
        self.calls: List[str] = []

    def get(self, url: str, timeout: Optional[float] = None) -> FakeResponse:
        self.calls.append(url)
        response = self.responses.get(url)
        if response is None:
            raise requests.ConnectionError(f"no route to {url}")
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("WARDMAP_API_URL", raising=False)
    monkeypatch.delenv("WARDMAP_CONFIG_PATH", raising=False)
    monkeypatch.delenv("PROJECT_ROOT_OVERRIDE", raising=False)


@pytest.fixture
def sample_wards() -> Dict[str, Any]:
    return copy.deepcopy(SAMPLE_WARDS)


@pytest.fixture
def sample_records() -> List[Dict[str, Any]]:
    return copy.deepcopy(SAMPLE_RECORDS)


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def write_config(tmp_path) -> Callable[..., Config]:
    """Factory writing a config.yaml under tmp_path and loading it."""

    def _write(years: Optional[Dict[str, Any]] = None, **overrides: Any) -> Config:
        data: Dict[str, Any] = {
            "project_name": "Test Wards",
            "default_year": "2017",
            "years": years if years is not None else {"2017": {"source": "local"}},
            "api": {"base_url": "http://relay.test"},
            "parties": {
                "colors": {"BJP": "#FF9933", "ShivSena": "#FF6634"},
                "gradients": {"INC": "congressGradient"},
                "logos": {"BJP": "/logos/bjp.png"},
                "default_logo": "/logos/default.png",
            },
            "gradient_definitions": {"congressGradient": [[30, "#EE5A1C"], [100, "#166A2F"]]},
        }
        data.update(overrides)
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump(data), encoding="utf-8")
        return Config(path, project_root_override=tmp_path)

    return _write


@pytest.fixture
def write_year_files(tmp_path) -> Callable[..., None]:
    """Factory writing geometry and attribute sidecars under tmp_path/data."""

    def _write(year: str, collection: Dict[str, Any], records: Optional[List[Any]] = None) -> None:
        data_dir = Path(tmp_path) / "data"
        data_dir.mkdir(exist_ok=True)
        (data_dir / f"bmc_{year}_cleaned.geojson").write_text(json.dumps(collection), encoding="utf-8")
        if records is not None:
            (data_dir / f"bmc_{year}_attributes.json").write_text(json.dumps(records), encoding="utf-8")

    return _write
