"""Folium rendering: layers, gradients, sidebar and interaction script."""

import copy

from mapping.bounds import Viewport, collect_bounding_set
from mapping.colors import StyleCache
from mapping.interaction import DeviceProfile, ShapeRegistry
from mapping.render import (
    HIGHLIGHT_FILL_KEY,
    IDLE_FILL_KEY,
    decorated_collection,
    error_banner_html,
    gradient_defs_html,
    render_ward_map,
    sidebar_html,
)
from processing.aggregate import tally_party_seats
from processing.dataset import YearDataset
from processing.join import join_attributes
from tests.conftest import SAMPLE_RECORDS, SAMPLE_WARDS


def make_dataset():
    collection = copy.deepcopy(SAMPLE_WARDS)
    join_attributes(collection, copy.deepcopy(SAMPLE_RECORDS))
    return YearDataset(
        year="2017",
        collection=collection,
        records=[],
        tally=tally_party_seats(collection),
        bounding_set=collect_bounding_set(collection),
    )


def test_gradient_defs():
    html = gradient_defs_html({"congressGradient": [[30, "#EE5A1C"], [100, "#166A2F"]]})

    assert '<linearGradient id="congressGradient"' in html
    assert '<stop offset="30%" stop-color="#EE5A1C" />' in html


def test_sidebar_lists_parties_by_seats():
    html = sidebar_html("2012", {"INC": 1, "BJP": 2, "<i>x</i>": 1})

    assert "Seats by Party (2012)" in html
    assert html.index("BJP") < html.index("INC")
    assert "&lt;i&gt;x&lt;/i&gt;" in html


def test_error_banner_is_escaped():
    html = error_banner_html("<script>alert(1)</script>")

    assert "<script>" not in html
    assert "Latest refresh failed" in html


def test_decorated_collection_leaves_dataset_untouched(write_config):
    config = write_config()
    dataset = make_dataset()
    registry = ShapeRegistry(config)
    registry.mount(dataset, StyleCache.from_config(config))

    decorated = decorated_collection(dataset, registry)

    first = decorated["features"][0]["properties"]
    assert first[IDLE_FILL_KEY] == "#FFF"
    assert first[HIGHLIGHT_FILL_KEY] == "#FF9933"
    assert IDLE_FILL_KEY not in dataset.features[0]["properties"]


def test_render_ward_map(write_config):
    config = write_config()
    dataset = make_dataset()
    viewport = Viewport()
    viewport.fit(dataset.bounding_set)

    m = render_ward_map(dataset, viewport, StyleCache.from_config(config), config, device=DeviceProfile.TOUCH)
    html = m.get_root().render()

    assert IDLE_FILL_KEY in html
    assert "touch:tap-open:idle" in html
    assert '"touch"' in html
    assert "congressGradient" in html
    assert "Seats by Party (2017)" in html
    assert "fitBounds" in html


def test_render_without_dataset_shows_error(write_config):
    config = write_config()

    m = render_ward_map(None, Viewport(), StyleCache.from_config(config), config, error="HTTP 500")
    html = m.get_root().render()

    assert "Latest refresh failed: HTTP 500" in html
    assert "Seats by Party" not in html
