"""Ward interaction state machine and shape registry."""

import pytest

from mapping.colors import StyleCache
from mapping.interaction import (
    DeviceProfile,
    InteractionEvent,
    ShapeRegistry,
    ShapeState,
    WardShape,
    popup_html,
    resolve_device,
    transition_table,
)
from processing.dataset import YearDataset
from processing.join import join_attributes
from tests.conftest import feature_collection, ward_feature


def make_shape(device=DeviceProfile.POINTER):
    return WardShape(
        ward_id=12,
        year="2017",
        properties={"ward_number": 12, "Party": "BJP"},
        idle_fill="#FFF",
        highlight_fill="url(#BJPGradient)",
        logo_url="/logos/bjp.png",
        base_style={"color": "black", "weight": 1},
        device=device,
    )


def make_dataset(year, collection):
    return YearDataset(year=year, collection=collection, records=[], tally={}, bounding_set=[])


def test_pointer_hover_highlights_and_restores():
    shape = make_shape()

    assert shape.dispatch(InteractionEvent.POINTER_ENTER)
    assert shape.state == ShapeState.HIGHLIGHTED
    assert shape.style() == {"color": "black", "weight": 1, "fillColor": "url(#BJPGradient)"}
    assert shape.dispatch(InteractionEvent.POINTER_LEAVE)
    assert shape.fill == "#FFF"
    assert not shape.popup_open


def test_repeated_events_are_ignored():
    shape = make_shape()
    shape.dispatch(InteractionEvent.POINTER_ENTER)

    assert not shape.dispatch(InteractionEvent.POINTER_ENTER)
    assert shape.highlighted


def test_touch_ignores_hover_and_highlights_while_popup_open():
    shape = make_shape(DeviceProfile.TOUCH)

    assert not shape.dispatch("pointer-enter")
    assert shape.state == ShapeState.IDLE

    assert shape.dispatch("tap-open")
    assert shape.popup_open
    assert shape.fill == "url(#BJPGradient)"

    assert shape.dispatch("tap-close")
    assert not shape.popup_open
    assert shape.fill == "#FFF"


def test_pointer_ignores_taps():
    shape = make_shape()

    assert not shape.dispatch(InteractionEvent.TAP_OPEN)
    assert shape.state == ShapeState.IDLE


def test_unknown_event_name_raises():
    with pytest.raises(ValueError):
        make_shape().dispatch("double-click")


def test_transition_table_for_browser():
    table = transition_table()

    assert table == {
        "pointer:pointer-enter:idle": "highlighted",
        "pointer:pointer-leave:highlighted": "idle",
        "touch:tap-open:idle": "highlighted",
        "touch:tap-close:highlighted": "idle",
    }


def test_resolve_device():
    assert resolve_device("auto") is None
    assert resolve_device(None) is None
    assert resolve_device("touch") == DeviceProfile.TOUCH
    with pytest.raises(ValueError):
        resolve_device("stylus")


def test_popup_escapes_and_defaults():
    body = popup_html({"name": "<b>Worli</b>", "Party": "BJP"}, "/logos/bjp.png")

    assert "&lt;b&gt;Worli&lt;/b&gt;" in body
    assert "<strong>Ward:</strong> N/A" in body
    assert 'src="/logos/bjp.png"' in body
    assert "<strong>Party:</strong> Unknown" in popup_html({}, "/logos/default.png")


def test_registry_mounts_one_shape_per_feature(write_config):
    config = write_config()
    cache = StyleCache.from_config(config)
    collection = feature_collection(
        ward_feature({"ward_number": "1"}),
        ward_feature({"ward_number": "2"}),
        ward_feature({"ward_number": "1"}),
        ward_feature({}),
    )
    join_attributes(collection, [{"ward_number": 1, "Party": "BJP"}, {"ward_number": 2, "Party": "INC"}])
    registry = ShapeRegistry(config)

    registry.mount(make_dataset("2017", collection), cache)

    assert len(registry) == 4
    assert registry.year == "2017"
    assert registry.get(1).highlight_fill == "#FF9933"
    assert registry.get("2").highlight_fill == "url(#congressGradient)"
    assert registry.get("1#2") is not None
    assert registry.get("#3").highlight_fill == "#cccccc"
    assert all(shape.idle_fill == "#FFF" for shape in registry)


def test_registry_remount_replaces_previous_year(write_config):
    config = write_config()
    cache = StyleCache.from_config(config)
    registry = ShapeRegistry(config)
    registry.mount(make_dataset("2012", feature_collection(ward_feature({"ward_number": 1}))), cache)
    registry.get(1).dispatch(InteractionEvent.POINTER_ENTER)

    registry.mount(make_dataset("2017", feature_collection(ward_feature({"ward_number": 1}))), cache)

    assert registry.year == "2017"
    assert registry.get(1).year == "2017"
    assert registry.get(1).state == ShapeState.IDLE


def test_population_fill_mode(write_config):
    config = write_config(map={"fill_mode": "population"})
    registry = ShapeRegistry(config)
    collection = feature_collection(ward_feature({"ward_number": 1, "population": 1200000}))

    registry.mount(make_dataset("2017", collection), StyleCache.from_config(config))

    shape = registry.get(1)
    assert shape.idle_fill == "#FF8C00"
    assert shape.highlight_fill == "#ff8000"
