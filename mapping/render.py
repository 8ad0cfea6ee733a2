"""
Folium rendering of a joined ward dataset.

Produces a self-contained Leaflet map: the ward layer (keyed by year), the
SVG gradient definitions used by gradient party fills, a seats-by-party
sidebar, an optional error banner, and the browser-side interaction script
driven by the same transition table as mapping.interaction.
"""

import copy
import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import folium
from branca.element import MacroElement
from jinja2 import Template
from loguru import logger

from ops import Config
from processing.aggregate import tally_frame

from .bounds import Viewport
from .colors import StyleCache
from .interaction import DeviceProfile, ShapeRegistry, transition_table

IDLE_FILL_KEY = "_ward_idle_fill"
HIGHLIGHT_FILL_KEY = "_ward_highlight_fill"
INFO_HTML_KEY = "_ward_info_html"


class WardInteraction(MacroElement):
    """Binds tooltips/popups and hover/tap highlighting to a ward GeoJson layer."""

    _template = Template(
        """
        {% macro script(this, kwargs) %}
        (function() {
            var transitions = {{ this.transitions }};
            var baseStyle = {{ this.base_style }};
            var forcedDevice = {{ this.device }};
            var isTouch = ("ontouchstart" in window) || navigator.maxTouchPoints > 0;
            var device = forcedDevice || (isTouch ? "touch" : "pointer");

            {{ this.layer_name }}.eachLayer(function(layer) {
                var props = layer.feature.properties;
                var state = "idle";
                var dispatch = function(event) {
                    var next = transitions[device + ":" + event + ":" + state];
                    if (!next) { return; }
                    state = next;
                    var fill = state === "highlighted" ? props.{{ this.highlight_key }} : props.{{ this.idle_key }};
                    layer.setStyle(Object.assign({}, baseStyle, {fillColor: fill}));
                };

                if (device === "touch") {
                    layer.bindPopup(props.{{ this.info_key }}, {className: "custom-ward-popup"});
                    layer.on("popupopen", function() { dispatch("tap-open"); });
                    layer.on("popupclose", function() { dispatch("tap-close"); });
                } else {
                    layer.bindTooltip(props.{{ this.info_key }}, {direction: "top", className: "district-tooltip"});
                }
                layer.on("mouseover", function() { dispatch("pointer-enter"); });
                layer.on("mouseout", function() { dispatch("pointer-leave"); });
            });
        })();
        {% endmacro %}
        """
    )

    def __init__(
        self,
        layer: folium.GeoJson,
        base_style: Dict[str, Any],
        device: Optional[DeviceProfile] = None,
    ):
        super().__init__()
        self._name = "WardInteraction"
        self.layer_name = layer.get_name()
        self.transitions = json.dumps(transition_table(), sort_keys=True)
        self.base_style = json.dumps(base_style)
        self.device = json.dumps(device.value if device else None)
        self.idle_key = IDLE_FILL_KEY
        self.highlight_key = HIGHLIGHT_FILL_KEY
        self.info_key = INFO_HTML_KEY


GRADIENT_TEMPLATE = Template(
    """
    <svg style="position: absolute; width: 0; height: 0" aria-hidden="true">
      <defs>
        {% for gradient_id, stops in gradients.items() %}
        <linearGradient id="{{ gradient_id }}" x1="0%" y1="0%" x2="100%" y2="100%">
          {% for offset, color in stops %}
          <stop offset="{{ offset }}%" stop-color="{{ color }}" />
          {% endfor %}
        </linearGradient>
        {% endfor %}
      </defs>
    </svg>
    """
)

SIDEBAR_TEMPLATE = Template(
    """
    <div class="sidebar" style="position: fixed; top: 12px; right: 12px; z-index: 9999;
         background: rgba(255,255,255,0.92); padding: 10px 12px; border-radius: 8px;
         box-shadow: 0 1px 6px rgba(0,0,0,0.2); font: 13px system-ui, sans-serif;">
      <h3 style="margin: 0 0 6px 0;">Seats by Party ({{ year }})</h3>
      <table class="party-table">
        <thead><tr><th>Party</th><th>Seats</th></tr></thead>
        <tbody>
        {% for party, seats in rows %}
          <tr><td>{{ party }}</td><td>{{ seats }}</td></tr>
        {% endfor %}
        </tbody>
      </table>
    </div>
    """,
    autoescape=True,
)

ERROR_TEMPLATE = Template(
    """
    <div class="error-banner" style="position: fixed; top: 12px; left: 50%; transform: translateX(-50%);
         z-index: 10000; background: #fdecea; color: #611a15; border: 1px solid #f5c6cb;
         padding: 8px 14px; border-radius: 6px; font: 13px system-ui, sans-serif;">
      Latest refresh failed: {{ message }}
    </div>
    """,
    autoescape=True,
)


def gradient_defs_html(definitions: Dict[str, List[Any]]) -> str:
    return GRADIENT_TEMPLATE.render(gradients=definitions)


def sidebar_html(year: str, tally: Dict[str, int]) -> str:
    df = tally_frame(tally)
    rows = list(df.itertuples(index=False, name=None))
    return SIDEBAR_TEMPLATE.render(year=year, rows=rows)


def error_banner_html(error: Union[str, Exception]) -> str:
    return ERROR_TEMPLATE.render(message=str(error))


def decorated_collection(dataset: Any, registry: ShapeRegistry) -> Dict[str, Any]:
    """
    Deep copy of the dataset's collection with render-only properties added,
    so the published dataset keeps exactly its joined attributes.
    """
    collection = copy.deepcopy(dataset.collection)
    for feature, shape in zip(collection.get("features") or [], registry):
        properties = feature.setdefault("properties", {})
        properties[IDLE_FILL_KEY] = shape.idle_fill
        properties[HIGHLIGHT_FILL_KEY] = shape.highlight_fill
        properties[INFO_HTML_KEY] = shape.info_html()
    return collection


def render_ward_map(
    dataset: Any,
    viewport: Viewport,
    cache: StyleCache,
    config: Config,
    registry: Optional[ShapeRegistry] = None,
    device: Optional[DeviceProfile] = None,
    error: Optional[Union[str, Exception]] = None,
) -> folium.Map:
    """
    Render the current dataset as a folium map.

    Args:
        dataset: Published YearDataset, or None for the blank initial state
        viewport: Viewport to centre/fit the map on
        cache: StyleCache of the current dataset
        config: Configuration instance
        registry: Mounted shapes; mounted here if missing or for another year
        device: Force pointer/touch behaviour; None detects in the browser
        error: Last cycle failure, shown as a banner

    Returns:
        folium.Map ready to save
    """
    m = folium.Map(
        location=viewport.center,
        zoom_start=viewport.zoom,
        tiles=config.get_map_setting("tiles"),
    )
    m.get_root().html.add_child(folium.Element(gradient_defs_html(config.get_gradient_definitions())))

    if dataset is not None:
        if registry is None or registry.year != str(dataset.year):
            registry = ShapeRegistry(config)
            registry.mount(dataset, cache, device or DeviceProfile.POINTER)

        if len(registry):
            base_style = config.get_base_style()
            default_fill = config.get_default_ward_color()
            layer = folium.GeoJson(
                decorated_collection(dataset, registry),
                name=f"BMC wards {dataset.year}",
                style_function=lambda feature: {
                    **base_style,
                    "fillColor": feature["properties"].get(IDLE_FILL_KEY, default_fill),
                },
            )
            layer.add_to(m)
            WardInteraction(layer, base_style, device).add_to(m)
        m.get_root().html.add_child(folium.Element(sidebar_html(dataset.year, dataset.tally)))
        logger.debug(f"🖌️ Rendered {len(registry)} wards for {dataset.year}")

    if error is not None:
        m.get_root().html.add_child(folium.Element(error_banner_html(error)))

    if viewport.bounds:
        m.fit_bounds(viewport.bounds)

    return m


def save_map(m: folium.Map, output_path: Union[str, Path]) -> Path:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    m.save(str(output_path))
    logger.success(f"  ✅ Map saved: {output_path}")
    return output_path
