"""
Interaction State Machine for rendered ward shapes.

Each ward shape is either idle (default fill) or highlighted (party fill).
Pointer devices highlight on hover; touch devices have no hover and instead
highlight while the ward's popup is open:

    device   event          from         to
    pointer  pointer-enter  idle         highlighted
    pointer  pointer-leave  highlighted  idle
    touch    tap-open       idle         highlighted   (popup shown)
    touch    tap-close      highlighted  idle          (popup hidden)

Anything not in the table is ignored. The same table is shipped to the
browser by mapping.render so the rendered map behaves identically.
"""

import html
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, Optional, Tuple

from loguru import logger

from ops import Config
from processing.aggregate import party_of
from processing.join import ward_identifier

from .colors import StyleCache, population_fill


class DeviceProfile(str, Enum):
    POINTER = "pointer"
    TOUCH = "touch"


class ShapeState(str, Enum):
    IDLE = "idle"
    HIGHLIGHTED = "highlighted"


class InteractionEvent(str, Enum):
    POINTER_ENTER = "pointer-enter"
    POINTER_LEAVE = "pointer-leave"
    TAP_OPEN = "tap-open"
    TAP_CLOSE = "tap-close"


TRANSITIONS: Dict[Tuple[DeviceProfile, InteractionEvent, ShapeState], ShapeState] = {
    (DeviceProfile.POINTER, InteractionEvent.POINTER_ENTER, ShapeState.IDLE): ShapeState.HIGHLIGHTED,
    (DeviceProfile.POINTER, InteractionEvent.POINTER_LEAVE, ShapeState.HIGHLIGHTED): ShapeState.IDLE,
    (DeviceProfile.TOUCH, InteractionEvent.TAP_OPEN, ShapeState.IDLE): ShapeState.HIGHLIGHTED,
    (DeviceProfile.TOUCH, InteractionEvent.TAP_CLOSE, ShapeState.HIGHLIGHTED): ShapeState.IDLE,
}


def transition_table() -> Dict[str, str]:
    """TRANSITIONS flattened to "device:event:state" keys for the browser script."""
    return {
        f"{device.value}:{event.value}:{state.value}": target.value
        for (device, event, state), target in TRANSITIONS.items()
    }


def resolve_device(value: Optional[str]) -> Optional[DeviceProfile]:
    """DeviceProfile for a config/CLI value; None means detect in the browser."""
    if value is None or value == "auto":
        return None
    return DeviceProfile(value)


def popup_html(properties: Dict[str, Any], logo_url: str) -> str:
    """Tooltip/popup body for a ward."""
    props = properties or {}

    def field_value(key: str, default: str) -> str:
        value = props.get(key)
        return html.escape(str(value)) if value not in (None, "") else default

    party = field_value("Party", "Unknown")
    return (
        '<div class="popup-content">'
        f'<img src="{html.escape(logo_url)}" alt="{party}" class="party-logo-top" />'
        f"<strong>Name:</strong> {field_value('name', 'Unknown')}<br/>"
        f"<strong>Ward:</strong> {field_value('ward_number', 'N/A')}<br/>"
        f"<strong>Candidate:</strong> <span class=\"bmc-areas-text\">{field_value('Candidate Name', 'N/A')}</span><br/>"
        f"<strong>Party:</strong> {party}<br/>"
        f"<strong>Areas:</strong> <span class=\"bmc-areas-text\">{field_value('Areas', 'N/A')}</span>"
        "</div>"
    )


@dataclass
class WardShape:
    """Interactive state of one rendered ward."""

    ward_id: Any
    year: str
    properties: Dict[str, Any]
    idle_fill: str
    highlight_fill: str
    logo_url: str
    base_style: Dict[str, Any] = field(default_factory=dict)
    device: DeviceProfile = DeviceProfile.POINTER
    state: ShapeState = ShapeState.IDLE

    def dispatch(self, event: InteractionEvent) -> bool:
        """Apply one event; returns True if the state changed."""
        target = TRANSITIONS.get((self.device, InteractionEvent(event), self.state))
        if target is None:
            logger.trace(f"Ignored {event} on ward {self.ward_id} ({self.device.value}, {self.state.value})")
            return False
        self.state = target
        return True

    @property
    def highlighted(self) -> bool:
        return self.state == ShapeState.HIGHLIGHTED

    @property
    def popup_open(self) -> bool:
        return self.device == DeviceProfile.TOUCH and self.highlighted

    @property
    def fill(self) -> str:
        return self.highlight_fill if self.highlighted else self.idle_fill

    def style(self) -> Dict[str, Any]:
        return {**self.base_style, "fillColor": self.fill}

    def info_html(self) -> str:
        return popup_html(self.properties, self.logo_url)


class ShapeRegistry:
    """
    Ward shapes of the currently mounted dataset, keyed by ward id.

    Mounting always rebuilds every shape, and the registry remembers which
    year it holds, so nothing survives a year change.
    """

    def __init__(self, config: Config):
        self.base_style = config.get_base_style()
        self.fill_mode = config.get_map_setting("fill_mode")
        self.default_color = config.get_default_ward_color()
        self.population_bands = config.get_population_bands()
        self.population_highlight = str(config.get("style.population_highlight_color"))
        self.year: Optional[str] = None
        self._shapes: Dict[str, WardShape] = {}

    def fills_for(self, properties: Dict[str, Any], ward_id: Any, cache: StyleCache) -> Tuple[str, str]:
        """(idle fill, highlight fill) for a ward under the configured fill mode."""
        if self.fill_mode == "population":
            idle = population_fill(properties.get("population"), self.population_bands)
            return idle, self.population_highlight
        return self.default_color, cache.party_fill(party_of(properties), ward_id)

    def mount(self, dataset: Any, cache: StyleCache, device: DeviceProfile = DeviceProfile.POINTER) -> None:
        """Replace all shapes with those of a published dataset."""
        self.unmount()
        self.year = str(dataset.year)

        for index, feature in enumerate(dataset.features):
            properties = feature.get("properties") or {}
            ward_id = ward_identifier(properties)
            key = str(ward_id) if ward_id is not None else f"#{index}"
            if key in self._shapes:
                key = f"{key}#{index}"

            idle, highlight = self.fills_for(properties, ward_id, cache)
            self._shapes[key] = WardShape(
                ward_id=ward_id,
                year=self.year,
                properties=properties,
                idle_fill=idle,
                highlight_fill=highlight,
                logo_url=cache.party_logo(party_of(properties), ward_id),
                base_style=dict(self.base_style),
                device=device,
            )
        logger.debug(f"🧩 Mounted {len(self._shapes)} ward shapes for {self.year}")

    def unmount(self) -> None:
        self._shapes.clear()
        self.year = None

    def get(self, key: Any) -> Optional[WardShape]:
        return self._shapes.get(str(key))

    def items(self) -> Iterator[Tuple[str, WardShape]]:
        return iter(self._shapes.items())

    def __len__(self) -> int:
        return len(self._shapes)

    def __iter__(self) -> Iterator[WardShape]:
        return iter(self._shapes.values())
