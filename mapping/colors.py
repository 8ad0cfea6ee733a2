"""
Party colour and logo resolution.

StyleCache memoises fills and logos per (party, ward id) for the lifetime of
one dataset. It is owned by the view and cleared on every year change and at
the start of every fetch cycle, so colours never bleed across years.
"""

from typing import Any, Dict, List, Optional, Tuple

from ops import Config

CacheKey = Tuple[str, str]


def gradient_reference(gradient_id: str) -> str:
    return f"url(#{gradient_id})"


def population_fill(population: Any, bands: List[Dict[str, Any]]) -> str:
    """
    Colour band for a ward population.

    Bands are checked in order; a band with `above: null` is the fallback.
    Missing or non-numeric population falls through to the fallback band.
    """
    try:
        value = float(population)
    except (TypeError, ValueError):
        value = None

    fallback = bands[-1]["color"] if bands else "#5092a5"
    for band in bands:
        threshold = band.get("above")
        if threshold is None:
            fallback = band["color"]
            continue
        if value is not None and value > float(threshold):
            return band["color"]
    return fallback


class StyleCache:
    """Per-dataset memo of party fills and logos."""

    def __init__(
        self,
        party_colors: Dict[str, str],
        party_gradients: Dict[str, str],
        party_logos: Dict[str, str],
        default_logo: str,
        unknown_color: str = "#cccccc",
    ):
        self.party_colors = party_colors
        self.party_gradients = party_gradients
        self.party_logos = party_logos
        self.default_logo = default_logo
        self.unknown_color = unknown_color
        self._fills: Dict[CacheKey, str] = {}
        self._logos: Dict[CacheKey, str] = {}

    @classmethod
    def from_config(cls, config: Config) -> "StyleCache":
        return cls(
            party_colors=config.get_party_colors(),
            party_gradients=config.get_party_gradients(),
            party_logos=config.get_party_logos(),
            default_logo=config.get_default_logo(),
            unknown_color=config.get_unknown_party_color(),
        )

    @staticmethod
    def _key(party: Optional[str], ward_id: Any) -> CacheKey:
        return (party or "", "" if ward_id is None else str(ward_id))

    def party_fill(self, party: Optional[str], ward_id: Any) -> str:
        """Gradient reference, else flat party colour, else the neutral colour."""
        key = self._key(party, ward_id)
        if key not in self._fills:
            if party and party in self.party_gradients:
                fill = gradient_reference(self.party_gradients[party])
            else:
                fill = self.party_colors.get(party or "", self.unknown_color)
            self._fills[key] = fill
        return self._fills[key]

    def party_logo(self, party: Optional[str], ward_id: Any) -> str:
        key = self._key(party, ward_id)
        if key not in self._logos:
            self._logos[key] = self.party_logos.get(party or "", self.default_logo)
        return self._logos[key]

    def clear(self) -> None:
        self._fills.clear()
        self._logos.clear()

    def __len__(self) -> int:
        return len(self._fills) + len(self._logos)

    def keys(self) -> List[CacheKey]:
        return sorted(set(self._fills) | set(self._logos))
