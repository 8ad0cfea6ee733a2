"""Per-party seat aggregation over a joined ward collection."""

from typing import Any, Dict

import pandas as pd
from loguru import logger

UNKNOWN_PARTY = "Unknown"


def party_of(properties: Dict[str, Any]) -> str:
    party = (properties or {}).get("Party")
    if party is None or party == "":
        return UNKNOWN_PARTY
    return str(party)


def tally_party_seats(collection: Dict[str, Any]) -> Dict[str, int]:
    """
    Count seats per party.

    Features without a Party value count towards "Unknown". Keys keep
    first-seen order, so the result is deterministic for a given collection.
    """
    counts: Dict[str, int] = {}
    for feature in collection.get("features") or []:
        party = party_of(feature.get("properties"))
        counts[party] = counts.get(party, 0) + 1

    logger.debug(f"🗳️ Seat tally: {counts}")
    return counts


def tally_frame(tally: Dict[str, int]) -> pd.DataFrame:
    """Seat tally as a DataFrame sorted by seats (desc) then party."""
    df = pd.DataFrame(list(tally.items()), columns=["Party", "Seats"])
    if df.empty:
        return df
    df["Seats"] = df["Seats"].astype(int)
    return df.sort_values(["Seats", "Party"], ascending=[False, True]).reset_index(drop=True)
