"""Seat tally per party."""

from processing.aggregate import UNKNOWN_PARTY, party_of, tally_frame, tally_party_seats
from tests.conftest import feature_collection, ward_feature


def test_tally_counts_every_feature_once():
    collection = feature_collection(
        ward_feature({"Party": "BJP"}),
        ward_feature({"Party": "INC"}),
        ward_feature({"Party": "BJP"}),
        ward_feature({}),
        ward_feature({"Party": ""}),
    )

    tally = tally_party_seats(collection)

    assert tally == {"BJP": 2, "INC": 1, UNKNOWN_PARTY: 2}
    assert sum(tally.values()) == len(collection["features"])
    assert list(tally) == ["BJP", "INC", UNKNOWN_PARTY]


def test_tally_of_empty_collection():
    assert tally_party_seats(feature_collection()) == {}


def test_party_of_defaults_to_unknown():
    assert party_of(None) == UNKNOWN_PARTY
    assert party_of({"Party": None}) == UNKNOWN_PARTY
    assert party_of({"Party": "NCP"}) == "NCP"


def test_tally_frame_sorted_by_seats_then_party():
    df = tally_frame({"SP": 1, "BJP": 3, "INC": 3, "Unknown": 2})

    assert list(df.columns) == ["Party", "Seats"]
    assert list(df["Party"]) == ["BJP", "INC", "Unknown", "SP"]
    assert list(df["Seats"]) == [3, 3, 2, 1]


def test_tally_frame_empty():
    assert tally_frame({}).empty
