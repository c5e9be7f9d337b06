from dataclasses import dataclass

import pytest

from aggregator.services.identity import (
    booking_option_unique_id,
    bundle_unique_id,
    classify_records,
    dedupe_first_seen,
    find_duplicate_unique_ids,
    flight_unique_id,
)


@dataclass(frozen=True)
class _Record:
    unique_id: str
    label: str = ""


def test_flight_unique_id_format() -> None:
    assert flight_unique_id("EI337", "BER", "DUB") == "flight_EI337_BER_DUB"


def test_bundle_unique_id_depends_on_leg_order() -> None:
    outbound = ["flight_A_X_Y", "flight_B_Y_Z"]
    inbound = ["flight_C_Z_Y", "flight_D_Y_X"]

    forward = bundle_unique_id(outbound, inbound)
    assert forward == "bundle_flight_A_X_Y_flight_B_Y_Z_flight_C_Z_Y_flight_D_Y_X"
    assert bundle_unique_id(list(reversed(outbound)), inbound) != forward
    assert bundle_unique_id(outbound, list(reversed(inbound))) != forward


def test_one_way_bundle_id_has_no_trailing_separator() -> None:
    assert bundle_unique_id(["flight_A_X_Y"], []) == "bundle_flight_A_X_Y"


def test_bundle_without_legs_is_rejected() -> None:
    with pytest.raises(ValueError):
        bundle_unique_id([], [])


def test_booking_option_unique_id_format() -> None:
    assert (
        booking_option_unique_id("bundle_flight_A_X_Y", "Kiwi.com", 164, "EUR")
        == "booking_Kiwi.com_bundle_flight_A_X_Y_164_EUR"
    )


def test_dedupe_first_seen_keeps_earliest_record() -> None:
    records = [_Record("a", "first"), _Record("b"), _Record("a", "second")]

    deduped = dedupe_first_seen(records)

    assert [record.unique_id for record in deduped] == ["a", "b"]
    assert deduped[0].label == "first"


def test_find_duplicate_unique_ids_is_sorted() -> None:
    records = [_Record("b"), _Record("a"), _Record("b"), _Record("c"), _Record("a")]
    assert find_duplicate_unique_ids(records) == ["a", "b"]
    assert find_duplicate_unique_ids([_Record("x")]) == []


def test_classify_records_marks_existing_without_store_access() -> None:
    classified = classify_records([_Record("a"), _Record("b")], {"b": "storage-b"})

    assert [(item.record.unique_id, item.exists) for item in classified] == [
        ("a", False),
        ("b", True),
    ]
