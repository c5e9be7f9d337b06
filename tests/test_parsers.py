import pytest

from aggregator.extractors.parsers import (
    arrival_date_for,
    extract_flight_number,
    extract_iata,
    extract_price,
    infer_leg_date,
    minutes_between,
    parse_clock,
    parse_duration,
    parse_heading_date,
)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("2h 20", 140),
        ("3h", 180),
        ("1h 25", 85),
        ("12h 5", 725),
        ("Duration: 0h 45", 45),
        ("", 0),
        ("about two hours", 0),
    ],
)
def test_parse_duration(text: str, expected: int) -> None:
    assert parse_duration(text) == expected


def test_parse_heading_date_reads_date_anywhere_in_heading() -> None:
    assert parse_heading_date("Outbound Fri, 10 Oct 2025", "1970-01-01") == "2025-10-10"
    assert parse_heading_date("Return Mon, 3 Nov 2025", "1970-01-01") == "2025-11-03"


def test_parse_heading_date_falls_back_for_unmatched_or_impossible_dates() -> None:
    assert parse_heading_date("Outbound", "2025-01-01") == "2025-01-01"
    assert parse_heading_date("Outbound Fri, 10 Foo 2025", "2025-01-01") == "2025-01-01"
    assert parse_heading_date("Outbound Fri, 31 Feb 2025", "2025-01-01") == "2025-01-01"


def test_parse_clock_rejects_out_of_range_values() -> None:
    assert parse_clock("06:35") == 395
    assert parse_clock("24:00") is None
    assert parse_clock("6:35pm") is None


def test_minutes_between_wraps_past_midnight() -> None:
    assert minutes_between("06:35", "07:55") == 80
    assert minutes_between("23:10", "01:05") == 115
    assert minutes_between("bad", "01:05") == 0


def test_arrival_date_for_counts_midnight_crossings() -> None:
    assert arrival_date_for("2025-10-10", "06:35", "07:55", 140) == "2025-10-10"
    assert arrival_date_for("2025-10-10", "22:30", "01:30", 120) == "2025-10-11"
    assert arrival_date_for("2025-12-31", "23:00", "00:30", 90) == "2026-01-01"


def test_arrival_date_for_trusts_local_clock_over_duration() -> None:
    # Westbound hop: the arrival clock reads later although flying time is longer.
    assert arrival_date_for("2025-10-10", "23:30", "23:40", 70) == "2025-10-10"
    assert arrival_date_for("2025-10-10", "10:00", "12:00", 26 * 60) == "2025-10-11"
    assert arrival_date_for("2025-10-10", "bad", "12:00", 60) == "2025-10-10"


def test_infer_leg_date_rolls_over_when_departure_is_earlier_in_day() -> None:
    assert infer_leg_date("2025-10-10", "23:10", "01:05", "2025-10-10") == "2025-10-11"


def test_infer_leg_date_keeps_day_for_same_day_connection() -> None:
    assert infer_leg_date("2025-10-10", "07:55", "10:15", "2025-10-10") == "2025-10-10"


def test_infer_leg_date_uses_previous_arrival_day_as_base() -> None:
    # The previous leg already landed on the next day.
    assert infer_leg_date("2025-10-11", "05:40", "08:00", "2025-10-10") == "2025-10-11"


def test_infer_leg_date_falls_back_to_heading_date() -> None:
    assert infer_leg_date(None, "07:55", "10:15", "2025-10-10") == "2025-10-10"
    assert infer_leg_date("2025-10-10", "", "10:15", "2025-10-09") == "2025-10-10"


def test_infer_leg_date_adds_layover_to_previous_arrival() -> None:
    # Comparing clocks alone would only roll over one day.
    assert infer_leg_date("2025-10-10", "23:10", "01:10", "2025-10-10", 26 * 60) == "2025-10-12"
    assert infer_leg_date("2025-10-10", "07:55", "10:15", "2025-10-10", 140) == "2025-10-10"


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("€164", (164, "EUR")),
        ("Kiwi.com €164", (164, "EUR")),
        ("€164.99", (164, "EUR")),
        ("$1,299.50", (1299, "USD")),
        ("£87", (87, "GBP")),
        ("230 CHF", (230, "CHF")),
        ("€1.234", (1234, "EUR")),
        ("1.234,56 €", (1234, "EUR")),
        ("€12,5", (12, "EUR")),
        ("€0 deposit, total €120", (120, "EUR")),
        ("€0", (None, "EUR")),
        ("no price here", (None, "EUR")),
    ],
)
def test_extract_price(text: str, expected: tuple[int | None, str]) -> None:
    assert extract_price(text) == expected


def test_extract_price_uses_fallback_currency_when_unmatched() -> None:
    assert extract_price("sold out", "usd") == (None, "USD")


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Aer Lingus EI 337", "EI337"),
        ("Iberia Express I2 1882", "I21882"),
        ("KLM KL1770", "KL1770"),
        ("Operated by partner", None),
    ],
)
def test_extract_flight_number(text: str, expected: str | None) -> None:
    assert extract_flight_number(text) == expected


def test_extract_iata_keeps_leading_code_only() -> None:
    assert extract_iata("BER Berlin Brandenburg") == "BER"
    assert extract_iata("Berlin") is None
    assert extract_iata("ber Berlin") is None
    assert extract_iata("") is None
