from __future__ import annotations

import re
from datetime import date, timedelta

_CURRENCY_MAP = {
    "€": "EUR",
    "$": "USD",
    "£": "GBP",
    "EUR": "EUR",
    "USD": "USD",
    "GBP": "GBP",
    "CHF": "CHF",
    "PLN": "PLN",
}
DEFAULT_CURRENCY = "EUR"

_CURRENCY = r"(?P<currency>EUR|USD|GBP|CHF|PLN|\$|€|£)"
_AMOUNT = r"(?P<amount>\d{1,3}(?:[.,]\d{3})+(?:[.,]\d{1,2})?|\d+(?:[.,]\d{1,2})?)(?!\d)"
_PRICE_PATTERNS = [
    re.compile(_CURRENCY + r"\s*" + _AMOUNT),
    re.compile(_AMOUNT + r"\s*" + _CURRENCY),
]
_FRACTION_PATTERN = re.compile(r"[.,]\d{1,2}$")
_SEPARATOR_PATTERN = re.compile(r"[.,]")

_MONTHS = {
    "Jan": 1,
    "Feb": 2,
    "Mar": 3,
    "Apr": 4,
    "May": 5,
    "Jun": 6,
    "Jul": 7,
    "Aug": 8,
    "Sep": 9,
    "Oct": 10,
    "Nov": 11,
    "Dec": 12,
}

_DURATION_PATTERN = re.compile(r"(\d+)\s*h(?:\s*(\d+))?")
_HEADING_DATE_PATTERN = re.compile(r"([A-Za-z]{3}),\s*(\d{1,2})\s+([A-Za-z]{3})\s+(\d{4})")
_CLOCK_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
_FLIGHT_NUMBER_PATTERN = re.compile(r"\b([A-Z0-9]{2,3})\s?(\d{1,4})\b")
_IATA_PATTERN = re.compile(r"^[A-Z]{3}$")

MINUTES_PER_DAY = 24 * 60


def parse_duration(text: str) -> int:
    """Minutes in a ``"<h>h <m>"`` duration; 0 when nothing matches."""
    match = _DURATION_PATTERN.search(text or "")
    if not match:
        return 0
    hours = int(match.group(1))
    minutes = int(match.group(2)) if match.group(2) else 0
    return hours * 60 + minutes


def parse_heading_date(text: str, fallback: str) -> str:
    """ISO date of a ``"Fri, 10 Oct 2025"`` heading, or ``fallback``."""
    match = _HEADING_DATE_PATTERN.search(text or "")
    if not match:
        return fallback
    month = _MONTHS.get(match.group(3).title())
    if month is None:
        return fallback
    try:
        parsed = date(int(match.group(4)), month, int(match.group(2)))
    except ValueError:
        return fallback
    return parsed.isoformat()


def parse_clock(text: str) -> int | None:
    """Minutes after midnight for an ``HH:MM`` string."""
    match = _CLOCK_PATTERN.match((text or "").strip())
    if not match:
        return None
    return int(match.group(1)) * 60 + int(match.group(2))


def shift_date(iso_date: str, days: int) -> str:
    return (date.fromisoformat(iso_date) + timedelta(days=days)).isoformat()


def minutes_between(departure_time: str, arrival_time: str) -> int:
    departure = parse_clock(departure_time)
    arrival = parse_clock(arrival_time)
    if departure is None or arrival is None:
        return 0
    duration = arrival - departure
    if duration <= 0:
        duration += MINUTES_PER_DAY
    return duration


def arrival_date_for(
    departure_date: str, departure_time: str, arrival_time: str, duration_minutes: int
) -> str:
    """Calendar day of an arrival given as a local clock time.

    An arrival clock earlier than the departure clock means midnight was
    crossed. Whole days of flying time are added on top.
    """
    departure = parse_clock(departure_time)
    arrival = parse_clock(arrival_time)
    if departure is None or arrival is None:
        return departure_date
    days = duration_minutes // MINUTES_PER_DAY
    if arrival < departure:
        days += 1
    return shift_date(departure_date, days)


def infer_leg_date(
    previous_arrival_date: str | None,
    previous_arrival_time: str,
    current_departure_time: str,
    heading_date: str,
    connection_minutes: int | None = None,
) -> str:
    """Departure date of a connecting leg whose panel carries no date.

    With a known layover the departure is the previous arrival plus the
    layover. Without one, a departure earlier in the day than the previous
    leg's arrival means the connection crossed midnight.
    """
    base_date = previous_arrival_date or heading_date
    previous_arrival = parse_clock(previous_arrival_time)
    if previous_arrival is None:
        return base_date
    if connection_minutes is not None:
        return shift_date(base_date, (previous_arrival + connection_minutes) // MINUTES_PER_DAY)
    current_departure = parse_clock(current_departure_time)
    if current_departure is None:
        return base_date
    if current_departure < previous_arrival:
        return shift_date(base_date, 1)
    return base_date


def extract_price(text: str, fallback_currency: str = DEFAULT_CURRENCY) -> tuple[int | None, str]:
    """Whole-unit price and currency of the first positive amount in ``text``.

    ``.`` and ``,`` both work as thousands separators. A trailing group of one
    or two digits is the sub-unit part, which is dropped rather than rounded.
    """
    fallback = fallback_currency.upper()
    for pattern in _PRICE_PATTERNS:
        for match in pattern.finditer(text or ""):
            amount = _whole_units(match.group("amount"))
            if amount <= 0:
                continue
            return amount, _CURRENCY_MAP.get(match.group("currency").upper(), fallback)
    return None, fallback


def _whole_units(amount: str) -> int:
    fraction = _FRACTION_PATTERN.search(amount)
    if fraction is not None:
        amount = amount[: fraction.start()]
    return int(_SEPARATOR_PATTERN.sub("", amount))


def extract_flight_number(text: str) -> str | None:
    matches = _FLIGHT_NUMBER_PATTERN.findall(text or "")
    if not matches:
        return None
    carrier, digits = matches[-1]
    return f"{carrier}{digits}"


def extract_iata(text: str) -> str | None:
    token = (text or "").strip().split(" ")[0]
    if _IATA_PATTERN.match(token):
        return token
    return None
