from __future__ import annotations

import logging
from datetime import UTC, datetime

from aggregator.extractors.base import ExtractedFlight
from aggregator.extractors.document import DocumentNode
from aggregator.extractors.page import (
    LegPanel,
    connection_minutes,
    iter_cards,
    read_legs,
    split_directions,
)
from aggregator.extractors.parsers import (
    arrival_date_for,
    infer_leg_date,
    minutes_between,
    parse_duration,
    parse_heading_date,
)
from aggregator.services.identity import dedupe_first_seen, find_duplicate_unique_ids

logger = logging.getLogger(__name__)


def extract_flights(document: DocumentNode, now: datetime | None = None) -> list[ExtractedFlight]:
    fallback_date = (now or datetime.now(UTC)).date().isoformat()
    flights: list[ExtractedFlight] = []
    skipped = 0

    for card in iter_cards(document):
        for group in split_directions(read_legs(card.detail)):
            previous: ExtractedFlight | None = None
            adjacent = False
            for leg, connection in zip(group, connection_minutes(group)):
                if not leg.is_complete:
                    skipped += 1
                    adjacent = False
                    continue
                # A layover only applies when measured from the flight just built.
                flight = _build_flight(
                    leg, previous, connection if adjacent else None, fallback_date
                )
                flights.append(flight)
                previous = flight
                adjacent = True

    unique = dedupe_first_seen(flights)
    logger.debug(
        "flight extraction panels=%s flights=%s skipped=%s repeated=%s",
        len(flights) + skipped,
        len(unique),
        skipped,
        ",".join(find_duplicate_unique_ids(flights)) or "-",
    )
    return unique


def _build_flight(
    leg: LegPanel,
    previous: ExtractedFlight | None,
    connection: int | None,
    fallback_date: str,
) -> ExtractedFlight:
    departure_time = leg.departure_time or ""
    arrival_time = leg.arrival_time or ""
    heading_date = parse_heading_date(leg.heading_text or "", fallback_date)
    if previous is None:
        departure_date = heading_date
    else:
        departure_date = infer_leg_date(
            previous.arrival_date,
            previous.arrival_time,
            departure_time,
            heading_date,
            connection,
        )

    duration = parse_duration(leg.duration_text)
    if duration == 0:
        duration = minutes_between(departure_time, arrival_time)

    return ExtractedFlight(
        unique_id=leg.unique_id or "",
        flight_number=leg.flight_number or "",
        departure_airport_iata_code=leg.departure_iata or "",
        arrival_airport_iata_code=leg.arrival_iata or "",
        departure_date=departure_date,
        departure_time=departure_time,
        arrival_date=arrival_date_for(departure_date, departure_time, arrival_time, duration),
        arrival_time=arrival_time,
        duration_minutes=duration,
        connection_minutes=connection,
    )
