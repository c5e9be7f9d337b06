from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


class PageFetchError(RuntimeError):
    """Raised when a result page cannot be retrieved."""


class UnknownSourceError(ValueError):
    """Raised when a scrape names a site with no extraction profile."""


@dataclass(slots=True, frozen=True)
class ExtractedFlight:
    unique_id: str
    flight_number: str
    departure_airport_iata_code: str
    arrival_airport_iata_code: str
    departure_date: str
    departure_time: str
    arrival_date: str
    arrival_time: str
    duration_minutes: int
    connection_minutes: int | None = None


@dataclass(slots=True, frozen=True)
class ExtractedBundle:
    unique_id: str
    outbound_flight_unique_ids: tuple[str, ...]
    inbound_flight_unique_ids: tuple[str, ...]
    outbound_date: str | None = None
    inbound_date: str | None = None
    outbound_connection_minutes: tuple[int | None, ...] = ()
    inbound_connection_minutes: tuple[int | None, ...] = ()


@dataclass(slots=True, frozen=True)
class ExtractedBookingOption:
    unique_id: str
    target_unique_id: str
    agency: str
    price: int
    currency: str
    link_to_book: str
    extracted_at: datetime


@dataclass(slots=True)
class ExtractionResult:
    source: str
    flights: list[ExtractedFlight] = field(default_factory=list)
    bundles: list[ExtractedBundle] = field(default_factory=list)
    booking_options: list[ExtractedBookingOption] = field(default_factory=list)

    def counts(self) -> dict[str, int]:
        return {
            "flights": len(self.flights),
            "bundles": len(self.bundles),
            "booking_options": len(self.booking_options),
        }
