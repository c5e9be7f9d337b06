from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from aggregator.db import Base


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _new_id() -> str:
    return str(uuid4())


class Flight(Base):
    __tablename__ = "flights"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    unique_id: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    flight_number: Mapped[str] = mapped_column(String(16), nullable=False)
    departure_airport_iata_code: Mapped[str] = mapped_column(String(3), nullable=False)
    arrival_airport_iata_code: Mapped[str] = mapped_column(String(3), nullable=False)
    departure_date: Mapped[str] = mapped_column(String(10), nullable=False)
    departure_time: Mapped[str] = mapped_column(String(5), nullable=False)
    arrival_date: Mapped[str] = mapped_column(String(10), nullable=False)
    arrival_time: Mapped[str] = mapped_column(String(5), nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class Bundle(Base):
    __tablename__ = "bundles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    unique_id: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    outbound_flight_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    inbound_flight_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    outbound_date: Mapped[str | None] = mapped_column(String(10), nullable=True)
    inbound_date: Mapped[str | None] = mapped_column(String(10), nullable=True)
    # Layover before each leg, aligned with the flight id lists.
    outbound_connection_minutes: Mapped[list[int | None]] = mapped_column(
        JSON, nullable=False, default=list
    )
    inbound_connection_minutes: Mapped[list[int | None]] = mapped_column(
        JSON, nullable=False, default=list
    )


class BookingOption(Base):
    __tablename__ = "booking_options"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    unique_id: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    target_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("bundles.id"), nullable=False, index=True
    )
    agency: Mapped[str] = mapped_column(String(120), nullable=False)
    price: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    link_to_book: Mapped[str] = mapped_column(Text, nullable=False, default="")
    extracted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class ScrapeRun(Base):
    __tablename__ = "scrape_runs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    source: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(24), nullable=False, default="queued")
    request_json: Mapped[dict] = mapped_column(JSON, nullable=False)
    latency_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    counts_json: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


Index("idx_flights_departure_date", Flight.departure_date, Flight.departure_time)
Index("idx_scrape_runs_source_created", ScrapeRun.source, ScrapeRun.created_at)
