from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator, model_validator

from aggregator.services.timeline import CollapseMode


class ScrapeStatus(StrEnum):
    queued = "queued"
    running = "running"
    completed = "completed"
    failed = "failed"


class ScrapeCreateRequest(BaseModel):
    source: str = Field(..., min_length=1)
    html: str | None = None
    url: str | None = None

    @field_validator("source")
    @classmethod
    def _normalize_source(cls, value: str) -> str:
        return value.strip().lower()

    @model_validator(mode="after")
    def _validate_payload(self) -> ScrapeCreateRequest:
        if (self.html is None) == (self.url is None):
            raise ValueError("exactly one of html or url is required")
        return self


class ScrapeCreateResponse(BaseModel):
    scrape_id: str
    status: ScrapeStatus
    created_at: datetime


class ScrapeRunOut(BaseModel):
    scrape_id: str
    source: str
    status: ScrapeStatus
    latency_ms: int | None = None
    counts: dict[str, dict[str, int]] = Field(default_factory=dict)
    error_message: str | None = None
    created_at: datetime
    completed_at: datetime | None = None


class FlightOut(BaseModel):
    flight_id: str
    unique_id: str
    flight_number: str
    departure_airport_iata_code: str
    arrival_airport_iata_code: str
    departure_date: str
    departure_time: str
    arrival_date: str
    arrival_time: str
    duration_minutes: int


class FlightListResponse(BaseModel):
    flights: list[FlightOut]


class BookingOptionOut(BaseModel):
    booking_option_id: str
    agency: str
    price: int
    currency: str
    link_to_book: str
    extracted_at: datetime


class BundleOut(BaseModel):
    bundle_id: str
    unique_id: str
    outbound_date: str | None = None
    inbound_date: str | None = None
    outbound_flights: list[FlightOut] = Field(default_factory=list)
    inbound_flights: list[FlightOut] = Field(default_factory=list)
    outbound_connection_minutes: list[int | None] = Field(default_factory=list)
    inbound_connection_minutes: list[int | None] = Field(default_factory=list)
    booking_options: list[BookingOptionOut] = Field(default_factory=list)


class TimeSpanOut(BaseModel):
    start: datetime
    end: datetime


class TimelineIntervalOut(BaseModel):
    flight_id: str
    flight_number: str
    direction: str
    start: datetime
    end: datetime
    start_relative: float
    end_relative: float
    start_collapsed: float
    end_collapsed: float
    segment_index: int | None = None


class TimelineOut(BaseModel):
    bundle_id: str
    mode: CollapseMode
    collapse_threshold_minutes: int
    start: datetime
    end: datetime
    step_minutes: int
    gaps: list[TimeSpanOut] = Field(default_factory=list)
    segments: list[TimeSpanOut] = Field(default_factory=list)
    intervals: list[TimelineIntervalOut] = Field(default_factory=list)
    ticks: list[datetime] = Field(default_factory=list)


class ClearDataResponse(BaseModel):
    deleted: dict[str, int]


class ScrapeHealthItem(BaseModel):
    source: str
    status: str
    last_latency_ms: int | None = None
    last_error: str | None = None
    last_checked_at: datetime | None = None


class ScrapeHealthResponse(BaseModel):
    sources: list[ScrapeHealthItem]
