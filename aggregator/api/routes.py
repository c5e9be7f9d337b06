from __future__ import annotations

from datetime import UTC, date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from aggregator.config import get_settings
from aggregator.db import SessionFactory, get_session
from aggregator.extractors.base import UnknownSourceError
from aggregator.extractors.registry import SourceRegistry
from aggregator.models import BookingOption, Bundle, Flight, ScrapeRun
from aggregator.schemas import (
    BookingOptionOut,
    BundleOut,
    ClearDataResponse,
    FlightListResponse,
    FlightOut,
    ScrapeCreateRequest,
    ScrapeCreateResponse,
    ScrapeHealthItem,
    ScrapeHealthResponse,
    ScrapeRunOut,
    ScrapeStatus,
    TimelineIntervalOut,
    TimelineOut,
    TimeSpanOut,
)
from aggregator.services.store import SqlAlchemyEntityStore
from aggregator.services.timeline import CollapseMode, Interval, build_timeline, tick_marks
from aggregator.workers.ingest_worker import IngestWorker

router = APIRouter()
_registry = SourceRegistry()


def get_store() -> SqlAlchemyEntityStore:
    return SqlAlchemyEntityStore(SessionFactory)


def _ensure_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _flight_to_out(flight: Flight) -> FlightOut:
    return FlightOut(
        flight_id=flight.id,
        unique_id=flight.unique_id,
        flight_number=flight.flight_number,
        departure_airport_iata_code=flight.departure_airport_iata_code,
        arrival_airport_iata_code=flight.arrival_airport_iata_code,
        departure_date=flight.departure_date,
        departure_time=flight.departure_time,
        arrival_date=flight.arrival_date,
        arrival_time=flight.arrival_time,
        duration_minutes=flight.duration_minutes,
    )


def _booking_option_to_out(option: BookingOption) -> BookingOptionOut:
    return BookingOptionOut(
        booking_option_id=option.id,
        agency=option.agency,
        price=option.price,
        currency=option.currency,
        link_to_book=option.link_to_book,
        extracted_at=_ensure_utc(option.extracted_at),
    )


def _scrape_run_to_out(run: ScrapeRun) -> ScrapeRunOut:
    return ScrapeRunOut(
        scrape_id=run.id,
        source=run.source,
        status=ScrapeStatus(run.status),
        latency_ms=run.latency_ms,
        counts=run.counts_json or {},
        error_message=run.error_message,
        created_at=_ensure_utc(run.created_at),
        completed_at=_ensure_utc(run.completed_at),
    )


def _clock_instant(iso_date: str, clock: str) -> datetime:
    # Page times are airport-local wall clock; they are drawn as given.
    return datetime.fromisoformat(f"{iso_date}T{clock}").replace(tzinfo=UTC)


async def _load_bundle(
    store: SqlAlchemyEntityStore, bundle_id: str
) -> tuple[Bundle, dict[str, Flight]]:
    bundle = await store.get_bundle(bundle_id)
    if bundle is None:
        raise HTTPException(status_code=404, detail="bundle_id not found")
    flights = await store.flights_by_ids([*bundle.outbound_flight_ids, *bundle.inbound_flight_ids])
    return bundle, flights


@router.post("/scrapes", response_model=ScrapeCreateResponse, status_code=status.HTTP_202_ACCEPTED)
async def create_scrape(
    payload: ScrapeCreateRequest,
    request: Request,
    session: AsyncSession = Depends(get_session),
) -> ScrapeCreateResponse:
    try:
        _registry.get(payload.source)
    except UnknownSourceError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    run = ScrapeRun(
        source=payload.source,
        request_json=payload.model_dump(mode="json"),
        status=ScrapeStatus.queued.value,
        counts_json={},
    )
    session.add(run)
    await session.commit()
    await session.refresh(run)

    worker: IngestWorker = request.app.state.ingest_worker
    worker.launch(run.id)

    return ScrapeCreateResponse(
        scrape_id=run.id,
        status=ScrapeStatus(run.status),
        created_at=_ensure_utc(run.created_at),
    )


@router.get("/scrapes/{scrape_id}", response_model=ScrapeRunOut)
async def get_scrape(
    scrape_id: str,
    session: AsyncSession = Depends(get_session),
) -> ScrapeRunOut:
    run = await session.get(ScrapeRun, scrape_id)
    if not run:
        raise HTTPException(status_code=404, detail="scrape_id not found")
    return _scrape_run_to_out(run)


@router.get("/bundles/{bundle_id}", response_model=BundleOut)
async def get_bundle(
    bundle_id: str,
    store: SqlAlchemyEntityStore = Depends(get_store),
) -> BundleOut:
    bundle, flights = await _load_bundle(store, bundle_id)
    options = await store.booking_options_for_bundle(bundle.id)
    return BundleOut(
        bundle_id=bundle.id,
        unique_id=bundle.unique_id,
        outbound_date=bundle.outbound_date,
        inbound_date=bundle.inbound_date,
        outbound_flights=[
            _flight_to_out(flights[fid]) for fid in bundle.outbound_flight_ids if fid in flights
        ],
        inbound_flights=[
            _flight_to_out(flights[fid]) for fid in bundle.inbound_flight_ids if fid in flights
        ],
        outbound_connection_minutes=list(bundle.outbound_connection_minutes or []),
        inbound_connection_minutes=list(bundle.inbound_connection_minutes or []),
        booking_options=[_booking_option_to_out(option) for option in options],
    )


@router.get("/bundles/{bundle_id}/timeline", response_model=TimelineOut)
async def get_bundle_timeline(
    bundle_id: str,
    collapse_threshold_minutes: int | None = Query(default=None, ge=0),
    mode: CollapseMode = CollapseMode.trailing,
    store: SqlAlchemyEntityStore = Depends(get_store),
) -> TimelineOut:
    bundle, flights = await _load_bundle(store, bundle_id)
    threshold = (
        collapse_threshold_minutes
        if collapse_threshold_minutes is not None
        else get_settings().timeline_collapse_threshold_minutes
    )

    intervals: list[Interval] = []
    for direction, flight_ids in (
        ("outbound", bundle.outbound_flight_ids),
        ("inbound", bundle.inbound_flight_ids),
    ):
        for flight_id in flight_ids:
            flight = flights.get(flight_id)
            if flight is None:
                continue
            intervals.append(
                Interval(
                    start=_clock_instant(flight.departure_date, flight.departure_time),
                    end=_clock_instant(flight.arrival_date, flight.arrival_time),
                    payload=(direction, flight),
                )
            )
    if not intervals:
        raise HTTPException(status_code=404, detail="bundle has no stored flights")

    try:
        layout = build_timeline(intervals, collapse_threshold_minutes=threshold, mode=mode)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    placed_out: list[TimelineIntervalOut] = []
    for placed in layout.placed:
        direction, flight = placed.interval.payload
        placed_out.append(
            TimelineIntervalOut(
                flight_id=flight.id,
                flight_number=flight.flight_number,
                direction=direction,
                start=placed.interval.start,
                end=placed.interval.end,
                start_relative=placed.start_relative,
                end_relative=placed.end_relative,
                start_collapsed=placed.start_collapsed,
                end_collapsed=placed.end_collapsed,
                segment_index=(
                    layout.segments.index(placed.segment) if placed.segment is not None else None
                ),
            )
        )

    return TimelineOut(
        bundle_id=bundle.id,
        mode=mode,
        collapse_threshold_minutes=threshold,
        start=layout.start,
        end=layout.end,
        step_minutes=int(layout.step.total_seconds() // 60),
        gaps=[TimeSpanOut(start=gap.start, end=gap.end) for gap in layout.gaps],
        segments=[TimeSpanOut(start=span.start, end=span.end) for span in layout.segments],
        intervals=placed_out,
        ticks=tick_marks(layout.start, layout.end, layout.step),
    )


@router.get("/flights", response_model=FlightListResponse)
async def list_flights(
    start_date: date,
    end_date: date,
    store: SqlAlchemyEntityStore = Depends(get_store),
) -> FlightListResponse:
    if end_date < start_date:
        raise HTTPException(status_code=422, detail="end_date must be on or after start_date")
    flights = await store.flights_departing_between(start_date.isoformat(), end_date.isoformat())
    return FlightListResponse(flights=[_flight_to_out(flight) for flight in flights])


@router.get("/flights/search", response_model=FlightListResponse)
async def search_flights(
    q: str = Query(..., min_length=1),
    store: SqlAlchemyEntityStore = Depends(get_store),
) -> FlightListResponse:
    flights = await store.search_flights(q, get_settings().search_result_limit)
    return FlightListResponse(flights=[_flight_to_out(flight) for flight in flights])


@router.delete("/flight-data", response_model=ClearDataResponse)
async def clear_flight_data(
    store: SqlAlchemyEntityStore = Depends(get_store),
) -> ClearDataResponse:
    return ClearDataResponse(deleted=await store.clear_flight_data())


@router.get("/health/scrapes", response_model=ScrapeHealthResponse)
async def scrape_health(
    session: AsyncSession = Depends(get_session),
) -> ScrapeHealthResponse:
    known_sources = set(get_settings().default_sources)

    runs_stmt = select(ScrapeRun).order_by(ScrapeRun.created_at.desc())
    runs = list((await session.execute(runs_stmt)).scalars().all())
    latest_by_source: dict[str, ScrapeRun] = {}
    for run in runs:
        known_sources.add(run.source)
        if run.source not in latest_by_source:
            latest_by_source[run.source] = run

    items: list[ScrapeHealthItem] = []
    for source in sorted(known_sources):
        run = latest_by_source.get(source)
        if run is None:
            items.append(ScrapeHealthItem(source=source, status="never_run"))
            continue
        items.append(
            ScrapeHealthItem(
                source=source,
                status=run.status,
                last_latency_ms=run.latency_ms,
                last_error=run.error_message,
                last_checked_at=_ensure_utc(run.created_at),
            )
        )

    return ScrapeHealthResponse(sources=items)
