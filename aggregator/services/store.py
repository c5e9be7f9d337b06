from __future__ import annotations

from collections.abc import Sequence
from dataclasses import asdict, dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any, Protocol

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from aggregator.models import BookingOption, Bundle, Flight

_LOOKUP_CHUNK_SIZE = 500


class EntityKind(StrEnum):
    flight = "flight"
    bundle = "bundle"
    booking_option = "booking_option"


@dataclass(slots=True, frozen=True)
class FlightRow:
    unique_id: str
    flight_number: str
    departure_airport_iata_code: str
    arrival_airport_iata_code: str
    departure_date: str
    departure_time: str
    arrival_date: str
    arrival_time: str
    duration_minutes: int

    kind = EntityKind.flight


@dataclass(slots=True, frozen=True)
class BundleRow:
    unique_id: str
    outbound_flight_ids: list[str]
    inbound_flight_ids: list[str]
    outbound_date: str | None
    inbound_date: str | None
    outbound_connection_minutes: list[int | None]
    inbound_connection_minutes: list[int | None]

    kind = EntityKind.bundle


@dataclass(slots=True, frozen=True)
class BookingOptionRow:
    unique_id: str
    target_id: str
    agency: str
    price: int
    currency: str
    link_to_book: str
    extracted_at: datetime

    kind = EntityKind.booking_option


StoredRow = FlightRow | BundleRow | BookingOptionRow


def patch_fields(row: StoredRow) -> dict[str, Any]:
    """Columns overwritten when a row with the same unique id already exists."""
    fields = asdict(row)
    fields.pop("unique_id")
    return fields


class EntityStore(Protocol):
    async def lookup_storage_ids(
        self, kind: EntityKind, unique_ids: Sequence[str]
    ) -> dict[str, str]: ...

    async def insert(self, row: StoredRow) -> str: ...

    async def patch(self, kind: EntityKind, storage_id: str, fields: dict[str, Any]) -> None: ...

    async def delete(self, kind: EntityKind, storage_id: str) -> None: ...


_MODELS: dict[EntityKind, type[Flight] | type[Bundle] | type[BookingOption]] = {
    EntityKind.flight: Flight,
    EntityKind.bundle: Bundle,
    EntityKind.booking_option: BookingOption,
}


def _to_model(row: StoredRow) -> Flight | Bundle | BookingOption:
    if isinstance(row, FlightRow):
        return Flight(**asdict(row))
    if isinstance(row, BundleRow):
        return Bundle(**asdict(row))
    if isinstance(row, BookingOptionRow):
        return BookingOption(**asdict(row))
    raise TypeError(f"unsupported row type {type(row).__name__}")


class SqlAlchemyEntityStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def lookup_storage_ids(
        self, kind: EntityKind, unique_ids: Sequence[str]
    ) -> dict[str, str]:
        model = _MODELS[kind]
        wanted = list(dict.fromkeys(unique_ids))
        mapping: dict[str, str] = {}
        async with self._session_factory() as session:
            for start in range(0, len(wanted), _LOOKUP_CHUNK_SIZE):
                chunk = wanted[start : start + _LOOKUP_CHUNK_SIZE]
                stmt = select(model.unique_id, model.id).where(model.unique_id.in_(chunk))
                for unique_id, storage_id in (await session.execute(stmt)).all():
                    mapping[unique_id] = storage_id
        return mapping

    async def insert(self, row: StoredRow) -> str:
        instance = _to_model(row)
        async with self._session_factory() as session:
            session.add(instance)
            await session.commit()
            return instance.id

    async def patch(self, kind: EntityKind, storage_id: str, fields: dict[str, Any]) -> None:
        model = _MODELS[kind]
        async with self._session_factory() as session:
            result = await session.execute(
                update(model).where(model.id == storage_id).values(**fields)
            )
            if result.rowcount == 0:
                raise LookupError(f"{kind} {storage_id} not found")
            await session.commit()

    async def delete(self, kind: EntityKind, storage_id: str) -> None:
        model = _MODELS[kind]
        async with self._session_factory() as session:
            await session.execute(delete(model).where(model.id == storage_id))
            await session.commit()

    async def get_by_unique_id(
        self, kind: EntityKind, unique_id: str
    ) -> Flight | Bundle | BookingOption | None:
        model = _MODELS[kind]
        async with self._session_factory() as session:
            stmt = select(model).where(model.unique_id == unique_id)
            return (await session.execute(stmt)).scalar_one_or_none()

    async def get_bundle(self, bundle_id: str) -> Bundle | None:
        async with self._session_factory() as session:
            return await session.get(Bundle, bundle_id)

    async def flights_by_ids(self, flight_ids: Sequence[str]) -> dict[str, Flight]:
        if not flight_ids:
            return {}
        async with self._session_factory() as session:
            stmt = select(Flight).where(Flight.id.in_(list(flight_ids)))
            return {flight.id: flight for flight in (await session.execute(stmt)).scalars().all()}

    async def booking_options_for_bundle(self, bundle_id: str) -> list[BookingOption]:
        async with self._session_factory() as session:
            stmt = (
                select(BookingOption)
                .where(BookingOption.target_id == bundle_id)
                .order_by(BookingOption.price.asc(), BookingOption.agency.asc())
            )
            return list((await session.execute(stmt)).scalars().all())

    async def flights_departing_between(self, start_date: str, end_date: str) -> list[Flight]:
        async with self._session_factory() as session:
            stmt = (
                select(Flight)
                .where(Flight.departure_date >= start_date, Flight.departure_date <= end_date)
                .order_by(Flight.departure_date.asc(), Flight.departure_time.asc())
            )
            return list((await session.execute(stmt)).scalars().all())

    async def search_flights(self, term: str, limit: int) -> list[Flight]:
        prefix = term.strip().upper()
        if not prefix:
            return []
        async with self._session_factory() as session:
            stmt = (
                select(Flight)
                .where(
                    or_(
                        func.upper(Flight.flight_number).startswith(prefix, autoescape=True),
                        Flight.departure_airport_iata_code.startswith(prefix, autoescape=True),
                        Flight.arrival_airport_iata_code.startswith(prefix, autoescape=True),
                    )
                )
                .limit(limit)
            )
            return list((await session.execute(stmt)).scalars().all())

    async def clear_flight_data(self) -> dict[str, int]:
        """Delete every booking option, bundle and flight, in that order."""
        deleted: dict[str, int] = {}
        async with self._session_factory() as session:
            for key, model in (
                ("booking_options", BookingOption),
                ("bundles", Bundle),
                ("flights", Flight),
            ):
                result = await session.execute(delete(model))
                deleted[key] = result.rowcount or 0
            await session.commit()
        return deleted
