from __future__ import annotations

import pytest

from aggregator.services.store import EntityKind, FlightRow, SqlAlchemyEntityStore


def _row(
    flight_number: str,
    origin: str,
    destination: str,
    departure_date: str,
    departure_time: str = "09:00",
) -> FlightRow:
    return FlightRow(
        unique_id=f"flight_{flight_number}_{origin}_{destination}",
        flight_number=flight_number,
        departure_airport_iata_code=origin,
        arrival_airport_iata_code=destination,
        departure_date=departure_date,
        departure_time=departure_time,
        arrival_date=departure_date,
        arrival_time="11:00",
        duration_minutes=120,
    )


async def _seed(store: SqlAlchemyEntityStore) -> dict[str, str]:
    ids: dict[str, str] = {}
    for row in (
        _row("EI337", "BER", "DUB", "2025-10-10", "06:35"),
        _row("I21882", "DUB", "MAD", "2025-10-10", "10:15"),
        _row("I21801", "MAD", "BER", "2025-10-17"),
        _row("KL1770", "BER", "AMS", "2025-11-02"),
    ):
        ids[row.unique_id] = await store.insert(row)
    return ids


@pytest.mark.asyncio
async def test_lookup_storage_ids_only_returns_known(session_factory) -> None:
    store = SqlAlchemyEntityStore(session_factory)
    ids = await _seed(store)

    found = await store.lookup_storage_ids(
        EntityKind.flight, ["flight_EI337_BER_DUB", "flight_XX1_AAA_BBB"]
    )

    assert found == {"flight_EI337_BER_DUB": ids["flight_EI337_BER_DUB"]}
    assert await store.lookup_storage_ids(EntityKind.bundle, ["flight_EI337_BER_DUB"]) == {}


@pytest.mark.asyncio
async def test_flights_departing_between_is_inclusive_and_ordered(session_factory) -> None:
    store = SqlAlchemyEntityStore(session_factory)
    await _seed(store)

    flights = await store.flights_departing_between("2025-10-10", "2025-10-17")

    assert [flight.flight_number for flight in flights] == ["EI337", "I21882", "I21801"]
    assert await store.flights_departing_between("2025-12-01", "2025-12-31") == []


@pytest.mark.asyncio
async def test_search_flights_matches_number_and_airport_prefixes(session_factory) -> None:
    store = SqlAlchemyEntityStore(session_factory)
    await _seed(store)

    by_number = await store.search_flights("i2", limit=10)
    by_airport = await store.search_flights("ams", limit=10)
    limited = await store.search_flights("BER", limit=1)

    assert sorted(flight.flight_number for flight in by_number) == ["I21801", "I21882"]
    assert [flight.flight_number for flight in by_airport] == ["KL1770"]
    assert len(limited) == 1
    assert await store.search_flights("   ", limit=10) == []


@pytest.mark.asyncio
async def test_patch_and_delete_by_storage_id(session_factory) -> None:
    store = SqlAlchemyEntityStore(session_factory)
    ids = await _seed(store)
    storage_id = ids["flight_EI337_BER_DUB"]

    await store.patch(EntityKind.flight, storage_id, {"departure_time": "07:05"})
    patched = await store.get_by_unique_id(EntityKind.flight, "flight_EI337_BER_DUB")
    assert patched is not None
    assert patched.departure_time == "07:05"

    await store.delete(EntityKind.flight, storage_id)
    assert await store.get_by_unique_id(EntityKind.flight, "flight_EI337_BER_DUB") is None

    with pytest.raises(LookupError):
        await store.patch(EntityKind.flight, storage_id, {"departure_time": "08:00"})


@pytest.mark.asyncio
async def test_insert_rejects_unknown_row_type(session_factory) -> None:
    store = SqlAlchemyEntityStore(session_factory)

    with pytest.raises(TypeError):
        await store.insert({"unique_id": "flight_EI337_BER_DUB"})  # type: ignore[arg-type]
