from __future__ import annotations

from collections import Counter
from collections.abc import Collection, Iterable, Sequence
from dataclasses import dataclass
from typing import Generic, Protocol, TypeVar


class HasUniqueId(Protocol):
    @property
    def unique_id(self) -> str: ...


RecordT = TypeVar("RecordT", bound=HasUniqueId)


def flight_unique_id(flight_number: str, departure_iata: str, arrival_iata: str) -> str:
    return f"flight_{flight_number}_{departure_iata}_{arrival_iata}"


def bundle_unique_id(
    outbound_flight_unique_ids: Sequence[str], inbound_flight_unique_ids: Sequence[str]
) -> str:
    if not outbound_flight_unique_ids and not inbound_flight_unique_ids:
        raise ValueError("a bundle needs at least one flight")
    parts = ["bundle", *outbound_flight_unique_ids]
    if inbound_flight_unique_ids:
        parts.extend(inbound_flight_unique_ids)
    return "_".join(parts)


def booking_option_unique_id(target_unique_id: str, agency: str, price: int, currency: str) -> str:
    return f"booking_{agency}_{target_unique_id}_{price}_{currency}"


def dedupe_first_seen(records: Iterable[RecordT]) -> list[RecordT]:
    selected: dict[str, RecordT] = {}
    for record in records:
        if record.unique_id in selected:
            continue
        selected[record.unique_id] = record
    return list(selected.values())


def find_duplicate_unique_ids(records: Iterable[HasUniqueId]) -> list[str]:
    counts = Counter(record.unique_id for record in records)
    return sorted(unique_id for unique_id, count in counts.items() if count > 1)


@dataclass(slots=True, frozen=True)
class ClassifiedRecord(Generic[RecordT]):
    record: RecordT
    exists: bool


def classify_records(
    records: Iterable[RecordT], existing_unique_ids: Collection[str]
) -> list[ClassifiedRecord[RecordT]]:
    return [
        ClassifiedRecord(record=record, exists=record.unique_id in existing_unique_ids)
        for record in records
    ]
