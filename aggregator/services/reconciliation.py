from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from aggregator.extractors.base import (
    ExtractedBookingOption,
    ExtractedBundle,
    ExtractedFlight,
    ExtractionResult,
)
from aggregator.services.identity import classify_records, dedupe_first_seen
from aggregator.services.retry import format_exception_message
from aggregator.services.store import (
    BookingOptionRow,
    BundleRow,
    EntityKind,
    EntityStore,
    FlightRow,
    StoredRow,
    patch_fields,
)

logger = logging.getLogger(__name__)

ExtractedRecord = ExtractedFlight | ExtractedBundle | ExtractedBookingOption


class ReconciliationError(RuntimeError):
    """Raised when the store rejects a write during reconciliation."""


@dataclass(slots=True)
class EntityCounts:
    inserted: int = 0
    replaced: int = 0
    skipped: int = 0

    def as_dict(self) -> dict[str, int]:
        return {"inserted": self.inserted, "replaced": self.replaced, "skipped": self.skipped}


@dataclass(slots=True)
class ReconcileSummary:
    flights: EntityCounts = field(default_factory=EntityCounts)
    bundles: EntityCounts = field(default_factory=EntityCounts)
    booking_options: EntityCounts = field(default_factory=EntityCounts)

    def as_dict(self) -> dict[str, dict[str, int]]:
        return {
            "flights": self.flights.as_dict(),
            "bundles": self.bundles.as_dict(),
            "booking_options": self.booking_options.as_dict(),
        }


def to_row(record: ExtractedRecord, foreign_ids: Mapping[str, str]) -> StoredRow | None:
    """Build the storage row for ``record``, or None when a reference is unmapped."""
    if isinstance(record, ExtractedFlight):
        return FlightRow(
            unique_id=record.unique_id,
            flight_number=record.flight_number,
            departure_airport_iata_code=record.departure_airport_iata_code,
            arrival_airport_iata_code=record.arrival_airport_iata_code,
            departure_date=record.departure_date,
            departure_time=record.departure_time,
            arrival_date=record.arrival_date,
            arrival_time=record.arrival_time,
            duration_minutes=record.duration_minutes,
        )
    if isinstance(record, ExtractedBundle):
        referenced = (*record.outbound_flight_unique_ids, *record.inbound_flight_unique_ids)
        if any(unique_id not in foreign_ids for unique_id in referenced):
            return None
        return BundleRow(
            unique_id=record.unique_id,
            outbound_flight_ids=[foreign_ids[uid] for uid in record.outbound_flight_unique_ids],
            inbound_flight_ids=[foreign_ids[uid] for uid in record.inbound_flight_unique_ids],
            outbound_date=record.outbound_date,
            inbound_date=record.inbound_date,
            outbound_connection_minutes=list(record.outbound_connection_minutes),
            inbound_connection_minutes=list(record.inbound_connection_minutes),
        )
    if isinstance(record, ExtractedBookingOption):
        target_id = foreign_ids.get(record.target_unique_id)
        if target_id is None:
            return None
        return BookingOptionRow(
            unique_id=record.unique_id,
            target_id=target_id,
            agency=record.agency,
            price=record.price,
            currency=record.currency,
            link_to_book=record.link_to_book,
            extracted_at=record.extracted_at,
        )
    raise TypeError(f"unsupported record type {type(record).__name__}")


class Reconciler:
    def __init__(self, store: EntityStore) -> None:
        self._store = store

    async def reconcile_entities(
        self,
        kind: EntityKind,
        records: Sequence[ExtractedRecord],
        existing_unique_ids: Mapping[str, str],
        foreign_ids: Mapping[str, str] | None = None,
    ) -> tuple[EntityCounts, dict[str, str]]:
        """Insert new records and patch existing ones of a single kind.

        Returns the counts and the ``unique_id -> storage id`` mapping of every
        record that was written, for use as ``foreign_ids`` of the next kind.
        """
        counts = EntityCounts()
        storage_ids: dict[str, str] = {}
        references = foreign_ids or {}
        for item in classify_records(dedupe_first_seen(records), existing_unique_ids):
            row = to_row(item.record, references)
            if row is None:
                counts.skipped += 1
                logger.debug(
                    "reconcile skipped kind=%s unique_id=%s reason=unmapped_reference",
                    kind,
                    item.record.unique_id,
                )
                continue
            if row.kind != kind:
                raise TypeError(f"expected {kind} record, got {row.kind}")

            if item.exists:
                storage_id = existing_unique_ids[row.unique_id]
                await self._store.patch(kind, storage_id, patch_fields(row))
                counts.replaced += 1
            else:
                storage_id = await self._store.insert(row)
                counts.inserted += 1
            storage_ids[row.unique_id] = storage_id
        return counts, storage_ids

    async def reconcile(self, extraction: ExtractionResult) -> ReconcileSummary:
        summary = ReconcileSummary()
        try:
            summary.flights, flight_ids = await self._reconcile_kind(
                EntityKind.flight, extraction.flights, {}
            )
            summary.bundles, bundle_ids = await self._reconcile_kind(
                EntityKind.bundle, extraction.bundles, flight_ids
            )
            summary.booking_options, _ = await self._reconcile_kind(
                EntityKind.booking_option, extraction.booking_options, bundle_ids
            )
        except Exception as exc:
            raise ReconciliationError(self._failure_message(extraction, exc)) from exc

        logger.info(
            "reconcile completed source=%s flights=%s/%s bundles=%s/%s booking_options=%s/%s",
            extraction.source,
            summary.flights.inserted,
            summary.flights.replaced,
            summary.bundles.inserted,
            summary.bundles.replaced,
            summary.booking_options.inserted,
            summary.booking_options.replaced,
        )
        return summary

    async def _reconcile_kind(
        self,
        kind: EntityKind,
        records: Sequence[ExtractedRecord],
        foreign_ids: Mapping[str, str],
    ) -> tuple[EntityCounts, dict[str, str]]:
        existing = await self._store.lookup_storage_ids(
            kind, [record.unique_id for record in records]
        )
        return await self.reconcile_entities(kind, records, existing, foreign_ids)

    @staticmethod
    def _failure_message(extraction: ExtractionResult, exc: Exception) -> str:
        attempted = " ".join(f"{key}={value}" for key, value in extraction.counts().items())
        return (
            f"reconcile failed source={extraction.source} attempted {attempted}: "
            f"{format_exception_message(exc)}"
        )
