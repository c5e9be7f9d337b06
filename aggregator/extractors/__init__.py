from __future__ import annotations

import logging
from datetime import UTC, datetime

from aggregator.extractors.base import ExtractionResult
from aggregator.extractors.booking_options import extract_booking_options
from aggregator.extractors.bundles import extract_bundles
from aggregator.extractors.document import parse_document
from aggregator.extractors.flights import extract_flights
from aggregator.extractors.registry import SourceProfile, SourceRegistry

logger = logging.getLogger(__name__)


def extract_page(
    html: str, profile: SourceProfile, now: datetime | None = None
) -> ExtractionResult:
    """Run every extractor over one parsed result page."""
    extracted_at = now or datetime.now(UTC)
    document = parse_document(html)
    result = ExtractionResult(
        source=profile.name,
        flights=extract_flights(document, now=extracted_at),
        bundles=extract_bundles(document),
        booking_options=extract_booking_options(document, profile, now=extracted_at),
    )
    logger.info(
        "extraction completed source=%s flights=%s bundles=%s booking_options=%s",
        profile.name,
        len(result.flights),
        len(result.bundles),
        len(result.booking_options),
    )
    return result


__all__ = [
    "ExtractionResult",
    "SourceProfile",
    "SourceRegistry",
    "extract_booking_options",
    "extract_bundles",
    "extract_flights",
    "extract_page",
]
