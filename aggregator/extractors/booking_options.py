from __future__ import annotations

import logging
from datetime import UTC, datetime

from aggregator.extractors.base import ExtractedBookingOption
from aggregator.extractors.bundles import bundle_for_card
from aggregator.extractors.document import DocumentNode, find_all, find_first, row_texts
from aggregator.extractors.page import (
    PRICE_SUMMARY_CLASS,
    QUOTE_CLASS,
    ItineraryCard,
    iter_cards,
)
from aggregator.extractors.parsers import DEFAULT_CURRENCY, extract_price
from aggregator.extractors.registry import SourceProfile
from aggregator.services.identity import booking_option_unique_id, dedupe_first_seen

logger = logging.getLogger(__name__)


def extract_booking_options(
    document: DocumentNode,
    profile: SourceProfile,
    now: datetime | None = None,
) -> list[ExtractedBookingOption]:
    extracted_at = now or datetime.now(UTC)
    options: list[ExtractedBookingOption] = []
    for card in iter_cards(document):
        option = _option_for_card(card, profile, extracted_at)
        if option is not None:
            options.append(option)
    return dedupe_first_seen(options)


def _option_for_card(
    card: ItineraryCard, profile: SourceProfile, extracted_at: datetime
) -> ExtractedBookingOption | None:
    bundle = bundle_for_card(card)
    if bundle is None:
        logger.debug("booking option skipped card=%s reason=no_bundle", card.index)
        return None

    quote = find_first(card.detail, class_name=QUOTE_CLASS) if card.detail is not None else None
    summary = find_first(card.node, tag="p", class_name=PRICE_SUMMARY_CLASS)
    price_sources = [source for source in (quote, summary) if source is not None]
    if not price_sources:
        logger.debug("booking option skipped card=%s reason=no_price_block", card.index)
        return None

    price: int | None = None
    currency = DEFAULT_CURRENCY
    for source in price_sources:
        price, currency = extract_price(source.text(), DEFAULT_CURRENCY)
        if price is not None:
            break
    if price is None:
        logger.debug(
            "booking option skipped card=%s reason=unparseable_price text=%r",
            card.index,
            " | ".join(source.text() for source in price_sources),
        )
        return None

    agency = _agency_label(quote) or profile.default_agency
    return ExtractedBookingOption(
        unique_id=booking_option_unique_id(bundle.unique_id, agency, price, currency),
        target_unique_id=bundle.unique_id,
        agency=agency,
        price=price,
        currency=currency,
        link_to_book=_booking_link(card, quote, profile),
        extracted_at=extracted_at,
    )


def _agency_label(quote: DocumentNode | None) -> str | None:
    if quote is None:
        return None
    label_column = find_first(quote, tag="div", class_name="c1")
    for text in row_texts(label_column or quote):
        if text and extract_price(text)[0] is None:
            return text
    return None


def _booking_link(
    card: ItineraryCard, quote: DocumentNode | None, profile: SourceProfile
) -> str:
    scopes = [card.node] if card.detail is None else [card.node, card.detail]
    for scope in scopes:
        for anchor in find_all(scope, tag="a"):
            href = anchor.attr("href")
            if profile.is_booking_link(href):
                return href or ""
    if quote is not None:
        anchor = find_first(quote, tag="a")
        if anchor is not None:
            return anchor.attr("href") or ""
    return ""
