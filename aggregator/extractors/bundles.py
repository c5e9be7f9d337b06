from __future__ import annotations

import logging

from aggregator.extractors.base import ExtractedBundle
from aggregator.extractors.document import DocumentNode
from aggregator.extractors.page import (
    ItineraryCard,
    LegPanel,
    connection_minutes,
    iter_cards,
    read_legs,
    split_directions,
)
from aggregator.extractors.parsers import parse_heading_date
from aggregator.services.identity import bundle_unique_id, dedupe_first_seen

logger = logging.getLogger(__name__)


def extract_bundles(document: DocumentNode) -> list[ExtractedBundle]:
    bundles: list[ExtractedBundle] = []
    for card in iter_cards(document):
        bundle = bundle_for_card(card)
        if bundle is None:
            logger.debug("bundle extraction skipped card=%s reason=no_legs", card.index)
            continue
        bundles.append(bundle)
    return dedupe_first_seen(bundles)


def bundle_for_card(card: ItineraryCard) -> ExtractedBundle | None:
    outbound_legs, inbound_legs = split_directions(read_legs(card.detail))
    outbound, outbound_connections = _identified_legs(outbound_legs)
    inbound, inbound_connections = _identified_legs(inbound_legs)
    if not outbound and not inbound:
        return None
    return ExtractedBundle(
        unique_id=bundle_unique_id(outbound, inbound),
        outbound_flight_unique_ids=tuple(outbound),
        inbound_flight_unique_ids=tuple(inbound),
        outbound_date=_group_date(outbound_legs),
        inbound_date=_group_date(inbound_legs),
        outbound_connection_minutes=tuple(outbound_connections),
        inbound_connection_minutes=tuple(inbound_connections),
    )


def _identified_legs(legs: list[LegPanel]) -> tuple[list[str], list[int | None]]:
    """Flight ids of one direction and the layover before each of them."""
    unique_ids: list[str] = []
    connections: list[int | None] = []
    for leg, connection in zip(legs, connection_minutes(legs)):
        if leg.unique_id:
            unique_ids.append(leg.unique_id)
            connections.append(connection)
    return unique_ids, connections


def _group_date(legs: list[LegPanel]) -> str | None:
    for leg in legs:
        if leg.heading_text:
            return parse_heading_date(leg.heading_text, "") or None
    return None
