"""Walks a result page: itinerary cards, their detail sub-trees and leg panels.

Kiwi and Skyscanner result pages share one layout. Each ``div.list-item``
card opens a ``.modal`` detail view through an anchor whose ``onclick``
references the modal id. The modal lists ``p._heading`` direction headings
("Outbound ...", "Return ...") each followed by ``div._panel_body`` leg
panels, then ``div._similar`` booking quote rows.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass
from enum import StrEnum

from aggregator.extractors.document import (
    DocumentNode,
    find_all,
    find_first,
    has_class,
    row_texts,
    walk,
)
from aggregator.extractors.parsers import (
    extract_flight_number,
    extract_iata,
    parse_clock,
    parse_duration,
)
from aggregator.services.identity import flight_unique_id

CARD_CLASS = "list-item"
DETAIL_CLASS = "modal"
HEADING_CLASS = "_heading"
LEG_CLASS = "_panel_body"
QUOTE_CLASS = "_similar"
PRICE_SUMMARY_CLASS = "prices"
CONNECTION_CLASS = "connect_airport"

_MODAL_REFERENCE = re.compile(r"\$\(\s*['\"]#([A-Za-z][\w-]*\d+)['\"]\s*\)")
_INBOUND_MARKERS = ("return", "inbound")


class Direction(StrEnum):
    outbound = "outbound"
    inbound = "inbound"


@dataclass(slots=True)
class ItineraryCard:
    index: int
    node: DocumentNode
    detail: DocumentNode | None


@dataclass(slots=True)
class LegPanel:
    direction: Direction
    heading_text: str | None
    flight_number: str | None
    departure_time: str | None
    arrival_time: str | None
    departure_iata: str | None
    arrival_iata: str | None
    duration_text: str
    layover_minutes: int | None = None

    @property
    def unique_id(self) -> str | None:
        if not (self.flight_number and self.departure_iata and self.arrival_iata):
            return None
        return flight_unique_id(self.flight_number, self.departure_iata, self.arrival_iata)

    @property
    def is_complete(self) -> bool:
        return (
            self.unique_id is not None
            and self.departure_time is not None
            and self.arrival_time is not None
        )


def iter_cards(document: DocumentNode) -> Iterator[ItineraryCard]:
    ids: dict[str, DocumentNode] = {}
    for node in walk(document):
        element_id = node.attr("id")
        if element_id and element_id not in ids:
            ids[element_id] = node
    for index, card in enumerate(find_all(document, tag="div", class_name=CARD_CLASS)):
        yield ItineraryCard(index=index, node=card, detail=_locate_detail(card, ids))


def _locate_detail(card: DocumentNode, ids: dict[str, DocumentNode]) -> DocumentNode | None:
    """A modal nested in the card wins; otherwise follow the ``onclick`` reference.

    Cloned cards repeat the same modal id, and ``$('#id')`` resolves to the
    first element carrying it.
    """
    nested = find_first(card, class_name=DETAIL_CLASS)
    if nested is not None:
        return nested
    for node in walk(card):
        onclick = node.attr("onclick")
        if not onclick:
            continue
        for element_id in _MODAL_REFERENCE.findall(onclick):
            target = ids.get(element_id)
            if target is not None:
                return target
    return None


def classify_heading(text: str) -> Direction | None:
    lowered = text.lower()
    if "outbound" in lowered:
        return Direction.outbound
    if any(marker in lowered for marker in _INBOUND_MARKERS):
        return Direction.inbound
    return None


def read_legs(detail: DocumentNode | None) -> list[LegPanel]:
    """Leg panels of a detail sub-tree, tagged with the heading before them."""
    if detail is None:
        return []
    legs: list[LegPanel] = []
    direction = Direction.outbound
    heading_text: str | None = None
    for node in walk(detail):
        if has_class(node, HEADING_CLASS):
            classified = classify_heading(node.text())
            if classified is not None:
                direction = classified
                heading_text = node.text()
            continue
        if node.tag == "div" and has_class(node, LEG_CLASS):
            legs.append(read_leg(node, direction, heading_text))
    return legs


def read_leg(panel: DocumentNode, direction: Direction, heading_text: str | None) -> LegPanel:
    head = find_first(panel, tag="div", class_name="_head")
    label = find_first(head, tag="small") if head is not None else None
    item = find_first(panel, tag="div", class_name="_item")

    times: list[str] = []
    airports: list[str] = []
    duration_text = ""
    if item is not None:
        times = [
            text
            for text in row_texts(find_first(item, tag="div", class_name="c3"))
            if parse_clock(text) is not None
        ]
        airport_rows = row_texts(find_first(item, tag="div", class_name="c4"))
        airports = [code for code in (extract_iata(text) for text in airport_rows) if code]
        durations = row_texts(find_first(item, tag="div", class_name="c1"))
        duration_text = durations[0] if durations else ""

    connection = find_first(panel, tag="p", class_name=CONNECTION_CLASS)

    return LegPanel(
        direction=direction,
        heading_text=heading_text,
        flight_number=extract_flight_number(label.text()) if label is not None else None,
        departure_time=times[0] if len(times) >= 2 else None,
        arrival_time=times[1] if len(times) >= 2 else None,
        departure_iata=airports[0] if len(airports) >= 2 else None,
        arrival_iata=airports[1] if len(airports) >= 2 else None,
        duration_text=duration_text,
        layover_minutes=_layover_minutes(connection),
    )


def split_directions(legs: list[LegPanel]) -> tuple[list[LegPanel], list[LegPanel]]:
    outbound = [leg for leg in legs if leg.direction == Direction.outbound]
    inbound = [leg for leg in legs if leg.direction == Direction.inbound]
    return outbound, inbound


def _layover_minutes(connection: DocumentNode | None) -> int | None:
    if connection is None:
        return None
    minutes = parse_duration(connection.text())
    return minutes or None


def connection_minutes(legs: list[LegPanel]) -> list[int | None]:
    """Layover before each leg of one direction; the first leg has none."""
    return [None, *(leg.layover_minutes for leg in legs[:-1])][: len(legs)]
