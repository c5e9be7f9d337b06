from aggregator.extractors.document import (
    find_all,
    find_first,
    has_class,
    parse_document,
    row_texts,
    walk,
)
from aggregator.extractors.page import Direction, classify_heading, iter_cards

_HTML = """
<div id="root" class="outer box">
  <p>first</p>
  <div class="inner"><p>  second
     row </p><span>skip</span></div>
  <p>third</p>
</div>
"""


def test_walk_is_document_preorder_and_skips_text_nodes() -> None:
    document = parse_document(_HTML)

    assert [node.tag for node in walk(document)] == ["div", "p", "div", "p", "span", "p"]


def test_attributes_and_classes() -> None:
    root = find_first(parse_document(_HTML), tag="div")

    assert root is not None
    assert root.attr("id") == "root"
    assert root.attr("class") == "outer box"
    assert root.attr("missing") is None
    assert has_class(root, "box")
    assert not has_class(root, "bo")


def test_row_texts_normalize_whitespace() -> None:
    document = parse_document(_HTML)

    assert row_texts(find_first(document, tag="div")) == ["first", "second row", "third"]
    assert row_texts(None) == []
    assert len(find_all(document, class_name="inner")) == 1


def test_classify_heading() -> None:
    assert classify_heading("Outbound Fri, 10 Oct 2025") == Direction.outbound
    assert classify_heading("Return Fri, 17 Oct 2025") == Direction.inbound
    assert classify_heading("Inbound flight") == Direction.inbound
    assert classify_heading("Layover 2h") is None


def test_card_without_reference_falls_back_to_nested_modal() -> None:
    document = parse_document(
        '<div class="list-item"><a href="#">x</a><div class="modal"><p>detail</p></div></div>'
        '<div class="list-item"><a onclick="$(\'#myModal9\').modal()">y</a></div>'
    )

    cards = list(iter_cards(document))

    assert cards[0].detail is not None
    assert cards[0].detail.text() == "detail"
    assert cards[1].detail is None
