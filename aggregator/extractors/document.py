"""Minimal parsed-document interface the extractors walk.

Extraction code only needs children, attributes and text of a node, so it is
written against :class:`DocumentNode` and never touches the HTML parser
directly. :func:`parse_document` returns the BeautifulSoup-backed adapter.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from typing import Protocol

from bs4 import BeautifulSoup, Tag

_WHITESPACE = re.compile(r"\s+")


class DocumentNode(Protocol):
    @property
    def tag(self) -> str: ...

    def children(self) -> Iterator[DocumentNode]: ...

    def attr(self, name: str) -> str | None: ...

    def text(self) -> str: ...


class SoupNode:
    __slots__ = ("_tag",)

    def __init__(self, tag: Tag) -> None:
        self._tag = tag

    @property
    def tag(self) -> str:
        return self._tag.name or ""

    def children(self) -> Iterator[SoupNode]:
        for child in self._tag.children:
            if isinstance(child, Tag):
                yield SoupNode(child)

    def attr(self, name: str) -> str | None:
        value = self._tag.get(name)
        if value is None:
            return None
        if isinstance(value, list):
            return " ".join(value)
        return str(value)

    def text(self) -> str:
        return _WHITESPACE.sub(" ", self._tag.get_text(" ")).strip()

    def __eq__(self, other: object) -> bool:
        return isinstance(other, SoupNode) and other._tag is self._tag

    def __hash__(self) -> int:
        return id(self._tag)

    def __repr__(self) -> str:
        return f"SoupNode(<{self.tag} class={self.attr('class')!r}>)"


def parse_document(html: str) -> SoupNode:
    return SoupNode(BeautifulSoup(html, "html.parser"))


def has_class(node: DocumentNode, class_name: str) -> bool:
    return class_name in (node.attr("class") or "").split()


def walk(node: DocumentNode) -> Iterator[DocumentNode]:
    """Yield the descendants of ``node`` in document (pre-)order."""
    stack = list(node.children())
    stack.reverse()
    while stack:
        current = stack.pop()
        yield current
        nested = list(current.children())
        nested.reverse()
        stack.extend(nested)


def matches(node: DocumentNode, tag: str | None = None, class_name: str | None = None) -> bool:
    if tag is not None and node.tag != tag:
        return False
    if class_name is not None and not has_class(node, class_name):
        return False
    return True


def find_all(
    node: DocumentNode, tag: str | None = None, class_name: str | None = None
) -> list[DocumentNode]:
    return [item for item in walk(node) if matches(item, tag, class_name)]


def find_first(
    node: DocumentNode, tag: str | None = None, class_name: str | None = None
) -> DocumentNode | None:
    for item in walk(node):
        if matches(item, tag, class_name):
            return item
    return None


def row_texts(column: DocumentNode | None) -> list[str]:
    """Text of each paragraph row of a column, in document order."""
    if column is None:
        return []
    return [row.text() for row in find_all(column, tag="p")]
