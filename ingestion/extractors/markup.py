"""
Selector-based markup traversal used by the listing parser.

The parser never touches BeautifulSoup directly; it only needs
``select``, ``select_one`` and ``text``. Tests can hand it any object that
implements MarkupNode.
"""

from typing import List, Optional, Protocol

from bs4 import BeautifulSoup
from bs4.element import Tag

from core.exceptions import MarkupParseError


class MarkupNode(Protocol):
    """Minimal traverse-by-selector capability"""

    def select(self, selector: str) -> List["MarkupNode"]:
        ...

    def select_one(self, selector: str) -> Optional["MarkupNode"]:
        ...

    def text(self) -> str:
        ...


class SoupNode:
    """MarkupNode backed by a BeautifulSoup tag"""

    def __init__(self, tag: Tag):
        self._tag = tag

    @classmethod
    def from_html(cls, html: str, parser: str = "lxml") -> "SoupNode":
        """Parse a whole page into a document node"""
        try:
            soup = BeautifulSoup(html, parser)
        except Exception as e:
            raise MarkupParseError(
                "Failed to parse listing page",
                context={"parser": parser, "length": len(html or "")},
                original_exception=e
            )
        return cls(soup)

    def select(self, selector: str) -> List["SoupNode"]:
        return [SoupNode(tag) for tag in self._tag.select(selector)]

    def select_one(self, selector: str) -> Optional["SoupNode"]:
        tag = self._tag.select_one(selector)
        return SoupNode(tag) if tag is not None else None

    def text(self) -> str:
        # Whitespace runs collapse to one space; adjacent inline tags stay joined
        return " ".join(self._tag.get_text().split())
