# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Narrow DOM query interface used by the classifier and normalizer.

Components only select by CSS selector, read text/attributes/inner markup and
remove nodes, so the parser stays replaceable (tests can pass a fake).
``SoupDom`` is the production implementation: BeautifulSoup on the lxml
parser, CSS selectors via soupsieve.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from bs4 import BeautifulSoup, Tag
from soupsieve import SelectorSyntaxError

logger = logging.getLogger(__name__)

_CODE_TAGS = ("pre", "code")

# Never treated as "empty" by remove_empty(): void elements and table cells
# (dropping an empty cell would shift the columns of its row).
_KEEP_WHEN_EMPTY = frozenset(
    {
        "area",
        "base",
        "br",
        "col",
        "embed",
        "hr",
        "img",
        "input",
        "link",
        "meta",
        "param",
        "source",
        "textarea",
        "track",
        "wbr",
        "td",
        "th",
        "tr",
        "html",
        "head",
        "body",
    }
)


class DomQuery(Protocol):
    """Minimal document query surface. Nodes are opaque to callers."""

    def select(self, selector: str) -> list[Any]: ...

    def select_one(self, selector: str) -> Any | None: ...

    def text(self, node: Any) -> str: ...

    def attr(self, node: Any, name: str) -> str | None: ...

    def inner_html(self, node: Any) -> str: ...

    def tag_name(self, node: Any) -> str: ...

    def remove(self, selector: str) -> int: ...

    def remove_empty(self) -> int: ...

    def body(self) -> Any | None: ...


class SoupDom:
    """DomQuery over a BeautifulSoup tree (lxml parser)."""

    __slots__ = ("_soup",)

    def __init__(self, markup: str) -> None:
        self._soup = BeautifulSoup(markup or "", "lxml")

    def select(self, selector: str) -> list[Tag]:
        try:
            return list(self._soup.select(selector))
        except (SelectorSyntaxError, ValueError, NotImplementedError) as e:
            # Profile selectors come from tables; a bad one must degrade, not abort.
            logger.debug("Unsupported selector %r: %s", selector, e)
            return []

    def select_one(self, selector: str) -> Tag | None:
        found = self.select(selector)
        return found[0] if found else None

    def text(self, node: Tag) -> str:
        return node.get_text() or ""

    def attr(self, node: Tag, name: str) -> str | None:
        value = node.get(name)
        if value is None:
            return None
        if isinstance(value, list):  # multi-valued attributes (class, rel)
            return " ".join(value)
        return str(value)

    def inner_html(self, node: Tag) -> str:
        return node.decode_contents()

    def tag_name(self, node: Tag) -> str:
        return (node.name or "").lower()

    def remove(self, selector: str) -> int:
        removed = 0
        for el in self.select(selector):
            # extract() is safe on nodes whose ancestor was already removed
            el.extract()
            removed += 1
        return removed

    def remove_empty(self) -> int:
        """Remove elements with no child nodes at all, deepest first.

        Whitespace text counts as a child: highlighters emit spaces and
        indentation as their own token spans. Code markup is never touched.
        """
        removed = 0
        for el in reversed(self._soup.find_all(True)):
            if el.name in _KEEP_WHEN_EMPTY or el.name in _CODE_TAGS:
                continue
            if el.contents or el.find_parent(_CODE_TAGS) is not None:
                continue
            el.extract()
            removed += 1
        return removed

    def body(self) -> Tag | None:
        return self._soup.body

    def __str__(self) -> str:
        return str(self._soup)
