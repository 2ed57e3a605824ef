# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Hierarchy builder: infer the documentation tree from URL structure.

Every document gets a level (1-4) from its path.  A document's parent is the
closest-level document whose path is a prefix of its own; documents without
one become roots.  The forest is assembled in an arena (nodes indexed by URL,
explicit parent/children index links) and frozen into immutable
``DocumentNode`` trees only once every link is known, so "single parent, no
cycles, levels strictly increase" is checked at the point of attachment.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from urllib.parse import urlparse

from docbundle import DocumentNode, NormalizedDocument
from docbundle.errors import HierarchyError
from docbundle.text_utils import clean_text, path_segments, sanitize_title

logger = logging.getLogger(__name__)

MAX_LEVEL = 4
DEFAULT_PRIORITY = 10

_TOP_LEVEL_SEGMENTS = frozenset({"index", "home", "introduction", "overview", "getting-started", "quickstart"})
_REFERENCE_SEGMENTS = frozenset({"api", "reference", "methods"})

# (where, needles, priority); first hit wins.
_PRIORITY_RULES: tuple[tuple[str, tuple[str, ...], int], ...] = (
    ("title", ("introduction", "overview"), 1),
    ("title", ("getting started", "quickstart"), 2),
    ("title", ("installation", "setup"), 3),
    ("title", ("tutorial", "guide"), 4),
    ("url", ("getting-started", "quickstart"), 2),
    ("url", ("installation", "setup"), 3),
)


# ---------------------------------------------------------------------------
# URL scoring
# ---------------------------------------------------------------------------


def document_level(url: str) -> int:
    """Depth of a page in the documentation tree, 1 (top) to 4."""
    try:
        segments = [s for s in path_segments(url) if s.lower() != "index.html"]
    except ValueError:
        return 2
    if len(segments) <= 1:
        return 1
    lowered = {s.lower() for s in segments}
    if lowered & _TOP_LEVEL_SEGMENTS:
        return 1
    if lowered & _REFERENCE_SEGMENTS:
        return min(len(segments), MAX_LEVEL)
    return min(len(segments), 3)


def is_parent_candidate(parent_url: str, child_url: str) -> bool:
    """Whether *parent_url*'s path (trailing slash stripped) is a literal prefix of *child_url*'s."""
    try:
        parent_path = urlparse(parent_url).path.rstrip("/")
        child_path = urlparse(child_url).path
    except ValueError:
        return False
    return child_path.startswith(parent_path)


def url_similarity(a: str, b: str) -> float:
    """Shared leading path segments over the longer path's segment count."""
    try:
        sa, sb = path_segments(a), path_segments(b)
    except ValueError:
        return 0.0
    shared = 0
    for x, y in zip(sa, sb, strict=False):
        if x != y:
            break
        shared += 1
    return shared / max(len(sa), len(sb), 1)


def document_priority(title: str, url: str) -> int:
    """Reading-order rank among siblings; lower comes first."""
    haystacks = {"title": title.lower(), "url": url.lower()}
    for where, needles, priority in _PRIORITY_RULES:
        if any(n in haystacks[where] for n in needles):
            return priority
    return DEFAULT_PRIORITY


# ---------------------------------------------------------------------------
# Arena
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class _Slot:
    title: str
    url: str
    content: str
    level: int
    parent: int | None = None
    children: list[int] = field(default_factory=list)


class DocumentArena:
    """Mutable build-time forest; nodes addressed by index, looked up by URL."""

    __slots__ = ("_slots", "_by_url")

    def __init__(self) -> None:
        self._slots: list[_Slot] = []
        self._by_url: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._slots)

    def __contains__(self, url: object) -> bool:
        return url in self._by_url

    def add(self, title: str, url: str, content: str, level: int) -> int:
        if url in self._by_url:
            raise HierarchyError(f"duplicate node url: {url}")
        self._slots.append(_Slot(title=title, url=url, content=content, level=level))
        self._by_url[url] = len(self._slots) - 1
        return len(self._slots) - 1

    def index_of(self, url: str) -> int:
        return self._by_url[url]

    def level(self, idx: int) -> int:
        return self._slots[idx].level

    def url(self, idx: int) -> str:
        return self._slots[idx].url

    def attach(self, child: int, parent: int) -> None:
        c, p = self._slots[child], self._slots[parent]
        if c.parent is not None:
            raise HierarchyError(f"{c.url} already has parent {self._slots[c.parent].url}")
        if p.level >= c.level:
            raise HierarchyError(f"parent {p.url} (level {p.level}) not above {c.url} (level {c.level})")
        if self._is_ancestor(child, parent):
            raise HierarchyError(f"attaching {c.url} under {p.url} would create a cycle")
        c.parent = parent
        p.children.append(child)

    def roots(self) -> list[int]:
        return [i for i, s in enumerate(self._slots) if s.parent is None]

    def freeze(self) -> tuple[DocumentNode, ...]:
        """Immutable forest with every sibling list in reading order."""
        return tuple(self._freeze(i) for i in self._ordered(self.roots()))

    def _is_ancestor(self, candidate: int, node: int) -> bool:
        cur: int | None = node
        while cur is not None:
            if cur == candidate:
                return True
            cur = self._slots[cur].parent
        return False

    def _ordered(self, indices: Iterable[int]) -> list[int]:
        def key(i: int) -> tuple:
            s = self._slots[i]
            return (document_priority(s.title, s.url), s.title.lower(), s.title, s.url)

        return sorted(indices, key=key)

    def _freeze(self, idx: int) -> DocumentNode:
        s = self._slots[idx]
        return DocumentNode(
            title=s.title,
            url=s.url,
            content=s.content,
            level=s.level,
            children=tuple(self._freeze(c) for c in self._ordered(s.children)),
        )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def build_forest(
    docs: Iterable[NormalizedDocument],
    *,
    log: logging.Logger | logging.LoggerAdapter | None = None,
) -> tuple[DocumentNode, ...]:
    """Arrange *docs* into a forest of DocumentNode trees.

    Duplicate URLs keep the first document.  Output does not depend on input
    order: parent choice and sibling order are both total orders.
    """
    log = log or logger
    arena = DocumentArena()
    for doc in docs:
        if doc.url in arena:
            log.warning("Duplicate document %s ignored", doc.url)
            continue
        arena.add(
            title=sanitize_title(doc.title),
            url=doc.url,
            content=clean_text(doc.body_text),
            level=document_level(doc.url),
        )

    for child in range(len(arena)):
        parent = _best_parent(arena, child)
        if parent is None:
            if arena.level(child) > 1:
                log.info("No parent for %s (level %d); promoted to root", arena.url(child), arena.level(child))
            continue
        arena.attach(child, parent)

    forest = arena.freeze()
    log.debug("Built forest: %d documents, %d roots", len(arena), len(forest))
    return forest


def iter_nodes(forest: Iterable[DocumentNode]) -> Iterator[DocumentNode]:
    """Depth-first, pre-order walk over every node of *forest*."""
    for node in forest:
        yield node
        yield from iter_nodes(node.children)


def check_forest(forest: Iterable[DocumentNode]) -> None:
    """Raise HierarchyError unless levels are 1-4, strictly increasing, and URLs unique."""
    seen: set[str] = set()

    def visit(node: DocumentNode, parent_level: int) -> None:
        if not 1 <= node.level <= MAX_LEVEL:
            raise HierarchyError(f"{node.url}: level {node.level} out of range")
        if node.level <= parent_level:
            raise HierarchyError(f"{node.url}: level {node.level} not below parent level {parent_level}")
        if node.url in seen:
            raise HierarchyError(f"{node.url}: appears more than once")
        seen.add(node.url)
        for child in node.children:
            visit(child, node.level)

    for root in forest:
        visit(root, 0)


def _best_parent(arena: DocumentArena, child: int) -> int | None:
    child_url = arena.url(child)
    child_level = arena.level(child)
    candidates = [
        i
        for i in range(len(arena))
        if i != child and arena.level(i) < child_level and is_parent_candidate(arena.url(i), child_url)
    ]
    if not candidates:
        return None
    return min(
        candidates,
        key=lambda i: (
            abs(arena.level(i) - (child_level - 1)),
            -url_similarity(arena.url(i), child_url),
            arena.url(i),
        ),
    )
