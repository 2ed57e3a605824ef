# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""docbundle: turn fetched documentation pages into one LLM-consumable context bundle.

Pipeline (see ``docbundle.pipeline``):
- classify: infer the documentation platform (selector hints) per host
- normalize: strip boilerplate, convert to markdown + plain text + metadata
- hierarchy: rebuild the page tree from URL structure
- format: render sections, table of contents and footer into a ContextBundle
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class PageRecord:
    """One page as handed over by the fetching collaborator."""

    url: str
    markup: str
    succeeded: bool = True


@dataclass(frozen=True, slots=True)
class PlatformProfile:
    """Structural hints for one documentation platform."""

    name: str  # gitbook, docusaurus, vuepress, mintlify, generic
    confidence: float  # 0.0–1.0
    content_selectors: tuple[str, ...]
    title_selectors: tuple[str, ...]
    nav_selectors: tuple[str, ...]
    sidebar_selectors: tuple[str, ...] = ()
    features: frozenset[str] = frozenset()
    description: str = ""
    has_sitemap: bool = False
    has_navigation: bool = True
    is_static_site: bool = True
    matched_by: str = "fallback"  # url, markup, heuristic, fallback
    signals: tuple[str, ...] = ()  # names of fired signals

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "confidence": round(self.confidence, 3),
            "description": self.description,
            "content_selectors": list(self.content_selectors),
            "title_selectors": list(self.title_selectors),
            "nav_selectors": list(self.nav_selectors),
            "sidebar_selectors": list(self.sidebar_selectors),
            "features": sorted(self.features),
            "has_sitemap": self.has_sitemap,
            "has_navigation": self.has_navigation,
            "is_static_site": self.is_static_site,
            "matched_by": self.matched_by,
            "signals": list(self.signals),
        }


@dataclass(frozen=True, slots=True)
class Heading:
    level: int  # 1-6, from the tag name
    text: str
    anchor: str | None = None


@dataclass(frozen=True, slots=True)
class CodeBlock:
    language: str
    code: str


@dataclass(frozen=True, slots=True)
class NormalizedDocument:
    """The cleaned, structured representation of one fetched page."""

    url: str  # unique within a batch
    title: str
    body_text: str
    body_markdown: str
    headings: tuple[Heading, ...] = ()
    links: tuple[str, ...] = ()  # absolute, deduplicated, document order
    code_blocks: tuple[CodeBlock, ...] = ()
    platform: str = "generic"


@dataclass(frozen=True, slots=True)
class DocumentNode:
    """One page placed in the inferred documentation forest."""

    title: str
    url: str
    content: str
    level: int  # 1-4; strictly increases from parent to child
    children: tuple[DocumentNode, ...] = ()


@dataclass(frozen=True, slots=True)
class Section:
    """Formatter view of a DocumentNode after truncation/summarization."""

    title: str
    content: str
    source_url: str
    subsections: tuple[Section, ...] = ()


@dataclass(frozen=True, slots=True)
class BundleMetadata:
    generated_at: str  # ISO-8601
    source_count: int
    total_length: int
    format_mode: str


@dataclass(frozen=True, slots=True)
class ContextBundle:
    """Final rendered artifact."""

    text: str
    sections: tuple[Section, ...]
    metadata: BundleMetadata


@dataclass(frozen=True, slots=True)
class ValidationResult:
    valid: bool
    issues: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class BuildResult:
    """What the pipeline hands back: the bundle plus advisory diagnostics."""

    bundle: ContextBundle
    validation: ValidationResult
    skipped_urls: tuple[str, ...] = ()  # failed fetches, empty markup, duplicates
    invalid_urls: tuple[str, ...] = ()  # dropped by the validity check
    stage_ms: dict[str, float] = field(default_factory=dict, hash=False, compare=False)
