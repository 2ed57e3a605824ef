# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Section formatter: DocumentNode forest → ContextBundle text.

Layout::

    # <title>
    Source / Generated / Format / Sections header block
    ---
    ## Table of Contents      (more than one section, headers enabled)
    ---
    sections, headings at depth + 1 (max 6)
    ---
    footer

Section content is cut to ``max_section_length``: whole sentences in summary
mode, a word-boundary truncation in full mode.  ``validate_bundle`` is
advisory; it never blocks output.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from docbundle import BundleMetadata, ContextBundle, DocumentNode, Section, ValidationResult
from docbundle.text_utils import extract_domain

logger = logging.getLogger(__name__)

ELLIPSIS = "..."
SUMMARY_DEFAULT_LENGTH = 300
FULL_DEFAULT_LENGTH = 1000
MIN_BUNDLE_LENGTH = 100
MAX_BUNDLE_LENGTH = 100_000

# A word-boundary cut must keep at least this share of the limit...
_WORD_BOUNDARY_RATIO = 0.8
# ...except below this limit, where the last 20% is narrower than a word: a cut
# that would split a word may back off as far as half the limit.
_SHORT_LIMIT = 40
_SHORT_LIMIT_RATIO = 0.5

# Terminal punctuation ends a sentence only before whitespace or end of text.
_SENTENCE_END_RE = re.compile(r"[.!?]+(?=\s|\Z)")
_HEADING_LINE_RE = re.compile(r"^#{1,6}\s+", re.MULTILINE)

_FOOTER = "*This documentation was generated automatically from web content.*"
_FOOTER_SOURCES = "*Source URLs are preserved for reference and verification.*"


class FormatOptions(BaseModel):
    """Rendering options; camelCase aliases are accepted for API-style input."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    format_mode: Literal["full", "summary"] = Field(
        "full", alias="formatMode", description="full: word-boundary truncation; summary: whole sentences"
    )
    include_source_urls: bool = Field(True, alias="includeSourceUrls", description="Emit a Source line per section")
    include_section_headers: bool = Field(
        True,
        validation_alias=AliasChoices("include_section_headers", "includeSectionHeaders", "sectionHeaders"),
        description="Emit section headings and the table of contents",
    )
    max_section_length: int | None = Field(
        None, alias="maxSectionLength", ge=1, description="Per-section content limit (default depends on mode)"
    )
    title: str = Field("Documentation", min_length=1, description="Bundle heading")

    @property
    def effective_max_length(self) -> int:
        if self.max_section_length is not None:
            return self.max_section_length
        return SUMMARY_DEFAULT_LENGTH if self.format_mode == "summary" else FULL_DEFAULT_LENGTH

    @classmethod
    def summary(cls, **overrides) -> FormatOptions:
        """Compact preset: sentences only, no URLs, no headings."""
        values = {
            "format_mode": "summary",
            "include_source_urls": False,
            "include_section_headers": False,
            "max_section_length": SUMMARY_DEFAULT_LENGTH,
        }
        values.update(overrides)
        return cls(**values)


# ---------------------------------------------------------------------------
# Content processing
# ---------------------------------------------------------------------------


def _hard_cut(content: str, limit: int) -> str:
    if limit <= len(ELLIPSIS):
        return ELLIPSIS[:limit]
    return content[: limit - len(ELLIPSIS)] + ELLIPSIS


def summarize_content(content: str, limit: int) -> str:
    """Leading whole sentences that fit in *limit*; hard cut when none does."""
    if len(content) <= limit:
        return content
    end = 0
    for m in _SENTENCE_END_RE.finditer(content):
        if m.end() > limit:
            break
        end = m.end()
    return content[:end].rstrip() or _hard_cut(content, limit)


def truncate_content(content: str, limit: int) -> str:
    """Cut *content* to at most *limit* chars, preferring a word boundary, ending in ``...``."""
    if len(content) <= limit:
        return content
    if limit <= len(ELLIPSIS):
        return ELLIPSIS[:limit]
    cut = content[: limit - len(ELLIPSIS)]
    idx = cut.rfind(" ")
    splits_word = not cut[-1].isspace() and not content[len(cut)].isspace()
    short_ok = limit < _SHORT_LIMIT and splits_word and idx >= limit * _SHORT_LIMIT_RATIO
    if idx > 0 and (idx > limit * _WORD_BOUNDARY_RATIO or short_ok):
        cut = cut[:idx]
    return cut.rstrip() + ELLIPSIS


def slugify(title: str) -> str:
    slug = re.sub(r"[^\w\s-]", "", title.lower())
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def to_sections(forest: Iterable[DocumentNode], options: FormatOptions) -> tuple[Section, ...]:
    """Mirror *forest* as Sections with processed content (same shape, nothing skipped)."""
    limit = options.effective_max_length
    process = summarize_content if options.format_mode == "summary" else truncate_content

    def convert(node: DocumentNode) -> Section:
        return Section(
            title=node.title,
            content=process(node.content, limit),
            source_url=node.url,
            subsections=tuple(convert(c) for c in node.children),
        )

    return tuple(convert(n) for n in forest)


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _count_sections(sections: Iterable[Section]) -> int:
    return sum(1 + _count_sections(s.subsections) for s in sections)


def _render_toc(lines: list[str], sections: Iterable[Section], depth: int) -> None:
    bullet = "-" if depth == 1 else "*"
    for s in sections:
        lines.append(f"{'  ' * (depth - 1)}{bullet} [{s.title}](#{slugify(s.title)})")
        _render_toc(lines, s.subsections, depth + 1)


def _render_section(lines: list[str], section: Section, depth: int, options: FormatOptions) -> None:
    if options.include_section_headers:
        lines.extend((f"{'#' * min(depth + 1, 6)} {section.title}", ""))
    if options.include_source_urls:
        lines.extend((f"*Source: [{section.source_url}]({section.source_url})*", ""))
    content = section.content.strip()
    if content:
        lines.extend((content, ""))
    for sub in section.subsections:
        _render_section(lines, sub, depth + 1, options)


def format_bundle(
    forest: Iterable[DocumentNode],
    options: FormatOptions | None = None,
    *,
    source_count: int | None = None,
    generated_at: datetime | str | None = None,
) -> ContextBundle:
    """Render *forest* into a ContextBundle.

    Args:
        forest: root nodes, already in reading order
        options: rendering options (defaults to FormatOptions())
        source_count: pages the bundle was built from (defaults to the node count)
        generated_at: fixed timestamp for reproducible output (defaults to now, UTC)
    """
    options = options or FormatOptions()
    forest = tuple(forest)
    sections = to_sections(forest, options)

    if generated_at is None:
        generated_at = datetime.now(timezone.utc)
    stamp = generated_at.isoformat() if isinstance(generated_at, datetime) else generated_at

    first_url = forest[0].url if forest else ""
    source = extract_domain(first_url) or first_url or "unknown"

    lines = [
        f"# {options.title}",
        "",
        f"Source: {source}",
        f"Generated: {stamp}",
        f"Format: {options.format_mode}",
        f"Sections: {len(sections)}",
        "",
        "---",
        "",
    ]

    if len(sections) > 1 and options.include_section_headers:
        lines.extend(("## Table of Contents", ""))
        _render_toc(lines, sections, 1)
        lines.extend(("", "---", ""))

    for section in sections:
        _render_section(lines, section, 1, options)
        lines.append("")

    lines.extend(("---", "", _FOOTER))
    if options.include_source_urls:
        lines.append(_FOOTER_SOURCES)

    text = "\n".join(lines)
    metadata = BundleMetadata(
        generated_at=stamp,
        source_count=source_count if source_count is not None else _count_sections(sections),
        total_length=len(text),
        format_mode=options.format_mode,
    )
    logger.debug("Rendered bundle: %d sections, %d chars", metadata.source_count, metadata.total_length)
    return ContextBundle(text=text, sections=sections, metadata=metadata)


def validate_bundle(text: str) -> ValidationResult:
    """Structural sanity checks on rendered bundle text (advisory only)."""
    issues: list[str] = []
    if len(text) < MIN_BUNDLE_LENGTH:
        issues.append(f"bundle too short ({len(text)} chars, minimum {MIN_BUNDLE_LENGTH})")
    if not text.startswith("# "):
        issues.append("bundle does not start with a top-level heading")
    if len(text) > MAX_BUNDLE_LENGTH:
        issues.append(f"bundle too long ({len(text)} chars, maximum {MAX_BUNDLE_LENGTH})")
    if not _HEADING_LINE_RE.search(text):
        issues.append("bundle has no headings")
    return ValidationResult(valid=not issues, issues=tuple(issues))
