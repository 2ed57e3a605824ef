# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""HTML fragment → structured markdown → plain text.

Markdown conversion is markdownify with documentation-specific rules:
  - fenced code blocks, language from a ``language-*`` / ``lang-*`` class
  - inline code in backticks
  - tables as pipe rows, ``---`` separator after a ``th`` header row
  - blockquotes with ``> `` prefixes
  - callouts/admonitions as ``> **LABEL**: text``

Plain text is derived from the markdown by regex stripping, so both views
always describe the same content.
"""

from __future__ import annotations

import logging
import re

from bs4 import BeautifulSoup, Tag
from markdownify import ATX, MarkdownConverter

from docbundle import CodeBlock
from docbundle.text_utils import collapse_whitespace

logger = logging.getLogger(__name__)

# Leftover navigation inside the selected content container.
_FRAGMENT_NOISE = (".sidebar", ".navigation", ".menu", ".toc")

_CODE_LANG_RE = re.compile(r"(?:language|lang)-([\w+#-]+)")

# Any class containing one of these makes a block element a callout.
_CALLOUT_KEYWORDS = ("alert", "callout", "admonition", "note", "warning", "tip", "info")
# Preferred labels when several keywords are present (most specific first).
_CALLOUT_LABELS = ("danger", "caution", "warning", "important", "tip", "info", "note")
_CALLOUT_TAGS = frozenset({"div", "aside", "section", "p", "blockquote"})
_CALLOUT_ATTR = "data-docbundle-callout"

# --- markdown post-cleaning ---
_EXCESS_NEWLINES_RE = re.compile(r"\n{4,}")
_EMPTY_BULLET_RE = re.compile(r"^[ \t]*-[ \t]*$", re.MULTILINE)
_EMPTY_LINK_RE = re.compile(r"(?<!!)\[\]\([^)]*\)")
_HEADING_SPACE_RE = re.compile(r"^(#{1,6})[ \t]+", re.MULTILINE)

# --- plain-text derivation ---
_FENCE_RE = re.compile(r"```[\s\S]*?```")
_IMAGE_RE = re.compile(r"!\[([^\]]*)\]\([^)]*\)")
_LINK_RE = re.compile(r"\[((?:[^\[\]]|\[[^\]]*\])+)\]\([^)]*\)")
_INLINE_CODE_RE = re.compile(r"`([^`]+)`")
_HEADING_RE = re.compile(r"^#{1,6}[ \t]+(.+)$", re.MULTILINE)
_BOLD_RE = re.compile(r"\*\*([^*\n]+)\*\*")
_ITALIC_RE = re.compile(r"\*([^*\n]+)\*")
_BLANK_RUN_RE = re.compile(r"\n{3,}")
_HSPACE_RE = re.compile(r"[ \t]{2,}")
_TRAILING_SPACE_RE = re.compile(r"[ \t]+\n")

# --- code block extraction ---
_CODE_BLOCK_RE = re.compile(r"```([\w+#-]*)\n([\s\S]*?)\n```")


def _code_language(el: Tag | None) -> str:
    if el is None:
        return ""
    for cls in el.get("class") or ():
        m = _CODE_LANG_RE.match(cls)
        if m:
            return m.group(1)
    return ""


def _quote(text: str) -> str:
    return "\n".join(f"> {line}" if line.strip() else ">" for line in text.split("\n"))


class DocMarkdownConverter(MarkdownConverter):
    """markdownify converter tuned for documentation pages.

    Overrides accept ``*args, **kwargs`` because markdownify passes either
    ``convert_as_inline`` (0.x) or ``parent_tags`` (1.x) after *text*.
    """

    def __init__(self, **options) -> None:
        defaults = {
            "heading_style": ATX,
            "bullets": "-",
            "strong_em_symbol": "*",
            "escape_asterisks": False,
            "escape_underscores": False,
            "escape_misc": False,
        }
        defaults.update(options)
        super().__init__(**defaults)

    def convert_pre(self, el, text, *args, **kwargs):
        code_el = el.find("code")
        source = (code_el if code_el is not None else el).get_text()
        source = source.strip("\n")
        if not source.strip():
            return ""
        language = _code_language(code_el) or _code_language(el)
        return f"\n\n```{language}\n{source}\n```\n\n"

    def convert_code(self, el, text, *args, **kwargs):
        if el.find_parent("pre") is not None:
            return text
        if not text or not text.strip():
            return ""
        fence = "``" if "`" in text else "`"
        return f"{fence}{text.strip()}{fence}"

    def convert_table(self, el, text, *args, **kwargs):
        rows: list[str] = []
        header_cells = 0
        for i, tr in enumerate(el.find_all("tr")):
            cells = tr.find_all(["th", "td"], recursive=False)
            if not cells:
                continue
            values = [collapse_whitespace(c.get_text()).replace("|", "\\|") for c in cells]
            rows.append(f"| {' | '.join(values)} |")
            if i == 0 and tr.find("th", recursive=False) is not None:
                header_cells = len(cells)
        if not rows:
            return text
        if header_cells and len(rows) > 1:
            rows.insert(1, f"| {' | '.join(['---'] * header_cells)} |")
        return "\n\n" + "\n".join(rows) + "\n\n"

    def convert_blockquote(self, el, text, *args, **kwargs):
        text = (text or "").strip()
        if not text:
            return ""
        label = el.get(_CALLOUT_ATTR)
        if label:
            text = f"**{label}**: {text}"
        return f"\n\n{_quote(text)}\n\n"


def _callout_label(el: Tag) -> str | None:
    classes = [c.lower() for c in el.get("class") or ()]
    if not classes or not any(k in c for c in classes for k in _CALLOUT_KEYWORDS):
        return None
    for label in _CALLOUT_LABELS:
        if any(label in c for c in classes):
            return label.upper()
    matched = next(k for k in _CALLOUT_KEYWORDS if any(k in c for c in classes))
    return matched.upper()


def _mark_callouts(soup: BeautifulSoup) -> None:
    """Rewrite outermost callout containers as labelled blockquotes."""
    for el in soup.find_all(sorted(_CALLOUT_TAGS)):
        if el.find_parent(attrs={_CALLOUT_ATTR: True}) is not None:
            continue
        if el.find_parent(["pre", "code"]) is not None:
            continue
        label = _callout_label(el)
        if label is None:
            continue
        el.name = "blockquote"
        el[_CALLOUT_ATTR] = label


def clean_markdown(markdown: str) -> str:
    markdown = _EXCESS_NEWLINES_RE.sub("\n\n\n", markdown)
    markdown = _EMPTY_BULLET_RE.sub("", markdown)
    markdown = _EMPTY_LINK_RE.sub("", markdown)
    markdown = _HEADING_SPACE_RE.sub(r"\1 ", markdown)
    return markdown.strip()


def to_markdown(fragment_html: str) -> str:
    """Convert an HTML fragment (selected content container) to clean markdown."""
    soup = BeautifulSoup(fragment_html or "", "lxml")
    for selector in _FRAGMENT_NOISE:
        for node in soup.select(selector):
            node.extract()
    _mark_callouts(soup)
    try:
        markdown = DocMarkdownConverter().convert_soup(soup)
    except (RecursionError, ValueError, AttributeError, TypeError) as e:
        # Degrade to visible text rather than losing the page.
        logger.warning("Markdown conversion failed, falling back to text: %s", e)
        return soup.get_text("\n").strip()
    return clean_markdown(markdown)


def to_plain_text(markdown: str) -> str:
    """Formatting-free view of *markdown*."""
    text = _FENCE_RE.sub("[CODE_BLOCK]", markdown)
    text = _IMAGE_RE.sub(r"[IMAGE: \1]", text)
    text = _LINK_RE.sub(r"\1", text)
    text = _INLINE_CODE_RE.sub(r"\1", text)
    text = _HEADING_RE.sub(r"\1", text)
    text = _BOLD_RE.sub(r"\1", text)
    text = _ITALIC_RE.sub(r"\1", text)
    text = _HSPACE_RE.sub(" ", text)
    text = _TRAILING_SPACE_RE.sub("\n", text)
    text = _BLANK_RUN_RE.sub("\n\n", text)
    return text.strip()


def extract_code_blocks(markdown: str) -> tuple[CodeBlock, ...]:
    blocks: list[CodeBlock] = []
    for m in _CODE_BLOCK_RE.finditer(markdown):
        code = m.group(2).strip()
        if code:
            blocks.append(CodeBlock(language=m.group(1) or "text", code=code))
    return tuple(blocks)
