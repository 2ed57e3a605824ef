# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Content normalizer: raw documentation markup → NormalizedDocument.

Stages (all DOM access goes through ``DomQuery``):
  1. cleanup   – drop chrome (nav, ads, edit links, search widgets, empties)
  2. title     – selector cascade, then URL-derived fallback
  3. content   – selector cascade, then largest text container, then body
  4. convert   – markdown (markdownify) and plain text derived from it
  5. metadata  – links, headings, fenced code blocks

``is_valid`` is a separate gate: callers drop documents that fail it.
"""

from __future__ import annotations

import logging
import re
from urllib.parse import unquote, urlparse

from docbundle import Heading, NormalizedDocument, PlatformProfile
from docbundle.dom import DomQuery, SoupDom
from docbundle.markdown import extract_code_blocks, to_markdown, to_plain_text
from docbundle.text_utils import MAX_TITLE_LENGTH, collapse_whitespace, resolve_link, sanitize_title

logger = logging.getLogger(__name__)

UNTITLED = "Untitled Page"
MIN_TEXT_LENGTH = 50

_MIN_CONTENT_MARKUP = 100
_MIN_FALLBACK_TEXT = 200

# Removed before any extraction, in this order; empty elements go last.
_NOISE_SELECTORS: tuple[str, ...] = (
    "script",
    "style",
    "noscript",
    "nav",
    "header",
    "footer",
    ".navigation",
    ".nav",
    ".navbar",
    ".header",
    ".footer",
    ".menu",
    ".sidebar",
    ".toc",
    ".breadcrumb",
    '[role="navigation"]',
    '[role="banner"]',
    '[role="complementary"]',
    ".advertisement",
    ".ads",
    ".ad",
    ".sponsored",
    ".tracking",
    ".analytics",
    ".social-share",
    '[class*="ad-"]',
    '[class*="ads-"]',
    '[id*="ad-"]',
    '[id*="ads-"]',
    ".edit-page",
    ".edit-link",
    ".edit-on-github",
    ".contribute",
    ".feedback",
    ".improve-page",
    'a[href*="edit"]',
    ".back-to-top",
    ".scroll-to-top",
    ".goto-top",
    ".version-selector",
    ".branch-selector",
    ".search-box",
    ".filter",
    ".search-input",
    'input[type="search"]',
    'input[placeholder*="Search"]',
)

_TITLE_SELECTORS: tuple[str, ...] = (
    "h1",
    ".page-title",
    ".doc-title",
    ".title",
    ".article-title",
    "title",
    '[class*="title"]',
    ".content h1",
    "main h1",
)

_CONTENT_SELECTORS: tuple[str, ...] = (
    "main",
    '[role="main"]',
    ".content",
    ".main-content",
    ".page-content",
    ".document",
    ".article",
    ".post",
    ".markdown",
    ".rst-content",
    ".wiki-content",
    "#content",
    ".container .row .col",
    "body",
)

_FALLBACK_CONTAINERS = "div, article, section, main"
_HEADING_SELECTOR = "h1, h2, h3, h4, h5, h6"

_SPAM_PATTERNS = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"error\s*404",
        r"page\s*not\s*found",
        r"access\s*denied",
        r"forbidden",
        r"under\s*construction",
    )
)

_INDEX_SEGMENTS = frozenset({"index", "index.html"})
_HTML_SUFFIX_RE = re.compile(r"\.html?$", re.IGNORECASE)
_WORD_START_RE = re.compile(r"\b\w")


def normalize(
    markup: str,
    url: str,
    profile: PlatformProfile | None = None,
    *,
    dom: DomQuery | None = None,
    log: logging.Logger | logging.LoggerAdapter | None = None,
) -> NormalizedDocument:
    """Normalize one fetched page.

    Args:
        markup: raw page markup
        url: source URL (link resolution and title fallback)
        profile: platform hints; its selectors are tried before the defaults
        dom: pre-parsed document to use instead of parsing *markup*
        log: injected logger (defaults to this module's logger)
    """
    log = log or logger
    if dom is None:
        dom = SoupDom(markup)

    _cleanup(dom, profile)

    title = _extract_title(dom, url, profile)
    content_html = _extract_content(dom, profile, log)
    body_markdown = to_markdown(content_html)
    body_text = to_plain_text(body_markdown)

    doc = NormalizedDocument(
        url=url,
        title=title,
        body_text=body_text,
        body_markdown=body_markdown,
        headings=_extract_headings(dom),
        links=_extract_links(dom, url),
        code_blocks=extract_code_blocks(body_markdown),
        platform=profile.name if profile is not None else "generic",
    )
    log.debug(
        "Normalized %s: title=%r text=%d chars headings=%d links=%d code_blocks=%d",
        url,
        doc.title,
        len(doc.body_text),
        len(doc.headings),
        len(doc.links),
        len(doc.code_blocks),
    )
    return doc


def is_valid(doc: NormalizedDocument, *, log: logging.Logger | logging.LoggerAdapter | None = None) -> bool:
    """Whether *doc* carries real content (not an error page or a stub)."""
    log = log or logger
    if len(doc.body_text) < MIN_TEXT_LENGTH:
        log.info("Dropping %s: only %d chars of text", doc.url, len(doc.body_text))
        return False
    for pattern in _SPAM_PATTERNS:
        if pattern.search(doc.body_text) or pattern.search(doc.title):
            log.info("Dropping %s: looks like an error page (%s)", doc.url, pattern.pattern)
            return False
    if not doc.title or doc.title == UNTITLED:
        log.warning("Document %s has no usable title", doc.url)
    return True


def title_from_url(url: str) -> str:
    """Human title from the URL path, e.g. ``/docs/getting-started.html`` → ``Getting Started``."""
    try:
        parsed = urlparse(url)
        segments = [s for s in parsed.path.split("/") if s]
        host = parsed.hostname or ""
    except ValueError:
        return UNTITLED

    for segment in reversed(segments):
        if segment.lower() in _INDEX_SEGMENTS:
            continue
        words = _HTML_SUFFIX_RE.sub("", unquote(segment)).replace("-", " ").replace("_", " ")
        words = collapse_whitespace(words)
        if words:
            return _WORD_START_RE.sub(lambda m: m.group(0).upper(), words)[:MAX_TITLE_LENGTH]

    host = host.removeprefix("www.")
    return host[:MAX_TITLE_LENGTH] if host else UNTITLED


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------


def _cleanup(dom: DomQuery, profile: PlatformProfile | None) -> None:
    selectors = _NOISE_SELECTORS
    if profile is not None:
        selectors = (*selectors, *profile.nav_selectors, *profile.sidebar_selectors)
    for selector in selectors:
        dom.remove(selector)
    dom.remove_empty()


def _extract_title(dom: DomQuery, url: str, profile: PlatformProfile | None) -> str:
    selectors = _TITLE_SELECTORS
    if profile is not None:
        selectors = (*profile.title_selectors, *selectors)
    for selector in selectors:
        node = dom.select_one(selector)
        if node is None:
            continue
        text = collapse_whitespace(dom.text(node))
        if 0 < len(text) < MAX_TITLE_LENGTH:
            return text
    return sanitize_title(title_from_url(url)) or UNTITLED


def _extract_content(
    dom: DomQuery,
    profile: PlatformProfile | None,
    log: logging.Logger | logging.LoggerAdapter,
) -> str:
    selectors = _CONTENT_SELECTORS
    if profile is not None:
        selectors = (*profile.content_selectors, *selectors)
    for selector in selectors:
        node = dom.select_one(selector)
        if node is None:
            continue
        html = dom.inner_html(node).strip()
        if len(html) > _MIN_CONTENT_MARKUP:
            return html

    best, best_len = None, _MIN_FALLBACK_TEXT
    for node in dom.select(_FALLBACK_CONTAINERS):
        length = len(dom.text(node).strip())
        if length > best_len:
            best, best_len = node, length
    if best is not None:
        log.debug("No content selector matched; using largest %s container", dom.tag_name(best))
        return dom.inner_html(best)

    body = dom.body()
    log.debug("No content container found; using the whole body")
    return dom.inner_html(body) if body is not None else str(dom)


def _extract_headings(dom: DomQuery) -> tuple[Heading, ...]:
    headings: list[Heading] = []
    for node in dom.select(_HEADING_SELECTOR):
        text = collapse_whitespace(dom.text(node))
        if not text:
            continue
        level = int(dom.tag_name(node)[1])
        headings.append(Heading(level=level, text=text, anchor=dom.attr(node, "id") or None))
    return tuple(headings)


def _extract_links(dom: DomQuery, base_url: str) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for node in dom.select("a[href]"):
        link = resolve_link(dom.attr(node, "href") or "", base_url)
        if link is not None:
            seen.setdefault(link)
    return tuple(seen)
