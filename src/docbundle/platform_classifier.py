# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Documentation platform classifier — three tiers, first positive match wins.

Tiers:
  1. URL      – regex table per platform on the URL  (<0.1 ms)
  2. Markup   – DOM signatures (classes, generator meta, inline scripts)
  3. Heuristic – weighted signal table summed per platform; the winner must
                 reach ``HEURISTIC_THRESHOLD`` or the generic profile is used

Every tier is a flat table evaluated uniformly so the policy can be audited
and unit-tested in isolation.  Ties in tier 3 fall back to ``PLATFORM_PRIORITY``
because no stronger signal exists at that point.
"""

from __future__ import annotations

import dataclasses
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass

from docbundle import PlatformProfile
from docbundle.dom import DomQuery, SoupDom

logger = logging.getLogger(__name__)

GENERIC = "generic"

# Table order doubles as tie-break order for the heuristic tier.
PLATFORM_PRIORITY: tuple[str, ...] = ("gitbook", "docusaurus", "vuepress", "mintlify")

HEURISTIC_THRESHOLD = 3

# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------

_PROFILES: dict[str, PlatformProfile] = {
    "gitbook": PlatformProfile(
        name="gitbook",
        description="GitBook documentation platform with rich navigation and interactive features",
        confidence=0.95,
        content_selectors=(".page-inner", ".markdown-section", '[data-testid="content"]'),
        title_selectors=("h1", ".page-title", '[data-testid="page-title"]'),
        nav_selectors=(".book-summary", ".navigation", '[data-testid="sidebar"]'),
        sidebar_selectors=(".book-summary ul", ".sidebar-nav"),
        features=frozenset(
            {
                "Rich navigation structure",
                "Interactive content blocks",
                "Search integration",
                "Version control integration",
            }
        ),
        has_sitemap=True,
        has_navigation=True,
        is_static_site=False,
    ),
    "docusaurus": PlatformProfile(
        name="docusaurus",
        description="React-based documentation platform optimized for developer docs",
        confidence=0.90,
        content_selectors=(".docMainContainer", ".markdown", 'main[role="main"]'),
        title_selectors=("h1", ".docTitle", "header h1"),
        nav_selectors=(".navbar", ".menu", ".sidebar"),
        sidebar_selectors=(".menu__list", ".sidebar .menu"),
        features=frozenset({"React-based SPA", "Version management", "Plugin ecosystem", "Search functionality"}),
        has_sitemap=True,
        has_navigation=True,
        is_static_site=True,
    ),
    "vuepress": PlatformProfile(
        name="vuepress",
        description="Vue.js powered static site generator for documentation",
        confidence=0.85,
        content_selectors=(".theme-default-content", ".page", ".content"),
        title_selectors=("h1", ".page-title"),
        nav_selectors=(".navbar", ".nav-links", ".sidebar"),
        sidebar_selectors=(".sidebar-links", ".sidebar .sidebar-links"),
        features=frozenset(
            {"Vue.js components", "Markdown extensions", "Theme customization", "Fast static generation"}
        ),
        has_sitemap=True,
        has_navigation=True,
        is_static_site=True,
    ),
    "mintlify": PlatformProfile(
        name="mintlify",
        description="Modern API documentation platform with beautiful design",
        confidence=0.80,
        content_selectors=(".docs-content", ".markdown", "main"),
        title_selectors=("h1", ".docs-title"),
        nav_selectors=(".sidebar", ".nav", ".navigation-menu"),
        sidebar_selectors=(".sidebar-content", ".navigation-menu"),
        features=frozenset(
            {"API reference integration", "Modern UI components", "Interactive examples", "Analytics integration"}
        ),
        has_sitemap=True,
        has_navigation=True,
        is_static_site=True,
    ),
    GENERIC: PlatformProfile(
        name=GENERIC,
        description="Generic documentation site with standard HTML structure",
        confidence=0.50,
        content_selectors=("main", ".content", "#content", ".main-content", "article", ".post-content"),
        title_selectors=("h1", "title", ".title", ".page-title"),
        nav_selectors=("nav", ".nav", ".navigation", ".menu", ".sidebar"),
        sidebar_selectors=(".sidebar", ".nav", ".menu"),
        features=frozenset({"Standard HTML structure", "Basic navigation", "Simple content layout"}),
        has_sitemap=False,
        has_navigation=True,
        is_static_site=True,
    ),
}

# ---------------------------------------------------------------------------
# Tier 1 — URL patterns
# ---------------------------------------------------------------------------

_URL_PATTERNS: tuple[tuple[str, tuple[re.Pattern[str], ...]], ...] = (
    (
        "gitbook",
        (
            re.compile(r"\.gitbook\."),
            re.compile(r"gitbook\.com"),
            re.compile(r"gitbook\.io"),
            re.compile(r"app\.gitbook\.com"),
        ),
    ),
    (
        "docusaurus",
        (
            re.compile(r"docusaurus"),
            re.compile(r"\.netlify\.app.*docs"),
            re.compile(r"\.vercel\.app.*docs"),
            re.compile(r"github\.io.*docs"),
        ),
    ),
    ("vuepress", (re.compile(r"vuepress"), re.compile(r"\.vuepress"))),
    (
        "mintlify",
        (
            re.compile(r"mintlify"),
            re.compile(r"docs\.[^.]+\.com"),
            re.compile(r"[^.]+\.mintlify\."),
        ),
    ),
)

# ---------------------------------------------------------------------------
# Tier 2 — markup signatures (selector present ⇒ platform)
# ---------------------------------------------------------------------------

_MARKUP_SIGNATURES: tuple[tuple[str, tuple[str, ...]], ...] = (
    (
        "gitbook",
        (
            ".gitbook-root",
            '[data-testid="sidebar"]',
            ".book-summary",
            'meta[name="generator"][content*="gitbook" i]',
        ),
    ),
    (
        "docusaurus",
        (
            ".docusaurus",
            "[data-theme]",
            ".navbar__brand",
            'meta[name="generator"][content*="docusaurus" i]',
        ),
    ),
    (
        "vuepress",
        (
            ".theme-default-content",
            ".sidebar-links",
            'meta[name="generator"][content*="vuepress" i]',
        ),
    ),
    (
        "mintlify",
        (
            ".mintlify",
            ".docs-content",
            'meta[name="generator"][content*="mintlify" i]',
        ),
    ),
)

# Framework names looked up in inline <script> text (tier 2).
_SCRIPT_SIGNATURES: tuple[tuple[str, str], ...] = (
    ("docusaurus", "docusaurus"),
    ("vuepress", "vuepress"),
)

# ---------------------------------------------------------------------------
# Tier 3 — heuristic signal table
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PageSignals:
    """Pre-extracted inputs the heuristic signals look at."""

    url: str
    class_names: str = ""
    body_text: str = ""
    script_srcs: str = ""
    dom: DomQuery | None = None


@dataclass(frozen=True, slots=True)
class HeuristicSignal:
    """One (pattern, weight, platform) row of the heuristic table."""

    name: str
    platform: str
    weight: int
    check: Callable[[PageSignals], bool]
    needs_markup: bool = False


def _has(selector: str) -> Callable[[PageSignals], bool]:
    return lambda s: s.dom is not None and s.dom.select_one(selector) is not None


HEURISTIC_SIGNALS: tuple[HeuristicSignal, ...] = (
    # ---- URL path fragments ----
    HeuristicSignal("url_docs_path", "docusaurus", 2, lambda s: "/docs/" in s.url),
    HeuristicSignal("url_guide_path", "vuepress", 2, lambda s: "/guide/" in s.url),
    HeuristicSignal("url_gitbook_host", "gitbook", 3, lambda s: ".gitbook." in s.url),
    HeuristicSignal("url_mintlify", "mintlify", 3, lambda s: "mintlify" in s.url),
    # ---- CSS class substrings ----
    HeuristicSignal("class_docusaurus", "docusaurus", 5, lambda s: "docusaurus" in s.class_names, True),
    HeuristicSignal("class_gitbook", "gitbook", 5, lambda s: "gitbook" in s.class_names, True),
    HeuristicSignal("class_vuepress", "vuepress", 5, lambda s: "vuepress" in s.class_names, True),
    HeuristicSignal("class_mintlify", "mintlify", 5, lambda s: "mintlify" in s.class_names, True),
    # ---- navigation structure ----
    HeuristicSignal("nav_book_summary", "gitbook", 3, _has(".book-summary"), True),
    HeuristicSignal("nav_navbar_brand", "docusaurus", 3, _has(".navbar__brand"), True),
    HeuristicSignal("nav_sidebar_links", "vuepress", 3, _has(".sidebar-links"), True),
    HeuristicSignal("nav_docs_content", "mintlify", 3, _has(".docs-content"), True),
    # ---- framework library hints ----
    HeuristicSignal(
        "framework_react", "docusaurus", 2, lambda s: "React" in s.body_text or "react" in s.script_srcs, True
    ),
    HeuristicSignal("framework_vue", "vuepress", 2, lambda s: "Vue" in s.body_text or "vue" in s.script_srcs, True),
)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def supported_platforms() -> tuple[str, ...]:
    return (*PLATFORM_PRIORITY, GENERIC)


def get_platform_profile(name: str) -> PlatformProfile:
    """Named profile; unknown names resolve to the generic profile."""
    return _PROFILES.get(name, _PROFILES[GENERIC])


def quick_classify(url: str) -> PlatformProfile:
    """URL-only classification (tier 1), no markup parsing."""
    platform = _match_url(url)
    if platform is None:
        return _PROFILES[GENERIC]
    return dataclasses.replace(_PROFILES[platform], matched_by="url", signals=(f"url_{platform}",))


def classify(
    url: str,
    markup: str | None = None,
    *,
    dom: DomQuery | None = None,
    log: logging.Logger | logging.LoggerAdapter | None = None,
) -> PlatformProfile:
    """Infer the documentation platform of a page. Never raises.

    Args:
        url: page URL (always available)
        markup: raw page markup (optional — enables tiers 2 and 3 markup signals)
        dom: pre-parsed document; parsed from *markup* when omitted
        log: injected logger (defaults to this module's logger)

    Returns:
        PlatformProfile; the generic profile when nothing matches.
    """
    log = log or logger
    url = url or ""

    # Tier 1
    platform = _match_url(url)
    if platform is not None:
        log.debug("Platform %s detected from URL %s", platform, url)
        return dataclasses.replace(_PROFILES[platform], matched_by="url", signals=(f"url_{platform}",))

    if dom is None and markup:
        dom = SoupDom(markup)

    # Tier 2
    if dom is not None:
        hit = _match_markup(dom)
        if hit is not None:
            platform, signal = hit
            log.debug("Platform %s detected from markup signature %s", platform, signal)
            return dataclasses.replace(_PROFILES[platform], matched_by="markup", signals=(signal,))

    # Tier 3
    platform, score, fired = score_heuristics(_collect_signals(url, dom))
    if platform is None:
        log.debug("No platform signal reached threshold for %s (best score %d)", url, score)
        return dataclasses.replace(_PROFILES[GENERIC], signals=fired)

    base = _PROFILES[platform]
    confidence = base.confidence * min(1.0, score / (HEURISTIC_THRESHOLD * 2))
    log.debug("Platform %s selected heuristically for %s (score %d)", platform, url, score)
    return dataclasses.replace(base, confidence=confidence, matched_by="heuristic", signals=fired)


def score_heuristics(signals: PageSignals) -> tuple[str | None, int, tuple[str, ...]]:
    """Evaluate HEURISTIC_SIGNALS.

    Returns:
        (winner or None when below threshold, winner score, fired signal names)
    """
    scores = dict.fromkeys(PLATFORM_PRIORITY, 0)
    fired: list[str] = []
    for sig in HEURISTIC_SIGNALS:
        if sig.needs_markup and signals.dom is None:
            continue
        if sig.check(signals):
            fired.append(sig.name)
            scores[sig.platform] += sig.weight

    # max() keeps the first maximal item, and scores iterates in priority order
    winner = max(scores, key=scores.__getitem__)
    top = scores[winner]
    if top < HEURISTIC_THRESHOLD:
        return None, top, tuple(fired)
    return winner, top, tuple(fired)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _match_url(url: str) -> str | None:
    for platform, patterns in _URL_PATTERNS:
        if any(p.search(url) for p in patterns):
            return platform
    return None


def _match_markup(dom: DomQuery) -> tuple[str, str] | None:
    script_text: str | None = None
    for platform, selectors in _MARKUP_SIGNATURES:
        for selector in selectors:
            if dom.select_one(selector) is not None:
                return platform, f"markup:{selector}"
        for script_platform, needle in _SCRIPT_SIGNATURES:
            if script_platform != platform:
                continue
            if script_text is None:
                script_text = " ".join(dom.text(s) for s in dom.select("script"))
            if needle in script_text:
                return platform, f"script:{needle}"
    return None


def _collect_signals(url: str, dom: DomQuery | None) -> PageSignals:
    if dom is None:
        return PageSignals(url=url)
    class_names = " ".join(dom.attr(el, "class") or "" for el in dom.select("[class]"))
    body = dom.body()
    body_text = dom.text(body) if body is not None else ""
    script_srcs = " ".join(dom.attr(el, "src") or "" for el in dom.select("script[src]"))
    return PageSignals(url=url, class_names=class_names, body_text=body_text, script_srcs=script_srcs, dom=dom)
