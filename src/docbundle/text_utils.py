# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Shared text and URL normalization helpers.

Used by the normalizer (titles, links), the hierarchy builder (node titles and
content) and the formatter (source line).
"""

from __future__ import annotations

import re
from urllib.parse import urljoin, urlparse

MAX_TITLE_LENGTH = 200

_WS_RE = re.compile(r"\s+")
_ZERO_WIDTH_RE = re.compile(r"[\u200b-\u200d\ufeff]")
_SKIP_HREF_PREFIXES = ("#", "mailto:", "javascript:", "tel:")


def collapse_whitespace(text: str) -> str:
    """Strip, collapse whitespace runs to one space."""
    return _WS_RE.sub(" ", text).strip()


def clean_text(text: str) -> str:
    """Collapse whitespace and drop zero-width characters."""
    return _ZERO_WIDTH_RE.sub("", collapse_whitespace(text)).strip()


def sanitize_title(title: str) -> str:
    return collapse_whitespace(title)[:MAX_TITLE_LENGTH].strip()


def path_segments(url: str) -> list[str]:
    """Non-empty path segments of *url*; raises ValueError for unparseable URLs."""
    return [s for s in urlparse(url).path.split("/") if s]


def extract_domain(url: str) -> str:
    try:
        return urlparse(url).hostname or ""
    except ValueError:
        return ""


def resolve_link(href: str, base_url: str) -> str | None:
    """Resolve *href* against *base_url*; None for fragments, mailto and non-http targets."""
    href = href.strip()
    if not href or href.startswith(_SKIP_HREF_PREFIXES):
        return None
    try:
        absolute = urljoin(base_url, href)
        scheme = urlparse(absolute).scheme
    except ValueError:
        return None
    if scheme not in ("http", "https"):
        return None
    return absolute
