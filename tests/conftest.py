# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Shared test configuration and fixtures."""

try:
    import docbundle  # noqa: F401
except ImportError:
    raise ImportError("docbundle is not installed. Run: pip install -e '.[dev]'") from None

import logging

import pytest
import structlog

from docbundle import PageRecord
from tests._doc_helpers import make_page


@pytest.fixture
def site_pages() -> list[PageRecord]:
    """A small documentation site: overview, guide section, API reference."""
    return [
        make_page("https://docs-site.example/docs/", "Overview"),
        make_page("https://docs-site.example/docs/guide/", "Guide"),
        make_page("https://docs-site.example/docs/guide/setup", "Setup"),
        make_page("https://docs-site.example/docs/guide/configuration", "Configuration"),
        make_page("https://docs-site.example/docs/api/client", "Client API"),
    ]


@pytest.fixture(autouse=True)
def _restore_logging():
    """CLI tests call logging_config.configure(); keep the docbundle logger per-test."""
    ns_logger = logging.getLogger("docbundle")
    old_handlers = ns_logger.handlers[:]
    old_level = ns_logger.level
    old_propagate = ns_logger.propagate
    yield
    ns_logger.handlers = old_handlers
    ns_logger.setLevel(old_level)
    ns_logger.propagate = old_propagate
    structlog.contextvars.clear_contextvars()
