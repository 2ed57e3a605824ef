# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Batch pipeline: fetched pages → ContextBundle.

Stages (timed by PipelineTimer):
  classify   – once per host; the host's first page supplies the markup
  normalize  – one task per page, bounded by a semaphore, run in threads
  filter     – drop documents that fail ``normalizer.is_valid``
  hierarchy  – single pass over the whole batch
  format     – render and validate (validation is advisory)

Cancellation is cooperative: the event is checked before each normalization
task starts.  Once it is set no new page is started, and after the in-flight
tasks finish the whole batch is discarded.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Iterable
from datetime import datetime

import structlog

from docbundle import BuildResult, NormalizedDocument, PageRecord, PlatformProfile
from docbundle.errors import NoContentError, PipelineCancelledError
from docbundle.formatter import FormatOptions, format_bundle, validate_bundle
from docbundle.hierarchy import build_forest
from docbundle.normalizer import is_valid, normalize
from docbundle.pipeline_timer import PipelineTimer
from docbundle.platform_classifier import classify
from docbundle.text_utils import extract_domain

logger = logging.getLogger(__name__)

_CANCELLED = object()


def _enter_stage(timer: PipelineTimer, name: str) -> None:
    timer.stage(name)
    structlog.contextvars.bind_contextvars(stage=name)


def _select_pages(
    pages: Iterable[PageRecord], log: logging.Logger | logging.LoggerAdapter
) -> tuple[list[PageRecord], list[str]]:
    """Pages worth normalizing (input order) and the URLs that were skipped."""
    selected: list[PageRecord] = []
    skipped: list[str] = []
    seen: set[str] = set()
    for page in pages:
        if not page.succeeded:
            log.info("Skipping %s: fetch did not succeed", page.url)
            skipped.append(page.url)
        elif not page.markup or not page.markup.strip():
            log.info("Skipping %s: empty markup", page.url)
            skipped.append(page.url)
        elif page.url in seen:
            log.warning("Skipping %s: duplicate URL in batch", page.url)
            skipped.append(page.url)
        else:
            seen.add(page.url)
            selected.append(page)
    return selected, skipped


async def _classify_hosts(
    pages: list[PageRecord], log: logging.Logger | logging.LoggerAdapter
) -> dict[str, PlatformProfile]:
    profiles: dict[str, PlatformProfile] = {}
    for page in pages:
        host = extract_domain(page.url)
        if host in profiles:
            continue
        profile = await asyncio.to_thread(classify, page.url, page.markup, log=log)
        log.info(
            "Host %s classified as %s (%.2f, %s)",
            host or page.url,
            profile.name,
            profile.confidence,
            profile.matched_by,
        )
        profiles[host] = profile
    return profiles


async def build_context_bundle(
    pages: Iterable[PageRecord],
    options: FormatOptions | None = None,
    *,
    max_concurrency: int | None = None,
    cancel_event: asyncio.Event | None = None,
    generated_at: datetime | str | None = None,
    log: logging.Logger | logging.LoggerAdapter | None = None,
) -> BuildResult:
    """Build one context bundle from a batch of fetched pages.

    Args:
        pages: fetched page records, in crawl order
        options: rendering options (defaults to FormatOptions())
        max_concurrency: normalization workers (defaults to the CPU count)
        cancel_event: set it to stop starting new pages and abort the build
        generated_at: fixed bundle timestamp for reproducible output
        log: injected logger (defaults to this module's logger)

    Raises:
        NoContentError: no page survived normalization and filtering.
        PipelineCancelledError: *cancel_event* was set before the batch finished.
    """
    log = log or logger
    options = options or FormatOptions()
    pages = list(pages)
    timer = PipelineTimer()

    with structlog.contextvars.bound_contextvars(batch_size=len(pages), stage=None):
        try:
            selected, skipped = _select_pages(pages, log)

            _enter_stage(timer, "classify")
            profiles = await _classify_hosts(selected, log)

            _enter_stage(timer, "normalize")
            docs = await _normalize_all(selected, profiles, max_concurrency, cancel_event, log)

            _enter_stage(timer, "filter")
            valid: list[NormalizedDocument] = []
            invalid: list[str] = []
            for page, doc in zip(selected, docs, strict=True):
                if doc is not None and is_valid(doc, log=log):
                    valid.append(doc)
                else:
                    invalid.append(page.url)
            if not valid:
                raise NoContentError(received=len(pages), invalid=len(invalid))

            _enter_stage(timer, "hierarchy")
            forest = build_forest(valid, log=log)

            _enter_stage(timer, "format")
            bundle = format_bundle(forest, options, source_count=len(valid), generated_at=generated_at)
            validation = validate_bundle(bundle.text)
            if not validation.valid:
                log.warning("Bundle validation issues: %s", "; ".join(validation.issues))
            timer.finalize()
        except (NoContentError, PipelineCancelledError):
            log.warning("Bundle build stopped: %s", timer.interruption_report())
            timer.finalize()
            raise

    log.info(
        "Bundle built: pages=%d valid=%d skipped=%d invalid=%d chars=%d total_ms=%.1f",
        len(pages),
        len(valid),
        len(skipped),
        len(invalid),
        bundle.metadata.total_length,
        timer.total_ms(),
    )
    return BuildResult(
        bundle=bundle,
        validation=validation,
        skipped_urls=tuple(skipped),
        invalid_urls=tuple(invalid),
        stage_ms=timer.elapsed_per_stage(),
    )


async def _normalize_all(
    pages: list[PageRecord],
    profiles: dict[str, PlatformProfile],
    max_concurrency: int | None,
    cancel_event: asyncio.Event | None,
    log: logging.Logger | logging.LoggerAdapter,
) -> list[NormalizedDocument | None]:
    semaphore = asyncio.Semaphore(max(1, max_concurrency or os.cpu_count() or 1))

    async def _process_one(page: PageRecord) -> NormalizedDocument | None | object:
        async with semaphore:
            if cancel_event is not None and cancel_event.is_set():
                return _CANCELLED
            profile = profiles.get(extract_domain(page.url))
            try:
                return await asyncio.to_thread(normalize, page.markup, page.url, profile, log=log)
            except (ValueError, TypeError, AttributeError, RecursionError) as e:
                log.warning("Normalization failed for %s: %s", page.url, e)
                return None

    results = await asyncio.gather(*(_process_one(p) for p in pages))

    if cancel_event is not None and cancel_event.is_set():
        completed = sum(1 for r in results if r is not _CANCELLED)
        log.info("Normalization cancelled after %d/%d pages; discarding batch", completed, len(pages))
        raise PipelineCancelledError(completed=completed, total=len(pages))
    return results


def build_context_bundle_sync(
    pages: Iterable[PageRecord], options: FormatOptions | None = None, **kwargs
) -> BuildResult:
    """Blocking wrapper around build_context_bundle for non-async callers."""
    return asyncio.run(build_context_bundle(pages, options, **kwargs))
