# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Log output for the docbundle CLI.

Records from ``docbundle.*`` loggers are rendered by structlog onto stderr,
since stdout carries the bundle. The handler hangs off the ``docbundle``
logger and does not propagate, so a host application's root logging setup is
left alone when the CLI entry point is called in-process.

Pipeline context bound with ``structlog.contextvars`` (``batch_size`` and the
current ``stage``) is merged into every record: as fields in JSON output, and
as a ``[stage]`` prefix on the console.

Leaf module with no docbundle imports.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

LOGGER_NAMESPACE = "docbundle"

# Bound by pipeline.build_context_bundle; None until the first stage starts.
_PIPELINE_KEYS = ("batch_size", "stage")


def drop_unset_pipeline_context(_logger: Any, _method: str, event_dict: dict) -> dict:
    """Remove pipeline context keys that are bound but still None."""
    for key in _PIPELINE_KEYS:
        if key in event_dict and event_dict[key] is None:
            del event_dict[key]
    return event_dict


def prefix_stage(_logger: Any, _method: str, event_dict: dict) -> dict:
    """Console only: fold ``stage`` into the message as ``[stage] message``."""
    stage = event_dict.pop("stage", None)
    if stage:
        event_dict["event"] = f"[{stage}] {event_dict.get('event', '')}"
    return event_dict


def configure(*, json_output: bool = False, level: str = "INFO") -> logging.Logger:
    """Attach a structlog-rendered stderr handler to the ``docbundle`` logger.

    Args:
        json_output: True for JSON lines (machine consumers), False for human-readable.
        level: Level for ``docbundle.*`` loggers; unknown names fall back to INFO.

    Returns:
        The configured namespace logger. Calling again replaces its handler.
    """
    pre_chain: list = [
        structlog.contextvars.merge_contextvars,
        drop_unset_pipeline_context,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
    ]
    if json_output:
        render: list = [structlog.processors.JSONRenderer()]
    else:
        render = [prefix_stage, structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())]

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *render],
        foreign_pre_chain=pre_chain,
    )
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    ns_logger = logging.getLogger(LOGGER_NAMESPACE)
    for old in ns_logger.handlers[:]:
        ns_logger.removeHandler(old)
    ns_logger.addHandler(handler)
    ns_logger.propagate = False
    ns_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    return ns_logger
