# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""docbundle exception hierarchy.

All docbundle-specific errors inherit from DocBundleError, allowing callers
to catch the base class for any bundling failure or specific subclasses
for targeted handling.
"""

from __future__ import annotations


class DocBundleError(Exception):
    """Base exception for all docbundle errors."""


class NoContentError(DocBundleError):
    """No valid normalized document survived filtering (the only fatal pipeline condition)."""

    def __init__(self, message: str = "no content to format", *, received: int = 0, invalid: int = 0) -> None:
        super().__init__(message)
        self.received = received
        self.invalid = invalid


class PipelineCancelledError(DocBundleError):
    """Cancellation was signalled while normalizing; partial results were discarded."""

    def __init__(self, message: str = "pipeline cancelled", *, completed: int = 0, total: int = 0) -> None:
        super().__init__(message)
        self.completed = completed
        self.total = total


class HierarchyError(DocBundleError):
    """Document forest invariant broken (shared parent, cycle, or level order)."""


class InputError(DocBundleError):
    """Page records could not be loaded (malformed JSON or missing fields)."""
