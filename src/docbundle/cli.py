# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""docbundle CLI: build, classify, validate commands.

Usage:
    docbundle build PAGES.json [--mode full|summary] [--max-section-length N] [--no-source-urls] [--no-headers]
    docbundle classify URL [--html FILE]
    docbundle validate BUNDLE.md

Pages are read from a local file (JSON array, ``{"pages": [...]}`` or JSON
lines); nothing is fetched.  Bundles go to stdout, logs and issues to stderr.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from pydantic import ValidationError

from docbundle import PageRecord
from docbundle.errors import InputError, NoContentError
from docbundle.formatter import FormatOptions, validate_bundle
from docbundle.logging_config import configure
from docbundle.pipeline import build_context_bundle_sync
from docbundle.platform_classifier import classify

_MARKUP_KEYS = ("markup", "html", "content")
_SUCCESS_KEYS = ("succeeded", "success")


def _read_text(path_str: str) -> str:
    try:
        return Path(path_str).read_text(encoding="utf-8")
    except OSError as e:
        raise InputError(f"cannot read {path_str}: {e.strerror or e}") from e


def _record_from_dict(item: object, position: int) -> PageRecord:
    if not isinstance(item, dict):
        raise InputError(f"page #{position}: expected an object, got {type(item).__name__}")
    url = item.get("url")
    if not isinstance(url, str) or not url:
        raise InputError(f"page #{position}: missing 'url'")
    markup = next((item[k] for k in _MARKUP_KEYS if item.get(k) is not None), "")
    if not isinstance(markup, str):
        raise InputError(f"page #{position} ({url}): markup must be a string")
    key = next((k for k in _SUCCESS_KEYS if k in item), None)
    succeeded = True if key is None else item[key]
    if not isinstance(succeeded, bool):
        raise InputError(f"page #{position} ({url}): '{key}' must be true or false")
    return PageRecord(url=url, markup=markup, succeeded=succeeded)


def load_pages(path_str: str) -> list[PageRecord]:
    """Load page records from a JSON array, a ``{"pages": [...]}`` object, or JSON lines."""
    text = _read_text(path_str)
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        # Not one document: try one record per line
        data = []
        for lineno, line in enumerate(text.splitlines(), 1):
            if not line.strip():
                continue
            try:
                data.append(json.loads(line))
            except json.JSONDecodeError as e:
                raise InputError(f"{path_str}:{lineno}: invalid JSON ({e.msg})") from e

    if isinstance(data, dict):
        if "pages" not in data:
            raise InputError(f"{path_str}: expected a list of pages or an object with 'pages'")
        data = data["pages"]
    if not isinstance(data, list):
        raise InputError(f"{path_str}: expected a list of pages")
    return [_record_from_dict(item, i) for i, item in enumerate(data, 1)]


def cmd_build(args: argparse.Namespace) -> None:
    try:
        options = FormatOptions(
            format_mode=args.mode,
            include_source_urls=not args.no_source_urls,
            include_section_headers=not args.no_headers,
            max_section_length=args.max_section_length,
            title=args.title,
        )
    except ValidationError as e:
        print(f"Error: invalid format options: {e.errors()[0]['msg']}", file=sys.stderr)
        sys.exit(2)

    try:
        pages = load_pages(args.input)
        result = build_context_bundle_sync(pages, options, max_concurrency=args.concurrency)
    except (InputError, NoContentError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    sys.stdout.write(result.bundle.text)
    sys.stdout.write("\n")
    for issue in result.validation.issues:
        print(f"warning: {issue}", file=sys.stderr)
    if result.skipped_urls or result.invalid_urls:
        print(
            f"{len(result.skipped_urls)} page(s) skipped, {len(result.invalid_urls)} page(s) dropped as invalid",
            file=sys.stderr,
        )


def cmd_classify(args: argparse.Namespace) -> None:
    markup = None
    if args.html:
        try:
            markup = _read_text(args.html)
        except InputError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
    profile = classify(args.url, markup)
    print(json.dumps(profile.to_dict(), indent=2, ensure_ascii=False))


def cmd_validate(args: argparse.Namespace) -> None:
    try:
        text = _read_text(args.file)
    except InputError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    result = validate_bundle(text)
    if result.valid:
        print("OK: bundle is structurally valid")
        return
    for issue in result.issues:
        print(f"invalid: {issue}")
    sys.exit(1)


def _positive_int(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {value!r}") from None
    if n < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {n}")
    return n


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Turn fetched documentation pages into one LLM-ready context bundle",
        prog="docbundle",
    )
    parser.add_argument("--log-level", default="WARNING", help="Log level for stderr output (default: WARNING)")
    parser.add_argument("--json-logs", action="store_true", help="Emit logs as JSON lines")
    subparsers = parser.add_subparsers(dest="command", required=True)

    _build_epilog = """\
examples:
  %(prog)s pages.json                              Full bundle to stdout
  %(prog)s pages.jsonl --mode summary              Compact sentence summaries
  %(prog)s pages.json --no-source-urls > docs.md   Save without source lines
"""
    p_build = subparsers.add_parser(
        "build",
        help="Build a context bundle from fetched pages",
        epilog=_build_epilog,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p_build.add_argument("input", metavar="INPUT", help="JSON / JSON-lines file of {url, markup, succeeded} records")
    p_build.add_argument("--mode", choices=("full", "summary"), default="full", help="Content mode (default: full)")
    p_build.add_argument(
        "--max-section-length",
        type=_positive_int,
        metavar="N",
        help="Per-section character limit (default: 1000 full, 300 summary)",
    )
    p_build.add_argument("--no-source-urls", action="store_true", help="Omit per-section source lines")
    p_build.add_argument("--no-headers", action="store_true", help="Omit section headings and table of contents")
    p_build.add_argument("--title", default="Documentation", help="Bundle heading (default: Documentation)")
    p_build.add_argument("--concurrency", type=_positive_int, metavar="N", help="Normalization workers (default: CPUs)")

    p_classify = subparsers.add_parser("classify", help="Detect the documentation platform of a URL")
    p_classify.add_argument("url", metavar="URL")
    p_classify.add_argument("--html", metavar="FILE", help="Saved page markup enabling markup/heuristic detection")

    p_validate = subparsers.add_parser("validate", help="Check the structure of a rendered bundle")
    p_validate.add_argument("file", metavar="FILE")

    return parser


_COMMANDS = {
    "build": cmd_build,
    "classify": cmd_classify,
    "validate": cmd_validate,
}


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    args = build_parser().parse_args(argv)
    configure(json_output=args.json_logs, level=args.log_level.upper())
    _COMMANDS[args.command](args)


if __name__ == "__main__":
    main()
