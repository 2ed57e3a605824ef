# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""CLI tests: page loading, build/classify/validate commands, exit codes."""

from __future__ import annotations

import json

import pytest

from docbundle.cli import build_parser, load_pages, main
from docbundle.errors import InputError
from tests._doc_helpers import page_html


def _write_pages(tmp_path, records, name="pages.json"):
    path = tmp_path / name
    path.write_text(json.dumps(records), encoding="utf-8")
    return path


def _records():
    return [
        {"url": "https://docs.example.org/docs/", "markup": page_html("Overview")},
        {"url": "https://docs.example.org/docs/guide", "html": page_html("Guide")},
        {"url": "https://docs.example.org/docs/gone", "content": page_html("Gone"), "success": False},
    ]


# ---------------------------------------------------------------------------
# load_pages
# ---------------------------------------------------------------------------


class TestLoadPages:
    def test_json_array_with_key_aliases(self, tmp_path):
        pages = load_pages(str(_write_pages(tmp_path, _records())))
        assert [p.url for p in pages] == [r["url"] for r in _records()]
        assert all(p.markup for p in pages)
        assert [p.succeeded for p in pages] == [True, True, False]

    def test_pages_object(self, tmp_path):
        pages = load_pages(str(_write_pages(tmp_path, {"pages": _records()})))
        assert len(pages) == 3

    def test_json_lines(self, tmp_path):
        path = tmp_path / "pages.jsonl"
        path.write_text("\n".join(json.dumps(r) for r in _records()) + "\n\n", encoding="utf-8")
        assert len(load_pages(str(path))) == 3

    def test_missing_markup_is_empty(self, tmp_path):
        (page,) = load_pages(str(_write_pages(tmp_path, [{"url": "https://x.dev/a"}])))
        assert page.markup == ""
        assert page.succeeded is True

    @pytest.mark.parametrize(
        "payload,message",
        [
            ([{"markup": "<p>x</p>"}], "missing 'url'"),
            (["just a string"], "expected an object"),
            ([{"url": "https://x.dev", "markup": 5}], "markup must be a string"),
            ([{"url": "https://x.dev", "succeeded": "false"}], "'succeeded' must be true or false"),
            ([{"url": "https://x.dev", "success": 0}], "'success' must be true or false"),
            ({"items": []}, "'pages'"),
            (42, "expected a list"),
        ],
    )
    def test_malformed(self, tmp_path, payload, message):
        with pytest.raises(InputError, match=message):
            load_pages(str(_write_pages(tmp_path, payload)))

    def test_invalid_json_lines(self, tmp_path):
        path = tmp_path / "bad.jsonl"
        path.write_text('{"url": "https://x.dev"}\n{not json\n', encoding="utf-8")
        with pytest.raises(InputError, match=":2:"):
            load_pages(str(path))

    def test_unreadable_file(self, tmp_path):
        with pytest.raises(InputError, match="cannot read"):
            load_pages(str(tmp_path / "absent.json"))


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


class TestBuildCommand:
    def test_bundle_on_stdout(self, tmp_path, capsys):
        main(["build", str(_write_pages(tmp_path, _records()))])
        captured = capsys.readouterr()
        assert captured.out.startswith("# Documentation\n")
        assert "## Overview" in captured.out
        assert "1 page(s) skipped" in captured.err

    def test_flags_map_to_options(self, tmp_path, capsys):
        path = _write_pages(tmp_path, _records())
        main(["build", str(path), "--mode", "summary", "--no-source-urls", "--no-headers", "--title", "Acme"])
        out = capsys.readouterr().out
        assert out.startswith("# Acme\n")
        assert "Format: summary" in out
        assert "*Source:" not in out
        assert "## Overview" not in out

    def test_no_content_exits_1(self, tmp_path, capsys):
        path = _write_pages(tmp_path, [{"url": "https://x.dev/a", "markup": "<p>tiny</p>"}])
        with pytest.raises(SystemExit) as exc_info:
            main(["build", str(path)])
        assert exc_info.value.code == 1
        captured = capsys.readouterr()
        assert "no content to format" in captured.err
        assert captured.out == ""

    def test_bad_input_exits_1(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["build", str(tmp_path / "missing.json")])
        assert exc_info.value.code == 1
        assert "Error:" in capsys.readouterr().err

    def test_rejects_zero_length(self, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            main(["build", str(_write_pages(tmp_path, _records())), "--max-section-length", "0"])
        assert exc_info.value.code == 2


class TestClassifyCommand:
    def test_url_only(self, capsys):
        main(["classify", "https://acme.gitbook.io/handbook"])
        profile = json.loads(capsys.readouterr().out)
        assert profile["name"] == "gitbook"
        assert profile["matched_by"] == "url"

    def test_with_saved_html(self, tmp_path, capsys):
        html = tmp_path / "page.html"
        html.write_text('<div class="theme-default-content"><p>x</p></div>', encoding="utf-8")
        main(["classify", "https://example.org/guide/x", "--html", str(html)])
        profile = json.loads(capsys.readouterr().out)
        assert profile["name"] == "vuepress"
        assert profile["matched_by"] == "markup"


class TestValidateCommand:
    def test_valid_bundle(self, tmp_path, capsys):
        main(["build", str(_write_pages(tmp_path, _records()))])
        bundle = tmp_path / "bundle.md"
        bundle.write_text(capsys.readouterr().out, encoding="utf-8")
        main(["validate", str(bundle)])
        assert capsys.readouterr().out.startswith("OK")

    def test_invalid_bundle_exits_1(self, tmp_path, capsys):
        bundle = tmp_path / "bundle.md"
        bundle.write_text("no heading here", encoding="utf-8")
        with pytest.raises(SystemExit) as exc_info:
            main(["validate", str(bundle)])
        assert exc_info.value.code == 1
        assert "too short" in capsys.readouterr().out


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])
