# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for docbundle.formatter — options, content processing, rendering, validation."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from docbundle.formatter import (
    FormatOptions,
    format_bundle,
    slugify,
    summarize_content,
    to_sections,
    truncate_content,
    validate_bundle,
)
from tests._doc_helpers import node

STAMP = "2026-01-02T03:04:05+00:00"


def _forest():
    return (
        node(
            "https://docs.example.org/docs/",
            "Overview",
            "Welcome to the docs.",
            1,
            (
                node("https://docs.example.org/docs/guide", "Guide", "How to use it.", 2),
                node("https://docs.example.org/docs/api", "API Reference", "", 2),
            ),
        ),
        node("https://docs.example.org/blog", "Blog & News!", "Release notes.", 1),
    )


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------


class TestFormatOptions:
    def test_defaults(self):
        opts = FormatOptions()
        assert opts.format_mode == "full"
        assert opts.include_source_urls is True
        assert opts.include_section_headers is True
        assert opts.effective_max_length == 1000
        assert opts.title == "Documentation"

    def test_summary_default_length(self):
        assert FormatOptions(format_mode="summary").effective_max_length == 300

    def test_camel_case_aliases(self):
        opts = FormatOptions.model_validate(
            {"formatMode": "summary", "includeSourceUrls": False, "sectionHeaders": False, "maxSectionLength": 50}
        )
        assert opts.format_mode == "summary"
        assert opts.include_source_urls is False
        assert opts.include_section_headers is False
        assert opts.effective_max_length == 50

    def test_summary_preset(self):
        opts = FormatOptions.summary()
        assert (opts.format_mode, opts.include_source_urls, opts.include_section_headers) == ("summary", False, False)
        assert opts.max_section_length == 300

    @pytest.mark.parametrize(
        "kwargs", [{"format_mode": "brief"}, {"max_section_length": 0}, {"title": ""}, {"unknown": 1}]
    )
    def test_rejected(self, kwargs):
        with pytest.raises(ValidationError):
            FormatOptions(**kwargs)

    def test_frozen(self):
        with pytest.raises(ValidationError):
            FormatOptions().format_mode = "summary"


# ---------------------------------------------------------------------------
# Content processing
# ---------------------------------------------------------------------------


class TestTruncate:
    def test_short_limit_cuts_at_word(self):
        assert truncate_content("Hello there friend", 10) == "Hello..."

    def test_unchanged_within_limit(self):
        assert truncate_content("Hello", 10) == "Hello"

    def test_word_boundary_only_near_limit(self):
        text = "a" * 45 + " " + "b" * 100
        # the only space sits at 45 < 80% of 100: hard cut
        assert truncate_content(text, 100) == text[:97] + "..."

    def test_word_boundary_used_past_80_percent(self):
        text = "a" * 85 + " " + "b" * 100
        assert truncate_content(text, 100) == "a" * 85 + "..."

    def test_short_limit_does_not_back_off_past_half(self):
        text = "ab " + "x" * 100
        assert truncate_content(text, 30) == text[:27] + "..."

    def test_short_limit_cut_at_word_end_kept(self):
        # hard cut already lands on a space: nothing to back off from
        assert truncate_content("abcd efgh ijkl", 8) == "abcd..."
        assert truncate_content("abcde fghij", 9) == "abcde..."

    def test_tiny_limits(self):
        assert truncate_content("abcdef", 3) == "..."
        assert truncate_content("abcdef", 2) == ".."

    @pytest.mark.parametrize("limit", [1, 4, 10, 39, 40, 41, 100])
    def test_never_exceeds_limit(self, limit: int):
        assert len(truncate_content("lorem ipsum dolor sit amet " * 20, limit)) <= limit


class TestSummarize:
    def test_whole_sentences(self):
        text = "First sentence. Second one! Third? Fourth is long enough to overflow."
        assert summarize_content(text, 40) == "First sentence. Second one! Third?"

    def test_no_sentence_fits(self):
        assert summarize_content("An unusually long opening sentence here.", 20) == "An unusually long..."

    def test_within_limit_unchanged(self):
        assert summarize_content("No terminator", 300) == "No terminator"

    def test_internal_dots_do_not_end_sentences(self):
        text = "Install version 1.2.3 from docs.python.org today. Then read e.g. the FAQ for more detail."
        assert summarize_content(text, 60) == "Install version 1.2.3 from docs.python.org today."

    @pytest.mark.parametrize("limit", [10, 25, 49, 50, 80, 120])
    def test_result_is_verbatim_prefix(self, limit: int):
        text = "See setup.py and v2.0.1 first.  Keep   spacing as is!\nNext line? Last one here."
        result = summarize_content(text, limit)
        assert len(result) <= limit
        if not result.endswith("..."):
            assert text.startswith(result)


class TestSlugify:
    @pytest.mark.parametrize(
        "title,slug",
        [
            ("Getting Started", "getting-started"),
            ("Blog & News!", "blog-news"),
            ("  API -- Reference  ", "api-reference"),
            ("snake_case_name", "snake_case_name"),
        ],
    )
    def test_slugify(self, title: str, slug: str):
        assert slugify(title) == slug


class TestToSections:
    def test_shape_mirrors_forest_including_empty_content(self):
        sections = to_sections(_forest(), FormatOptions())
        assert [s.title for s in sections] == ["Overview", "Blog & News!"]
        assert [s.title for s in sections[0].subsections] == ["Guide", "API Reference"]
        assert sections[0].subsections[1].content == ""
        assert sections[0].source_url == "https://docs.example.org/docs/"

    def test_content_limited(self):
        long = (node("https://x.dev/a", "A", "word " * 500, 1),)
        (section,) = to_sections(long, FormatOptions(max_section_length=50))
        assert len(section.content) <= 50
        assert section.content.endswith("...")


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


class TestFormatBundle:
    def test_full_layout(self):
        bundle = format_bundle(_forest(), FormatOptions(), generated_at=STAMP)
        expected = "\n".join(
            [
                "# Documentation",
                "",
                "Source: docs.example.org",
                f"Generated: {STAMP}",
                "Format: full",
                "Sections: 2",
                "",
                "---",
                "",
                "## Table of Contents",
                "",
                "- [Overview](#overview)",
                "  * [Guide](#guide)",
                "  * [API Reference](#api-reference)",
                "- [Blog & News!](#blog-news)",
                "",
                "---",
                "",
                "## Overview",
                "",
                "*Source: [https://docs.example.org/docs/](https://docs.example.org/docs/)*",
                "",
                "Welcome to the docs.",
                "",
                "### Guide",
                "",
                "*Source: [https://docs.example.org/docs/guide](https://docs.example.org/docs/guide)*",
                "",
                "How to use it.",
                "",
                "### API Reference",
                "",
                "*Source: [https://docs.example.org/docs/api](https://docs.example.org/docs/api)*",
                "",
                "",
                "## Blog & News!",
                "",
                "*Source: [https://docs.example.org/blog](https://docs.example.org/blog)*",
                "",
                "Release notes.",
                "",
                "",
                "---",
                "",
                "*This documentation was generated automatically from web content.*",
                "*Source URLs are preserved for reference and verification.*",
            ]
        )
        assert bundle.text == expected
        assert bundle.metadata.total_length == len(expected)
        assert bundle.metadata.source_count == 4
        assert bundle.metadata.format_mode == "full"
        assert bundle.metadata.generated_at == STAMP

    def test_summary_preset_has_no_toc_headings_or_urls(self):
        bundle = format_bundle(_forest(), FormatOptions.summary(), generated_at=STAMP)
        assert "Table of Contents" not in bundle.text
        assert "*Source:" not in bundle.text
        assert "## Overview" not in bundle.text
        assert "Source URLs are preserved" not in bundle.text
        assert "Format: summary" in bundle.text
        assert "Welcome to the docs." in bundle.text

    def test_single_section_has_no_toc(self):
        bundle = format_bundle(_forest()[1:], FormatOptions(), generated_at=STAMP)
        assert "Table of Contents" not in bundle.text
        assert "Sections: 1" in bundle.text

    def test_heading_depth_capped_at_six(self):
        deep = node("https://x.dev/e", "E", "e", 4)
        for url, title, level in [("d", "D", 3), ("c", "C", 2), ("b", "B", 1)]:
            deep = node(f"https://x.dev/{url}", title, title.lower(), level, (deep,))
        chain = (node("https://x.dev/a", "A", "a", 1, (node("https://x.dev/z", "Z", "z", 2, (deep,)),)),)
        text = format_bundle(chain, FormatOptions(), generated_at=STAMP).text
        assert "###### E" in text
        assert "####### " not in text

    def test_custom_title_and_source_count(self):
        bundle = format_bundle(_forest(), FormatOptions(title="Acme SDK"), source_count=9, generated_at=STAMP)
        assert bundle.text.startswith("# Acme SDK\n")
        assert bundle.metadata.source_count == 9

    def test_datetime_stamp(self):
        when = datetime(2026, 5, 6, 7, 8, 9, tzinfo=timezone.utc)
        bundle = format_bundle(_forest(), generated_at=when)
        assert f"Generated: {when.isoformat()}" in bundle.text

    def test_deterministic(self):
        a = format_bundle(_forest(), FormatOptions(), generated_at=STAMP)
        b = format_bundle(_forest(), FormatOptions(), generated_at=STAMP)
        assert a == b

    def test_sections_returned(self):
        bundle = format_bundle(_forest(), generated_at=STAMP)
        assert len(bundle.sections) == 2
        assert bundle.sections[0].subsections[0].title == "Guide"


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestValidateBundle:
    def test_rendered_bundle_valid(self):
        bundle = format_bundle(_forest(), generated_at=STAMP)
        result = validate_bundle(bundle.text)
        assert result.valid
        assert result.issues == ()

    def test_too_short(self):
        result = validate_bundle("# T\n\nshort")
        assert not result.valid
        assert any("too short" in i for i in result.issues)

    def test_missing_title(self):
        result = validate_bundle("Intro\n" + "text " * 40)
        assert any("top-level heading" in i for i in result.issues)
        assert any("no headings" in i for i in result.issues)

    def test_too_long(self):
        result = validate_bundle("# T\n" + "x" * 100_001)
        assert not result.valid
        assert any("too long" in i for i in result.issues)

    def test_subheading_only_counts_as_heading(self):
        result = validate_bundle("Intro\n## Part\n" + "text " * 40)
        assert not any("no headings" in i for i in result.issues)
