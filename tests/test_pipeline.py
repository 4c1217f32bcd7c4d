# -*- coding: utf-8 -*-
"""
Tests for the incremental parser.
"""
from unittest.mock import patch

import pytest

from newsletter_parser.config import settings
from newsletter_parser.models import PipelineOptions
from newsletter_parser.pipeline import (
    IncrementalParser,
    StageError,
    StageOutcome,
    compression_ratio,
    parse_content,
)
from newsletter_parser.text import INVISIBLE_CHARS_RE, html_to_text

DEFAULT_STEPS = [
    "basic-conversion",
    "normalize-whitespace",
    "structure-recovery",
    "link-preservation",
    "image-preservation",
]


class TestStageOutcome:
    """Tests for the tagged stage result."""

    def test_ok(self):
        outcome = StageOutcome.ok("text", words=1)

        assert outcome.is_ok
        assert outcome.content == "text"
        assert outcome.metadata == {"words": 1}

    def test_err(self):
        outcome = StageOutcome.err("boom")

        assert not outcome.is_ok
        assert outcome.content is None
        assert outcome.error == "boom"


class TestCompressionRatio:
    """Tests for compression_ratio."""

    def test_quarter_removed(self):
        assert compression_ratio("x" * 1000, "y" * 750) == "25.0%"

    def test_empty_input(self):
        assert compression_ratio("", "") == "0%"

    def test_growth_is_negative(self):
        assert compression_ratio("x" * 10, "y" * 15) == "-50.0%"


class TestIncrementalParser:
    """Tests for IncrementalParser.parse with default options."""

    def test_default_steps_recorded(self, parser):
        result = parser.parse("<p>Hello</p>")

        assert result.step_names == DEFAULT_STEPS
        assert [step.skipped for step in result.steps] == [False, False, True, True, True]
        assert all(step.success for step in result.steps)

    def test_basic_conversion(self, parser):
        result = parser.parse("<p>Hello&nbsp;<b>world</b></p><br>Next")

        assert result.final_output == "Hello world\n\nNext"
        assert result.metadata.processing_version == settings.PIPELINE_VERSION
        assert result.metadata.word_count == 3
        assert not result.is_fallback

    def test_decoded_markup_is_not_reintroduced(self, parser):
        result = parser.parse("<p>&lt;script&gt;alert(1)&lt;/script&gt;</p>")

        assert "<script" not in result.final_output
        assert "alert(1)" in result.final_output

    def test_script_bodies_dropped(self, parser):
        result = parser.parse("<style>p{color:red}</style><p>Hi</p><script>x()</script>")

        assert result.final_output == "Hi"

    def test_no_invisible_characters_after_normalization(self, parser):
        result = parser.parse("<p>Hello\u200bWorld&zwnj;!\ufeff&shy;</p>")

        assert result.final_output == "HelloWorld!"
        assert not INVISIBLE_CHARS_RE.search(result.final_output)

    def test_typographic_entities_decoded(self, parser):
        result = parser.parse("<p>Wait&hellip; 1&ndash;2 &ldquo;quoted&rdquo;</p>")

        assert result.final_output == "Wait… 1–2 “quoted”"

    def test_empty_input(self, parser):
        result = parser.parse("")

        assert result.final_output == ""
        assert result.step_names == DEFAULT_STEPS
        assert result.metadata.compression_ratio == "0%"
        assert result.metadata.word_count == 0

    def test_compression_ratio_in_metadata(self, parser):
        raw = "<p>" + "a" * 93 + "</p>"

        result = parser.parse(raw)

        assert result.metadata.compression_ratio == "7.0%"

    def test_step_previews_truncated(self, parser):
        raw = "word " * 200

        result = parser.parse(raw)

        step = result.steps[0]
        assert len(step.input) == settings.STEP_PREVIEW_LENGTH + 3
        assert step.input.endswith("...")

    def test_short_previews_not_truncated(self, parser):
        result = parser.parse("<p>Hi</p>")

        assert result.steps[0].input == "<p>Hi</p>"
        assert result.steps[0].output == "Hi"


class TestPipelineOptions:
    """Optional stages."""

    def test_skip_basic_conversion(self, parser):
        result = parser.parse("<p>Hello</p>\n\n\n\n<p>World</p>", {"skipBasicConversion": True})

        assert result.steps[0].step_name == "basic-conversion"
        assert result.steps[0].skipped
        assert result.final_output == "<p>Hello</p>\n\n<p>World</p>"

    def test_pass_through_stages(self, parser):
        options = PipelineOptions(enable_link_preservation=True, enable_image_preservation=True)

        result = parser.parse("<p>Hello <a href='https://x.com'>link</a></p>", options)

        stage_one = result.steps[1].output
        assert result.steps[3].output == stage_one
        assert result.steps[4].output == stage_one
        assert not result.steps[3].skipped
        assert result.final_output == "Hello link"

    def test_structure_recovery(self, parser):
        text = (
            "WEEKLY DIGEST\n\n"
            "This is a long paragraph line that certainly exceeds forty characters.\n"
            "- short bullet\n"
            "1. Introduction"
        )

        result = parser.parse(text, {"enableStructureRecovery": True})

        assert result.final_output.split("\n") == [
            "<h3>WEEKLY DIGEST</h3>",
            "",
            "<p>This is a long paragraph line that certainly exceeds forty characters.</p>",
            "- short bullet",
            "<h3>1. Introduction</h3>",
        ]
        assert result.steps[2].metadata == {"headings": 2, "paragraphs": 1}

    def test_footnote_links_stage(self, parser, footnote_html):
        result = parser.parse(footnote_html, {"enableFootnoteLinks": True})

        assert result.step_names[0] == "footnote-links"
        assert result.steps[0].metadata["links_processed"] == 1
        assert '<a href="#footnote-1" id="ref-1" class="footnote-ref">[1]</a>' in result.final_output
        assert 'href="https://example.com/page"' in result.final_output
        assert "(example.com)" in result.final_output

    def test_content_cleaning_stage(self, parser):
        result = parser.parse(
            "<style>p{color:red}</style><p>Hi</p>",
            PipelineOptions(enable_content_cleaning=True),
        )

        assert result.step_names[0] == "content-cleaning"
        removed = [item["rule_id"] for item in result.steps[0].metadata["removed_items"]]
        assert removed == ["strip-style-blocks"]
        assert result.final_output == "Hi"

    def test_unknown_option_keys_ignored(self, parser):
        result = parser.parse("<p>Hi</p>", {"enableTelepathy": True})

        assert result.step_names == DEFAULT_STEPS


class TestStageFailures:
    """Failure isolation at the stage and pipeline boundaries."""

    def test_failed_stage_keeps_previous_content(self, parser):
        with patch.object(parser, "_stage_normalize_whitespace", side_effect=RuntimeError("boom")):
            result = parser.parse("<p>Hello</p><p>World</p>")

        step = result.steps[1]
        assert step.step_name == "normalize-whitespace"
        assert step.success is False
        assert "boom" in step.error
        assert result.final_output == html_to_text("<p>Hello</p><p>World</p>")
        assert result.steps[2].skipped
        assert not result.is_fallback

    def test_stage_error_message_recorded(self, parser):
        with patch.object(parser, "_stage_basic_conversion", side_effect=StageError("bad markup")):
            result = parser.parse("<p>Hi</p>")

        assert result.steps[0].error == "bad markup"
        assert result.final_output == "<p>Hi</p>"

    def test_outer_fallback(self, parser):
        raw = "<div><p>Hello</p><p>World</p></div>"

        with patch.object(parser, "_finalize", side_effect=RuntimeError("kaboom")):
            result = parser.parse(raw)

        assert result.is_fallback
        assert result.metadata.processing_version == settings.FALLBACK_VERSION
        assert result.metadata.error == "kaboom"
        assert result.step_names == ["fallback"]
        assert result.steps[0].success is False
        assert result.final_output == html_to_text(raw) == "Hello\n\nWorld"


class TestParseContent:
    """Module-level entry point."""

    def test_accepts_camel_case_dict(self, footnote_html):
        result = parse_content(footnote_html, {"enableFootnoteLinks": True, "footnote": {"cleanTrackingParams": False}})

        assert "utm_source=x" in result.final_output

    def test_result_is_frozen(self):
        result = parse_content("<p>Hi</p>")

        with pytest.raises(Exception):
            result.final_output = "changed"

    def test_serializes_camel_case(self):
        data = parse_content("<p>Hi</p>").model_dump(by_alias=True)

        assert set(data) == {"finalOutput", "steps", "metadata"}
        assert data["steps"][0]["stepName"] == "basic-conversion"
        assert data["metadata"]["compressionRatio"] == "77.8%"

    def test_instances_are_independent(self):
        assert IncrementalParser().parse("<p>A</p>").final_output == "A"
