# -*- coding: utf-8 -*-
"""
Tests for Pydantic models.
"""
import pytest
from pydantic import ValidationError

from newsletter_parser.config import settings
from newsletter_parser.models import (
    FootnoteOptions,
    FootnoteResult,
    LinkReference,
    ParseMetadata,
    ParseResult,
    PipelineOptions,
    ProcessingStep,
    RemovedItem,
)


class TestOptions:
    """Tests for option models."""

    def test_pipeline_defaults(self):
        options = PipelineOptions()

        assert options.skip_basic_conversion is False
        assert options.enable_structure_recovery is False
        assert options.enable_link_preservation is False
        assert options.enable_image_preservation is False
        assert options.enable_footnote_links is False
        assert options.enable_content_cleaning is False
        assert options.footnote.max_context_length == settings.FOOTNOTE_MAX_CONTEXT_LENGTH

    def test_camel_case_aliases(self):
        options = PipelineOptions.model_validate({
            "enableFootnoteLinks": True,
            "footnote": {"maxContextLength": 10, "cleanTrackingParams": False},
        })

        assert options.enable_footnote_links is True
        assert options.footnote.max_context_length == 10
        assert options.footnote.clean_tracking_params is False

    def test_snake_case_names(self):
        options = PipelineOptions(enable_structure_recovery=True)

        assert options.enable_structure_recovery is True

    def test_negative_context_rejected(self):
        with pytest.raises(ValidationError):
            FootnoteOptions(max_context_length=-1)


class TestResults:
    """Tests for result models."""

    def test_removed_item_alias(self):
        item = RemovedItem(rule_id="strip-comments", description="Remove HTML comments", matches=2)

        assert item.model_dump(by_alias=True) == {
            "ruleId": "strip-comments",
            "description": "Remove HTML comments",
            "matches": 2,
        }

    def test_link_reference_ids_start_at_one(self):
        with pytest.raises(ValidationError):
            LinkReference(id=0, url="https://e.com")

    def test_processing_step_skipped(self):
        assert ProcessingStep(step_name="x", metadata={"skipped": True}).skipped
        assert not ProcessingStep(step_name="x").skipped

    def test_parse_result(self):
        result = ParseResult(
            final_output="Hi",
            steps=(ProcessingStep(step_name="a"), ProcessingStep(step_name="b")),
            metadata=ParseMetadata(processing_version=settings.FALLBACK_VERSION, processed_at="now"),
        )

        assert result.step_names == ["a", "b"]
        assert result.is_fallback

    def test_footnote_result_combined(self):
        assert FootnoteResult(content="a", references_block="b").combined == "ab"
        assert FootnoteResult(content="a").combined == "a"
