# -*- coding: utf-8 -*-
"""
Pydantic data models exchanged with callers of the parser.

Field names are snake_case; every model also accepts and emits the camelCase
names used by the storage layer and HTTP handlers (``by_alias=True``).
"""
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .config import settings


class CamelModel(BaseModel):
    """Base model accepting both snake_case and camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# ==============================================================================
# Rule Engine
# ==============================================================================


class RemovedItem(CamelModel):
    """One rule that fired during a cleaning run."""

    rule_id: str
    description: str
    matches: int = Field(default=0, ge=0, description="Matches the rule changed")


class CleaningResult(CamelModel):
    """Cleaned content plus the rules that fired, in application order."""

    cleaned_content: str
    removed_items: list[RemovedItem] = Field(default_factory=list)


# ==============================================================================
# Incremental Parser
# ==============================================================================


class ProcessingStep(CamelModel):
    """Audit record for one pipeline stage."""

    model_config = ConfigDict(frozen=True)

    step_name: str
    input: str = ""
    output: str = ""
    success: bool = True
    error: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def skipped(self) -> bool:
        return bool(self.metadata.get("skipped"))


class ParseMetadata(CamelModel):
    """Summary metadata computed once after the last stage."""

    model_config = ConfigDict(frozen=True)

    processing_version: str
    processed_at: str
    word_count: int = 0
    compression_ratio: str = "0%"
    error: str | None = None


class ParseResult(CamelModel):
    """Result of one incremental parser invocation."""

    model_config = ConfigDict(frozen=True)

    final_output: str
    steps: tuple[ProcessingStep, ...] = ()
    metadata: ParseMetadata

    @property
    def step_names(self) -> list[str]:
        return [step.step_name for step in self.steps]

    @property
    def is_fallback(self) -> bool:
        return self.metadata.processing_version == settings.FALLBACK_VERSION


# ==============================================================================
# Footnote links
# ==============================================================================


class LinkReference(CamelModel):
    """A link collected while converting anchors to footnotes."""

    id: int = Field(..., ge=1)
    url: str
    link_text: str = ""
    context: str = ""
    domain: str = "unknown"


class FootnoteResult(CamelModel):
    """Output of the footnote link processor."""

    content: str
    references_block: str = ""
    link_count: int = 0
    references: list[LinkReference] = Field(default_factory=list)
    step: ProcessingStep | None = None

    @property
    def combined(self) -> str:
        """Content followed by the references block (omitted when empty)."""
        if not self.references_block:
            return self.content
        return f"{self.content}{self.references_block}"


# ==============================================================================
# Options
# ==============================================================================


class FootnoteOptions(CamelModel):
    """Footnote processor switches."""

    max_context_length: int = Field(
        default_factory=lambda: settings.FOOTNOTE_MAX_CONTEXT_LENGTH,
        ge=0,
        description="Plain-text characters captured on each side of a link",
    )
    reference_preview_length: int = Field(
        default_factory=lambda: settings.FOOTNOTE_REFERENCE_PREVIEW_LENGTH,
        ge=1,
        description="Context preview length in the references block",
    )
    clean_tracking_params: bool = Field(
        default_factory=lambda: settings.FOOTNOTE_CLEAN_TRACKING_PARAMS,
        description="Strip utm_*/fbclid/gclid/... and coerce schemeless URLs",
    )


class PipelineOptions(CamelModel):
    """Incremental parser switches. Everything defaults to the conservative state."""

    skip_basic_conversion: bool = False
    enable_structure_recovery: bool = False
    enable_link_preservation: bool = False
    enable_image_preservation: bool = False
    enable_footnote_links: bool = False
    enable_content_cleaning: bool = Field(
        default=False,
        description="Run the rule engine before stage 0",
    )
    footnote: FootnoteOptions = Field(default_factory=FootnoteOptions)


# ==============================================================================
# Content helpers
# ==============================================================================


class PreviewExtraction(CamelModel):
    """Preheader text pulled out of a newsletter body."""

    cleaned_content: str
    preview_text: str | None = None


class ProcessedNewsletter(CamelModel):
    """Clean HTML, plain text and preview derived from one newsletter body."""

    clean_content: str
    text_content: str | None = None
    preview_text: str | None = None
    preheader: str | None = None
    word_count: int | None = None
    removed_items: list[RemovedItem] = Field(default_factory=list)
