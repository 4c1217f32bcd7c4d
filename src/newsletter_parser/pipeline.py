# -*- coding: utf-8 -*-
"""
Incremental newsletter parser.

Runs raw newsletter HTML through a fixed sequence of stages:
- content-cleaning (optional) - rule engine ahead of conversion
- Stage 0 - footnote-links or basic-conversion (HTML to plain text), or skipped
- Stage 1 - normalize-whitespace (always)
- Stage 2 - structure-recovery (optional) - headings and paragraphs from lines
- Stage 3 - link-preservation (optional, pass-through)
- Stage 4 - image-preservation (optional, pass-through)

Each stage reports a StageOutcome; a failed stage leaves the content as it
was and the run continues. Anything escaping the stages falls back to a
plain-text conversion of the raw input.
"""
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

from .cleaner import rule_engine
from .config import settings
from .context import document_scope
from .footnotes import footnote_processor
from .models import ParseMetadata, ParseResult, PipelineOptions, ProcessingStep
from .text import (
    count_words,
    decode_extended_entities,
    html_to_text,
    normalize_whitespace,
    remove_invisible,
    truncate,
)

logger = logging.getLogger(__name__)

# Lines starting with a list bullet are never wrapped as paragraphs
BULLET_RE = re.compile(r"^(?:[-*+•·▪◦‣–—]|\d+[.)]\s|[a-z][.)]\s)", re.IGNORECASE)
NUMBERED_HEADING_RE = re.compile(r"^(?:\d+[.)]|#\d+|[ivx]+\.)\s+\S", re.IGNORECASE)


class StageError(Exception):
    """Raised inside a stage to report an explicit failure."""


@dataclass(frozen=True)
class StageOutcome:
    """Tagged result of one stage: either new content or an error."""

    content: str | None = None
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, content: str, **metadata) -> "StageOutcome":
        return cls(content=content, metadata=metadata)

    @classmethod
    def err(cls, error: str, **metadata) -> "StageOutcome":
        return cls(error=error, metadata=metadata)

    @property
    def is_ok(self) -> bool:
        return self.error is None


def compression_ratio(raw: str, final: str) -> str:
    """Share of the raw input removed, formatted as "25.0%" ("0%" for empty input)."""
    if not raw:
        return "0%"
    ratio = (len(raw) - len(final)) / len(raw)
    return f"{ratio * 100:.1f}%"


class IncrementalParser:
    """
    Stage pipeline turning newsletter HTML into display-safe content.

    Stage handlers are looked up by name at run time (``_stage_*``).
    """

    def parse(self, raw: str, options: PipelineOptions | dict | None = None) -> ParseResult:
        """
        Run every stage over ``raw``.

        Args:
            raw: Raw newsletter HTML
            options: PipelineOptions or a dict with snake_case/camelCase keys

        Returns:
            ParseResult with the final output, one step per stage and metadata
        """
        raw = raw or ""
        with document_scope():
            try:
                options = self._resolve_options(options)
                steps: list[ProcessingStep] = []
                content = self._bound_input(raw)

                for step_name, handler_name, enabled in self._plan(options):
                    content = self._run_stage(step_name, handler_name, enabled, content, options, steps)

                result = self._finalize(raw, content, steps)
                logger.info(
                    f"Parsed newsletter: {len(steps)} steps, "
                    f"{result.metadata.word_count} words, "
                    f"compression {result.metadata.compression_ratio}"
                )
                return result

            except Exception as e:
                logger.error(f"Incremental parsing failed, using fallback: {e}", exc_info=True)
                return self._fallback(raw, e)

    @staticmethod
    def _resolve_options(options: PipelineOptions | dict | None) -> PipelineOptions:
        if options is None:
            return PipelineOptions()
        if isinstance(options, dict):
            return PipelineOptions.model_validate(options)
        return options

    @staticmethod
    def _bound_input(raw: str) -> str:
        if len(raw) > settings.MAX_INPUT_LENGTH:
            logger.warning(f"Input truncated from {len(raw)} to {settings.MAX_INPUT_LENGTH} chars")
            return raw[:settings.MAX_INPUT_LENGTH]
        return raw

    @staticmethod
    def _plan(options: PipelineOptions) -> list[tuple[str, str, bool]]:
        """(step name, handler name, enabled) in execution order."""
        plan = []
        if options.enable_content_cleaning:
            plan.append(("content-cleaning", "_stage_content_cleaning", True))

        if options.enable_footnote_links:
            plan.append(("footnote-links", "_stage_footnote_links", True))
        else:
            plan.append(("basic-conversion", "_stage_basic_conversion", not options.skip_basic_conversion))

        plan.extend([
            ("normalize-whitespace", "_stage_normalize_whitespace", True),
            ("structure-recovery", "_stage_structure_recovery", options.enable_structure_recovery),
            ("link-preservation", "_stage_link_preservation", options.enable_link_preservation),
            ("image-preservation", "_stage_image_preservation", options.enable_image_preservation),
        ])
        return plan

    def _run_stage(
            self,
            step_name: str,
            handler_name: str,
            enabled: bool,
            content: str,
            options: PipelineOptions,
            steps: list[ProcessingStep],
    ) -> str:
        """Run one stage and record its step; returns the content for the next stage."""
        preview = truncate(content, settings.STEP_PREVIEW_LENGTH)

        if not enabled:
            steps.append(ProcessingStep(
                step_name=step_name,
                input=preview,
                output=preview,
                metadata={"skipped": True},
            ))
            return content

        handler: Callable[[str, PipelineOptions], StageOutcome] = getattr(self, handler_name)
        try:
            outcome = handler(content, options)
        except StageError as e:
            outcome = StageOutcome.err(str(e))
        except Exception as e:
            outcome = StageOutcome.err(f"{type(e).__name__}: {e}")

        if not outcome.is_ok:
            logger.warning(f"Stage {step_name} failed, keeping previous content: {outcome.error}")
            steps.append(ProcessingStep(
                step_name=step_name,
                input=preview,
                output=preview,
                success=False,
                error=outcome.error,
                metadata=outcome.metadata,
            ))
            return content

        logger.debug(f"Stage {step_name}: {len(content)} -> {len(outcome.content)} chars")
        steps.append(ProcessingStep(
            step_name=step_name,
            input=preview,
            output=truncate(outcome.content, settings.STEP_PREVIEW_LENGTH),
            metadata=outcome.metadata,
        ))
        return outcome.content

    def _finalize(self, raw: str, content: str, steps: list[ProcessingStep]) -> ParseResult:
        return ParseResult(
            final_output=content,
            steps=tuple(steps),
            metadata=ParseMetadata(
                processing_version=settings.PIPELINE_VERSION,
                processed_at=datetime.now(timezone.utc).isoformat(),
                word_count=count_words(content),
                compression_ratio=compression_ratio(raw, content),
            ),
        )

    def _fallback(self, raw: str, error: Exception) -> ParseResult:
        """Plain-text conversion of the raw input with one failed synthetic step."""
        text = html_to_text(raw)
        message = str(error) or type(error).__name__
        return ParseResult(
            final_output=text,
            steps=(
                ProcessingStep(
                    step_name="fallback",
                    input=truncate(raw, settings.STEP_PREVIEW_LENGTH),
                    output=truncate(text, settings.STEP_PREVIEW_LENGTH),
                    success=False,
                    error=message,
                ),
            ),
            metadata=ParseMetadata(
                processing_version=settings.FALLBACK_VERSION,
                processed_at=datetime.now(timezone.utc).isoformat(),
                word_count=count_words(text),
                compression_ratio=compression_ratio(raw, text),
                error=message,
            ),
        )

    # ==========================================================================
    # Stages
    # ==========================================================================

    def _stage_content_cleaning(self, content: str, options: PipelineOptions) -> StageOutcome:
        result = rule_engine.clean(content)
        return StageOutcome.ok(
            result.cleaned_content,
            removed_items=[item.model_dump() for item in result.removed_items],
        )

    def _stage_footnote_links(self, content: str, options: PipelineOptions) -> StageOutcome:
        result = footnote_processor.to_footnotes(content, options.footnote)
        if result.step is not None and not result.step.success:
            raise StageError(result.step.error or "Footnote processing failed")
        return StageOutcome.ok(
            result.combined,
            links_processed=result.link_count,
            footnote_length=len(result.references_block),
        )

    def _stage_basic_conversion(self, content: str, options: PipelineOptions) -> StageOutcome:
        """HTML to plain text with basic entities decoded."""
        return StageOutcome.ok(html_to_text(content))

    def _stage_normalize_whitespace(self, content: str, options: PipelineOptions) -> StageOutcome:
        """Drop invisible characters, decode typographic entities, tidy whitespace."""
        text = remove_invisible(content)
        text = decode_extended_entities(text)
        return StageOutcome.ok(normalize_whitespace(text))

    def _stage_structure_recovery(self, content: str, options: PipelineOptions) -> StageOutcome:
        """
        Wrap short numbered or all-caps lines as <h3> and long prose lines as <p>.

        Lines already starting with markup and bulleted lines are kept as is.
        """
        headings = paragraphs = 0
        lines = []
        for line in content.split("\n"):
            stripped = line.strip()
            if not stripped or stripped.startswith("<"):
                lines.append(line)
            elif self._is_heading(stripped):
                lines.append(f"<h3>{stripped}</h3>")
                headings += 1
            elif len(stripped) >= settings.PARAGRAPH_MIN_LENGTH and not BULLET_RE.match(stripped):
                lines.append(f"<p>{stripped}</p>")
                paragraphs += 1
            else:
                lines.append(line)

        return StageOutcome.ok("\n".join(lines), headings=headings, paragraphs=paragraphs)

    @staticmethod
    def _is_heading(line: str) -> bool:
        if not settings.HEADING_MIN_LENGTH <= len(line) <= settings.HEADING_MAX_LENGTH:
            return False
        if NUMBERED_HEADING_RE.match(line):
            return True
        letters = [char for char in line if char.isalpha()]
        return len(letters) >= settings.HEADING_MIN_LENGTH and line == line.upper()

    def _stage_link_preservation(self, content: str, options: PipelineOptions) -> StageOutcome:
        # Links are already carried by Stage 0 (footnotes) or dropped with the markup
        return StageOutcome.ok(content)

    def _stage_image_preservation(self, content: str, options: PipelineOptions) -> StageOutcome:
        return StageOutcome.ok(content)


# Global parser instance
incremental_parser = IncrementalParser()


def parse_content(html: str, options: PipelineOptions | dict | None = None) -> ParseResult:
    """Parse ``html`` with the default incremental parser."""
    return incremental_parser.parse(html, options)
