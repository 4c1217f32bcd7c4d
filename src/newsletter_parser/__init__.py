# -*- coding: utf-8 -*-
"""
Newsletter Parser - normalization core for raw newsletter HTML.

Rule-based cleaning, an incremental stage pipeline and footnote-style link
references.
"""
__version__ = "3.0.0"

from .cleaner import RuleEngine, clean_content  # noqa: E402
from .content import extract_preview_text, process_newsletter_content  # noqa: E402
from .footnotes import FootnoteLinkProcessor, integrate_footnote_links  # noqa: E402
from .models import (  # noqa: E402
    CleaningResult,
    FootnoteOptions,
    FootnoteResult,
    ParseResult,
    PipelineOptions,
    ProcessedNewsletter,
)
from .pipeline import IncrementalParser, parse_content  # noqa: E402

__all__ = [
    "CleaningResult",
    "FootnoteLinkProcessor",
    "FootnoteOptions",
    "FootnoteResult",
    "IncrementalParser",
    "ParseResult",
    "PipelineOptions",
    "ProcessedNewsletter",
    "RuleEngine",
    "clean_content",
    "extract_preview_text",
    "integrate_footnote_links",
    "parse_content",
    "process_newsletter_content",
    "__version__",
]
