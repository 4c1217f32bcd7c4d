# -*- coding: utf-8 -*-
"""
Newsletter content helpers built on the rule engine: preheader extraction,
plain text, preview text and word counts.
"""
import logging
import re

from bs4 import BeautifulSoup

from .cleaner import rule_engine
from .config import settings
from .context import document_scope
from .models import PreviewExtraction, ProcessedNewsletter
from .text import INVISIBLE_CHARS_RE, count_words, generate_preview_text, html_to_text

logger = logging.getLogger(__name__)

# Preheader blocks: a "preview" class or a div hidden with display:none
PREVIEW_BLOCK_RE = re.compile(
    r"<div\b[^>]*(?:class\s*=\s*[\"'][^\"']*preview[^\"']*[\"']"
    r"|style\s*=\s*[\"'][^\"']*display\s*:\s*none[^\"']*[\"'])[^>]*>(.*?)</div\s*>",
    re.IGNORECASE | re.DOTALL,
)
_ENTITY_RE = re.compile(r"&[^;\s]+;")
_PADDING_RE = re.compile(r"(?:&[^;\s]+;|\s)+")

# Shorter preheaders are usually padding or a stray character
MIN_PREVIEW_LENGTH = 10


def remove_preview_padding(text: str | None) -> str:
    """Collapse entity and zero-width padding used to fill email preheaders."""
    if not text:
        return ""
    text = INVISIBLE_CHARS_RE.sub(" ", text)
    return _PADDING_RE.sub(" ", text).strip()


def extract_preview_text(html: str) -> PreviewExtraction:
    """
    Pull the preheader out of a newsletter body.

    Every preview block is removed from the content; the first one holding
    meaningful text becomes the preview text.
    """
    if not html:
        return PreviewExtraction(cleaned_content=html or "")

    preview_text = None
    for match in PREVIEW_BLOCK_RE.finditer(html):
        inner = _ENTITY_RE.sub(" ", match.group(1))
        text = remove_preview_padding(BeautifulSoup(inner, "lxml").get_text(" ")) if inner.strip() else ""
        if preview_text is None and len(text) > MIN_PREVIEW_LENGTH:
            preview_text = text

    return PreviewExtraction(
        cleaned_content=PREVIEW_BLOCK_RE.sub("", html),
        preview_text=preview_text,
    )


def process_newsletter_content(
        html: str,
        clean_html: bool = True,
        generate_text: bool = True,
        generate_preview: bool = True,
        preview_length: int | None = None,
) -> ProcessedNewsletter:
    """
    Produce clean HTML, plain text, preview text and a word count.

    Errors are logged and the best content computed so far is returned.
    """
    preview_length = preview_length or settings.PREVIEW_TEXT_LENGTH
    result = ProcessedNewsletter(clean_content=html or "")

    with document_scope():
        try:
            extraction = extract_preview_text(html or "")
            result.preheader = extraction.preview_text
            result.clean_content = extraction.cleaned_content

            if clean_html and result.clean_content:
                cleaned = rule_engine.clean(result.clean_content)
                result.clean_content = cleaned.cleaned_content
                result.removed_items = cleaned.removed_items

            if generate_text:
                result.text_content = html_to_text(result.clean_content)
                result.word_count = count_words(result.text_content)

            if generate_preview and result.text_content:
                result.preview_text = generate_preview_text(result.text_content, preview_length)

        except Exception as e:
            logger.error(f"Error processing newsletter content: {e}", exc_info=True)

    return result
