# -*- coding: utf-8 -*-
"""
Footnote link processor.

Converts inline links into numbered footnote markers and builds a
"References" block listing each link with its surrounding context.
"""
import html
import logging
import re
import warnings

from bs4 import BeautifulSoup, MarkupResemblesLocatorWarning

from .config import settings
from .models import FootnoteOptions, FootnoteResult, LinkReference, ProcessingStep
from .rules import parse_attributes
from .text import collapse_whitespace, drop_hidden_blocks, strip_tags, truncate
from .urls import canonicalize_url, extract_domain, sanitize_url

logger = logging.getLogger(__name__)

# Link text fragments such as "example.com" look like file names to bs4
warnings.filterwarnings("ignore", category=MarkupResemblesLocatorWarning)

STEP_NAME = "footnote-links"

ANCHOR_RE = re.compile(
    r"(<a\b(?:\"[^\"]*\"|'[^']*'|[^'\">])*>)(.*?)</a\s*>",
    re.IGNORECASE | re.DOTALL,
)

# Raw HTML scanned on each side of a link to collect its plain-text context
_CONTEXT_WINDOW_FACTOR = 10
_PARTIAL_TAG_START_RE = re.compile(r"\A[^<]*>")
_PARTIAL_TAG_END_RE = re.compile(r"<[^>]*\Z")
# Hidden blocks cut by the window edge: a closer whose opener lies before the
# window, or an opener whose closer lies after it
_HIDDEN_TAGS = r"script|style|head|title|noscript|template"
_CUT_HIDDEN_HEAD_RE = re.compile(rf"\A.*(?:</(?:{_HIDDEN_TAGS})\s*>|-->)", re.IGNORECASE | re.DOTALL)
_CUT_HIDDEN_TAIL_RE = re.compile(rf"(?:<(?:{_HIDDEN_TAGS})\b|<!--).*\Z", re.IGNORECASE | re.DOTALL)

FOOTNOTE_CSS = (
    ".footnote-ref{color:#0066cc;text-decoration:none;font-size:.9em;font-weight:bold}"
    ".footnote-ref:hover{color:#0052a3}"
    ".footnotes-section{margin-top:2em;padding-top:1em;border-top:1px solid #ddd}"
    ".footnotes-header{font-size:1.1em;font-weight:bold;margin-bottom:1em;color:#333}"
    ".footnotes-list{font-size:.9em;line-height:1.4}"
    ".footnote-item{margin-bottom:.8em;padding-left:.5em}"
    ".footnote-back{color:#0066cc;text-decoration:none;font-weight:bold;margin-right:.5em}"
    ".footnote-context{color:#666;font-style:italic;margin-right:.5em}"
    ".footnote-link{color:#0066cc;text-decoration:none}"
    ".footnote-link:hover{text-decoration:underline}"
)


def link_text(inner_html: str) -> str:
    """Visible text of an anchor's inner HTML."""
    if not inner_html.strip():
        return ""
    soup = BeautifulSoup(inner_html, "lxml")
    return collapse_whitespace(soup.get_text(" "))


def _context_before(content: str, position: int, max_length: int) -> str:
    if max_length <= 0:
        return ""
    start = max(0, position - max_length * _CONTEXT_WINDOW_FACTOR)
    window = content[start:position]
    if start > 0:
        # The window may start inside a tag
        window = _PARTIAL_TAG_START_RE.sub("", window)
    window = _CUT_HIDDEN_HEAD_RE.sub("", drop_hidden_blocks(window))
    text = strip_tags(window + " ")
    if len(text) <= max_length:
        return text
    snippet = text[-max_length:]
    # Drop the partial word at the cut
    if not text[-max_length - 1].isspace():
        _, _, snippet = snippet.partition(" ")
    return snippet.strip()


def _context_after(content: str, position: int, max_length: int) -> str:
    if max_length <= 0:
        return ""
    end = position + max_length * _CONTEXT_WINDOW_FACTOR
    window = content[position:end]
    if end < len(content):
        window = _PARTIAL_TAG_END_RE.sub("", window)
    window = _CUT_HIDDEN_TAIL_RE.sub("", drop_hidden_blocks(window))
    text = strip_tags(" " + window)
    if len(text) <= max_length:
        return text
    snippet = text[:max_length]
    if not text[max_length].isspace():
        snippet, _, _ = snippet.rpartition(" ")
    return snippet.strip()


class FootnoteLinkProcessor:
    """Turns anchors into ``[N]`` footnote markers plus a references block."""

    def to_footnotes(self, content: str, options: FootnoteOptions | dict | None = None) -> FootnoteResult:
        """
        Convert every external link in ``content`` to a numbered footnote.

        Fragment links (``#...``) are left untouched; links with an unsafe
        scheme are unwrapped and get no reference. Ids are 1..N in document
        order.

        Never raises: on error the original content is returned with a
        failed step.
        """
        if isinstance(options, dict):
            options = FootnoteOptions.model_validate(options)
        options = options or FootnoteOptions()

        try:
            references: list[LinkReference] = []

            def replace(match: re.Match) -> str:
                opening, inner = match.group(1), match.group(2)
                href = parse_attributes(opening).get("href")
                if href is None or href.strip().startswith("#"):
                    return match.group(0)

                if sanitize_url(href) is None:
                    logger.debug(f"Unwrapping link with unsafe URL: {truncate(href, 60)}")
                    return inner

                url = canonicalize_url(href) if options.clean_tracking_params else html.unescape(href.strip())
                text = link_text(inner)
                before = _context_before(content, match.start(), options.max_context_length)
                after = _context_after(content, match.end(), options.max_context_length)

                reference = LinkReference(
                    id=len(references) + 1,
                    url=url,
                    link_text=text,
                    context=collapse_whitespace(f"{before} {text} {after}"),
                    domain=extract_domain(url),
                )
                references.append(reference)
                return (
                    f'{inner} <a href="#footnote-{reference.id}" id="ref-{reference.id}" '
                    f'class="footnote-ref">[{reference.id}]</a>'
                )

            processed = ANCHOR_RE.sub(replace, content)
            block = self.references_block(references, options.reference_preview_length)

            logger.debug(f"Converted {len(references)} links to footnotes")
            return FootnoteResult(
                content=processed,
                references_block=block,
                link_count=len(references),
                references=references,
                step=ProcessingStep(
                    step_name=STEP_NAME,
                    input=truncate(content, settings.STEP_PREVIEW_LENGTH),
                    output=truncate(processed, settings.STEP_PREVIEW_LENGTH),
                    metadata={"links_processed": len(references), "footnote_length": len(block)},
                ),
            )

        except Exception as e:
            logger.warning(f"Footnote link processing failed: {e}")
            preview = truncate(content, settings.STEP_PREVIEW_LENGTH)
            return FootnoteResult(
                content=content,
                step=ProcessingStep(
                    step_name=STEP_NAME,
                    input=preview,
                    output=preview,
                    success=False,
                    error=str(e) or type(e).__name__,
                ),
            )

    @staticmethod
    def references_block(references: list[LinkReference], preview_length: int) -> str:
        """Render the references section; empty string when there are no links."""
        if not references:
            return ""

        items = []
        for reference in references:
            preview = truncate(reference.context, preview_length)
            # Only sanitized URLs reach the registry; re-check before rendering
            href = sanitize_url(reference.url) or "#"
            items.append(
                f'<div class="footnote-item" id="footnote-{reference.id}">\n'
                f'  <a href="#ref-{reference.id}" class="footnote-back">[{reference.id}]</a>\n'
                f'  <span class="footnote-context">"{html.escape(preview)}"</span>\n'
                f'  <a href="{html.escape(href)}" target="_blank" rel="noopener noreferrer" '
                f'class="footnote-link">{html.escape(reference.link_text)} '
                f'({html.escape(reference.domain)})</a>\n'
                f'</div>'
            )

        block = (
            '\n\n<div class="footnotes-section">\n'
            '<h3 class="footnotes-header">References</h3>\n'
            '<div class="footnotes-list">\n'
            + "\n".join(items)
            + "\n</div>\n</div>"
        )
        if settings.FOOTNOTE_INCLUDE_CSS:
            block += f"<style>{FOOTNOTE_CSS}</style>"
        return block


def integrate_footnote_links(
        content: str,
        steps: list[ProcessingStep],
        options: FootnoteOptions | dict | None = None,
) -> str:
    """Run the footnote processor, append its step and return the combined content."""
    result = footnote_processor.to_footnotes(content, options)
    steps.append(result.step)
    return result.combined


# Global footnote processor instance
footnote_processor = FootnoteLinkProcessor()
