# -*- coding: utf-8 -*-
"""
Text primitives shared by the cleaner, the incremental parser and the
footnote processor.

Everything here is plain ``re`` over ``str`` and never raises for string
input; ``html_to_text`` doubles as the guaranteed-safe fallback conversion.
"""
import re

# Tags whose whole body is dropped before detagging
_DROP_BLOCKS_RE = re.compile(
    r"<(script|style|head|title|noscript|template)\b[^>]*>.*?</\1\s*>",
    re.IGNORECASE | re.DOTALL,
)
_COMMENT_RE = re.compile(r"<!--.*?-->", re.DOTALL)
_BR_RE = re.compile(r"<br\b[^>]*>", re.IGNORECASE)
_BLOCK_TAG_RE = re.compile(
    r"</?(?:p|div|h[1-6]|ul|ol|li|tr|table|thead|tbody|tfoot|blockquote|pre|"
    r"section|article|header|footer|nav|aside|main|center|hr|dl|dt|dd|figure|"
    r"figcaption|address|form)\b[^>]*>",
    re.IGNORECASE,
)
_CELL_TAG_RE = re.compile(r"</?t[dh]\b[^>]*>", re.IGNORECASE)
_ANY_TAG_RE = re.compile(r"<[^>]+>")

# A "<" that would open a tag, a comment or a processing instruction
_TAG_OPENER_RE = re.compile(r"<(?=[A-Za-z/!?])")

_HORIZONTAL_WS_RE = re.compile(r"[ \t\f\v]+")
_BLANK_RUN_RE = re.compile(r"\n{3,}")
_WS_RE = re.compile(r"\s+")

BASIC_ENTITIES = {
    "nbsp": " ",
    "amp": "&",
    "lt": "<",
    "gt": ">",
    "quot": '"',
    "#39": "'",
    "apos": "'",
    "rsquo": "’",
    "lsquo": "‘",
    "ldquo": "“",
    "rdquo": "”",
}
_BASIC_ENTITY_RE = re.compile(
    r"&(" + "|".join(re.escape(name) for name in BASIC_ENTITIES) + r");",
    re.IGNORECASE,
)

EXTENDED_ENTITIES = {
    "ndash": "–",
    "#8211": "–",
    "mdash": "—",
    "#8212": "—",
    "hellip": "…",
    "#8230": "…",
    "lsquo": "‘",
    "#8216": "‘",
    "rsquo": "’",
    "#8217": "’",
    "ldquo": "“",
    "#8220": "“",
    "rdquo": "”",
    "#8221": "”",
    "nbsp": " ",
    "#160": " ",
}
_EXTENDED_ENTITY_RE = re.compile(
    r"&(" + "|".join(re.escape(name) for name in EXTENDED_ENTITIES) + r");",
    re.IGNORECASE,
)

# Soft hyphen, combining grapheme joiner, ZWSP/ZWNJ/ZWJ, word joiner, BOM
INVISIBLE_CHARS_RE = re.compile("[\u00ad\u034f\u200b-\u200d\u2060\ufeff]")
_INVISIBLE_ENTITY_RE = re.compile(
    r"&(?:shy|zwnj|zwj|#173|#x0*ad|#847|#x0*34f|#820[345]|#x0*200[bcd]|"
    r"#8288|#x0*2060|#65279|#x0*feff);",
    re.IGNORECASE,
)


def _entity_decoder(table: dict[str, str]):
    def decode(match: re.Match) -> str:
        return table[match.group(1).lower()]

    return decode


def decode_basic_entities(text: str) -> str:
    """Decode the fixed basic entity set in a single pass (no double decoding)."""
    return _BASIC_ENTITY_RE.sub(_entity_decoder(BASIC_ENTITIES), text)


def decode_extended_entities(text: str) -> str:
    """Decode dashes, smart quotes, ellipsis and non-breaking spaces."""
    return _EXTENDED_ENTITY_RE.sub(_entity_decoder(EXTENDED_ENTITIES), text)


def neutralize_markup(text: str) -> str:
    """Re-escape any ``<`` that would open a tag in plain text."""
    return _TAG_OPENER_RE.sub("&lt;", text)


def remove_invisible(text: str) -> str:
    """Drop zero-width characters, soft hyphens and BOMs (raw or as entities)."""
    text = _INVISIBLE_ENTITY_RE.sub("", text)
    return INVISIBLE_CHARS_RE.sub("", text)


def normalize_whitespace(text: str) -> str:
    """Collapse horizontal whitespace, trim lines, keep at most one blank line."""
    text = text.replace("\r\n", "\n").replace("\r", "\n").replace("\u00a0", " ")
    text = _HORIZONTAL_WS_RE.sub(" ", text)
    text = "\n".join(line.strip() for line in text.split("\n"))
    text = _BLANK_RUN_RE.sub("\n\n", text)
    return text.strip()


def collapse_whitespace(text: str) -> str:
    return _WS_RE.sub(" ", text).strip()


def drop_hidden_blocks(html: str) -> str:
    """Replace script/style/head bodies and comments by a space."""
    return _COMMENT_RE.sub(" ", _DROP_BLOCKS_RE.sub(" ", html))


def strip_tags(html: str) -> str:
    """Replace every tag by a space and collapse whitespace."""
    return collapse_whitespace(_ANY_TAG_RE.sub(" ", html))


def html_to_text(html: str) -> str:
    """
    Convert HTML to plain text.

    Block-level tags and ``<br>`` become line breaks, table cells become
    spaces, other tags are removed. Script/style bodies and comments are
    dropped before detagging.
    """
    if not html:
        return ""

    text = _BR_RE.sub("\n", drop_hidden_blocks(html))
    text = _BLOCK_TAG_RE.sub("\n", text)
    text = _CELL_TAG_RE.sub(" ", text)
    text = _ANY_TAG_RE.sub("", text)
    text = neutralize_markup(decode_basic_entities(text))
    return normalize_whitespace(text)


def count_words(content: str) -> int:
    """Whitespace-delimited token count of tag-stripped content."""
    text = strip_tags(content or "")
    return len(text.split()) if text else 0


def truncate(text: str, max_length: int, ellipsis: str = "...") -> str:
    """Cut ``text`` to ``max_length`` characters, appending ``ellipsis`` if cut."""
    if len(text) <= max_length:
        return text
    return text[:max_length] + ellipsis


def generate_preview_text(text: str, max_length: int = 200) -> str:
    """Truncate at the last word boundary before ``max_length``."""
    if not text:
        return ""
    if len(text) <= max_length:
        return text

    last_space = text.rfind(" ", 0, max_length)
    preview = text[: last_space if last_space > 0 else max_length].strip()
    return f"{preview}..."
