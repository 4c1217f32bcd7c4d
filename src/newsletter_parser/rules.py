# -*- coding: utf-8 -*-
"""
Cleaning rules for raw newsletter HTML.

Rules are small named regex transforms applied in declaration order:

- strip: remove scripts, styles, tracking pixels, ads, footers, app links,
  Office/email-client markup, event handlers and dangerous URLs
- rewrite: simplify table layouts and attribute noise
- normalize: whitespace and leftovers, applied after the empty-container
  shrink pass

Mandatory rules cannot be disabled through configuration.
"""
import re
from dataclasses import dataclass
from typing import Callable, Iterator, Literal

from .urls import sanitize_url

RuleKind = Literal["strip", "rewrite", "normalize"]
Replacement = str | Callable[[re.Match], str]

DEFAULT_FLAGS = re.IGNORECASE | re.DOTALL


class DuplicateRuleError(ValueError):
    """Two rules in one rule set share an identifier."""


@dataclass(frozen=True)
class CleaningRule:
    """A named pattern -> replacement transform."""

    id: str
    description: str
    pattern: re.Pattern
    replacement: Replacement = ""
    kind: RuleKind = "strip"
    enabled: bool = True
    mandatory: bool = False
    # Re-apply until the rule stops changing the content
    repeat: bool = False

    def apply(self, content: str) -> tuple[str, int]:
        """
        Replace every match once.

        Returns:
            Tuple of (new_content, number_of_matches_actually_changed)
        """
        changed = 0

        def substitute(match: re.Match) -> str:
            nonlocal changed
            if callable(self.replacement):
                result = self.replacement(match)
            else:
                result = match.expand(self.replacement)
            if result != match.group(0):
                changed += 1
            return result

        return self.pattern.sub(substitute, content), changed


class RuleSet:
    """Immutable ordered collection of rules with unique identifiers."""

    def __init__(self, rules):
        self._rules: tuple[CleaningRule, ...] = tuple(rules)
        seen: set[str] = set()
        for item in self._rules:
            if item.id in seen:
                raise DuplicateRuleError(f"Duplicate cleaning rule id: {item.id}")
            seen.add(item.id)

    def __iter__(self) -> Iterator[CleaningRule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, rule_id: object) -> bool:
        return any(item.id == rule_id for item in self._rules)

    def get(self, rule_id: str) -> CleaningRule | None:
        for item in self._rules:
            if item.id == rule_id:
                return item
        return None

    @property
    def ids(self) -> list[str]:
        return [item.id for item in self._rules]

    def of_kind(self, *kinds: RuleKind) -> list[CleaningRule]:
        return [item for item in self._rules if item.kind in kinds]


def rule(
        rule_id: str,
        description: str,
        pattern: str,
        replacement: Replacement = "",
        *,
        kind: RuleKind = "strip",
        mandatory: bool = False,
        repeat: bool = False,
        flags: int = DEFAULT_FLAGS,
) -> CleaningRule:
    """Build a rule, compiling its pattern (a bad pattern fails at import time)."""
    return CleaningRule(
        id=rule_id,
        description=description,
        pattern=re.compile(pattern, flags),
        replacement=replacement,
        kind=kind,
        mandatory=mandatory,
        repeat=repeat,
    )


# ==============================================================================
# Attributes
# ==============================================================================

# Opening tag, quote-aware so ">" inside attribute values does not end the tag
TAG_PATTERN = r"<[a-z][\w:-]*(?:\"[^\"]*\"|'[^']*'|[^'\">])*>"

_TAG_PARTS_RE = re.compile(r"^(<[a-z][\w:-]*)(.*?)(/?>)$", re.IGNORECASE | re.DOTALL)
# Attributes are consumed left to right, quoted values as a whole
ATTRIBUTE_RE = re.compile(
    r"(?P<sep>[\s/]*)(?P<name>[^\s\"'>/=]+)"
    r"(?:\s*=\s*(?P<value>\"[^\"]*\"|'[^']*'|[^\s\"'>]+))?"
)


def attribute_value(attr: re.Match) -> str | None:
    value = attr.group("value")
    if value is None:
        return None
    if value[:1] in "\"'":
        return value[1:-1]
    return value


def parse_attributes(tag: str) -> dict[str, str | None]:
    """Lower-cased attribute names mapped to unquoted values (first wins)."""
    parts = _TAG_PARTS_RE.match(tag)
    if not parts:
        return {}
    attributes: dict[str, str | None] = {}
    for attr in ATTRIBUTE_RE.finditer(parts.group(2)):
        attributes.setdefault(attr.group("name").lower(), attribute_value(attr))
    return attributes


def rewrite_attributes(tag: str, rewrite: Callable[[re.Match], str]) -> str:
    """Rebuild ``tag`` with every attribute token passed through ``rewrite``."""
    parts = _TAG_PARTS_RE.match(tag)
    if not parts:
        return tag
    body = ATTRIBUTE_RE.sub(rewrite, parts.group(2))
    return f"{parts.group(1)}{body}{parts.group(3)}"


def dropping(name_pattern: str) -> Callable[[re.Match], str]:
    """Attribute rewrite removing attributes whose name matches ``name_pattern``."""
    name_re = re.compile(name_pattern, re.IGNORECASE)

    def rewrite(attr: re.Match) -> str:
        return "" if name_re.fullmatch(attr.group("name")) else attr.group(0)

    return rewrite


def attribute_rule(
        rule_id: str,
        description: str,
        rewrite: Callable[[re.Match], str],
        **kwargs,
) -> CleaningRule:
    """Rule applying an attribute rewrite to every opening tag."""

    def replace(match: re.Match) -> str:
        return rewrite_attributes(match.group(0), rewrite)

    return rule(rule_id, description, TAG_PATTERN, replace, **kwargs)


_LINK_ATTRS = frozenset({"href", "xlink:href", "action", "formaction"})
_SOURCE_ATTRS = frozenset({"src", "lowsrc", "dynsrc", "background", "poster", "srcset"})


def _neutralize_url(attr: re.Match) -> str:
    name = attr.group("name").lower()
    if name not in _LINK_ATTRS and name not in _SOURCE_ATTRS:
        return attr.group(0)
    value = attribute_value(attr)
    if value is None or sanitize_url(value) is not None:
        return attr.group(0)
    if name in _LINK_ATTRS:
        return f'{attr.group("sep")}{attr.group("name")}="#"'
    return ""


def _drop_empty(attr: re.Match) -> str:
    value = attr.group("value")
    if value is None or attr.group("name").lower() == "alt":
        return attr.group(0)
    return attr.group(0) if attribute_value(attr).strip() else ""


# ==============================================================================
# Tracking pixels
# ==============================================================================

_HIDDEN_STYLE_RE = re.compile(r"display\s*:\s*none|visibility\s*:\s*hidden", re.IGNORECASE)
_DIMENSION_RE = re.compile(r"^\s*(\d+)(?:\.\d+)?\s*(?:px)?\s*$", re.IGNORECASE)
TRACKING_SRC_RE = re.compile(
    r"/(?:track|tracking|pixel|beacon|analytics|open|impression|wf/open)s?(?:[/._?&=-]|$)"
    r"|\.gif\?"
    r"|/o\.gif",
    re.IGNORECASE,
)


def _dimension(value: str | None) -> int | None:
    if value is None:
        return None
    match = _DIMENSION_RE.match(value)
    return int(match.group(1)) if match else None


def _style_dimension(style: str, name: str) -> int | None:
    match = re.search(rf"(?<![\w-]){name}\s*:\s*(\d+)(?:\.\d+)?px", style, re.IGNORECASE)
    return int(match.group(1)) if match else None


def _is_pixel(width: int | None, height: int | None) -> bool:
    if width == 0 or height == 0:
        return True
    if width is None and height is None:
        return False
    return (width is None or width <= 1) and (height is None or height <= 1)


def is_tracking_pixel(tag: str) -> bool:
    """
    Decide whether an ``<img>`` tag is a tracking pixel.

    Every criterion only ever adds reasons to drop an image, so an image kept
    once is kept again after its style attribute has been stripped.
    """
    attributes = parse_attributes(tag)

    if _is_pixel(_dimension(attributes.get("width")), _dimension(attributes.get("height"))):
        return True

    style = attributes.get("style") or ""
    if _HIDDEN_STYLE_RE.search(style):
        return True
    if _is_pixel(_style_dimension(style, "width"), _style_dimension(style, "height")):
        return True

    src = attributes.get("src") or ""
    return bool(TRACKING_SRC_RE.search(src))


def _strip_tracking_pixel(match: re.Match) -> str:
    return "" if is_tracking_pixel(match.group(0)) else match.group(0)


# ==============================================================================
# Tables
# ==============================================================================

_KEPT_CELL_ATTRS = frozenset({"colspan", "rowspan", "scope", "headers", "abbr"})
_LAYOUT_HINT_RE = re.compile(
    r"<table\b[^>]*(?:role\s*=\s*[\"']?presentation|cellpadding\s*=\s*[\"']?0\b|border\s*=\s*[\"']?0\b)",
    re.IGNORECASE,
)


def _keep_cell_attribute(attr: re.Match) -> str:
    return attr.group(0) if attr.group("name").lower() in _KEPT_CELL_ATTRS else ""


def _clean_cell(cell: re.Match) -> str:
    return rewrite_attributes(cell.group(0), _keep_cell_attribute)


def _rewrite_table(table: str) -> str:
    """Turn a layout table into divs, or reduce a data table to bare structure."""
    is_layout = not re.search(r"<t[dh]\b", table, re.IGNORECASE) or _LAYOUT_HINT_RE.match(table)

    if is_layout:
        table = re.sub(r"</?(?:thead|tbody|tfoot|tr)\b[^>]*>", "", table, flags=re.IGNORECASE)
        table = re.sub(r"<t[dh]\b[^>]*>", "<div>", table, flags=re.IGNORECASE)
        table = re.sub(r"</t[dh]\s*>", "</div>", table, flags=re.IGNORECASE)
        table = re.sub(r"^<table\b[^>]*>", '<div class="layout-grid">', table, flags=re.IGNORECASE)
        return re.sub(r"</table\s*>$", "</div>", table, flags=re.IGNORECASE)

    table = re.sub(r"</?(?:thead|tbody|tfoot)\b[^>]*>", "", table, flags=re.IGNORECASE)
    table = re.sub(r"<tr\b[^>]*>", "<tr>", table, flags=re.IGNORECASE)
    table = re.sub(r"<t[dh]\b[^>]*>", _clean_cell, table, flags=re.IGNORECASE)
    return re.sub(r"^<table\b[^>]*>", "<table>", table, flags=re.IGNORECASE)


_INNERMOST_TABLE_RE = re.compile(r"<table\b[^>]*>(?:(?!<table\b).)*?</table\s*>", re.IGNORECASE | re.DOTALL)
_PARKED_TABLE_RE = re.compile(r"\x00table-(\d+)\x00")


def _rewrite_tables(match: re.Match) -> str:
    """
    Rewrite nested tables innermost first.

    Each rewritten table is parked behind a placeholder so its enclosing table
    becomes the next innermost one, then placeholders are restored.
    """
    fragment = match.group(0)
    parked: list[str] = []

    while innermost := _INNERMOST_TABLE_RE.search(fragment):
        parked.append(_rewrite_table(innermost.group(0)))
        placeholder = f"\x00table-{len(parked) - 1}\x00"
        fragment = fragment[:innermost.start()] + placeholder + fragment[innermost.end():]

    while _PARKED_TABLE_RE.search(fragment):
        fragment = _PARKED_TABLE_RE.sub(lambda m: parked[int(m.group(1))], fragment)
    return fragment


# ==============================================================================
# Default rule set
# ==============================================================================

BLOCK_TAGS = (
    "address|article|aside|blockquote|br|center|dd|div|dl|dt|figcaption|figure|"
    "footer|h[1-6]|header|hr|li|main|nav|ol|p|pre|section|table|tbody|td|tfoot|"
    "th|thead|tr|ul"
)
_HIDING_STYLE = (
    r"display\s*:\s*none|visibility\s*:\s*hidden|max-height\s*:\s*0(?:px)?\s*(?:;|[\"'])"
    r"|(?<![\w-])opacity\s*:\s*0(?:\.0*)?(?![\d.])"
)
_AD_KEYWORDS = r"ad|ads|advert|advertisement|advertising|sponsor|sponsored|sponsorship|promo|promotion|promoted"
_FOOTER_KEYWORDS = r"footer|unsubscribe|social|follow|connect|share|sharing|preferences|manage-subscription"
_CONTAINER_TAGS = r"div|table|td|section|aside|span|p|center"

DEFAULT_RULES = RuleSet([
    # (a) styles, scripts and active content
    rule(
        "strip-style-blocks",
        "Remove <style> blocks",
        r"<style\b[^>]*>.*?</style\s*>",
        mandatory=True,
    ),
    rule(
        "strip-script-blocks",
        "Remove <script> blocks",
        r"<script\b[^>]*>.*?</script\s*>",
        mandatory=True,
    ),
    rule(
        "strip-embedded-content",
        "Remove iframes, objects, embeds and noscript blocks",
        r"<(iframe|object|embed|applet|frameset|frame|noscript|template)\b[^>]*>.*?</\1\s*>",
        mandatory=True,
    ),
    rule(
        "strip-orphan-active-tags",
        "Remove unclosed or stray script/style/embed tags",
        r"</?(?:script|style|iframe|object|embed|applet|frameset|frame|noscript|template|base)\b[^>]*>",
        mandatory=True,
    ),
    # (b) tracking pixels and hidden blocks (need the style attribute, so before inline style removal)
    rule(
        "strip-tracking-pixels",
        "Remove tracking pixels and beacons",
        r"<img\b(?:\"[^\"]*\"|'[^']*'|[^'\">])*>",
        _strip_tracking_pixel,
        mandatory=True,
    ),
    rule(
        "strip-hidden-elements",
        "Remove elements hidden with display:none, visibility:hidden or opacity:0",
        rf"<({_CONTAINER_TAGS})\b[^>]*\bstyle\s*=\s*[\"'][^\"']*(?:{_HIDING_STYLE})[^>]*>.*?</\1\s*>",
    ),
    attribute_rule(
        "strip-inline-styles",
        "Remove inline style attributes",
        dropping(r"style"),
        mandatory=True,
    ),
    # (c) ads
    rule(
        "strip-ad-containers",
        "Remove ad, sponsor and promo containers",
        rf"<({_CONTAINER_TAGS})\b[^>]*\b(?:class|id)\s*=\s*[\"'][^\"']*\b(?:{_AD_KEYWORDS})\b[^\"']*[\"'][^>]*>.*?</\1\s*>",
        mandatory=True,
    ),
    # (d) footers, unsubscribe and social blocks
    rule(
        "strip-footer-elements",
        "Remove <footer> elements",
        r"<footer\b[^>]*>.*?</footer\s*>",
        mandatory=True,
    ),
    rule(
        "strip-footer-promos",
        "Remove newsletter footers, unsubscribe and social media blocks",
        rf"<({_CONTAINER_TAGS})\b[^>]*\b(?:class|id)\s*=\s*[\"'][^\"']*\b(?:{_FOOTER_KEYWORDS})\b[^\"']*[\"'][^>]*>.*?</\1\s*>",
        mandatory=True,
    ),
    rule(
        "strip-unsubscribe-links",
        "Remove unsubscribe and preference-center links",
        r"<a\b[^>]*\bhref\s*=\s*[\"'][^\"']*(?:unsubscribe|optout|opt-out|manage[-_]?subscription|email[-_]?preferences)[^\"']*[\"'][^>]*>.*?</a\s*>"
        r"|<a\b[^>]*>(?:(?!</a\b).)*?\bunsubscribe\b(?:(?!</a\b).)*?</a\s*>",
        mandatory=True,
    ),
    # (e) vendor app links
    rule(
        "strip-app-links",
        "Remove Substack app links and social action icons",
        r"<a\b[^>]*\b(?:href\s*=\s*[\"']https?://(?:[\w-]+\.)?substack\.com/app-link/[^\"']*[\"']"
        r"|class\s*=\s*[\"'][^\"']*\b(?:app-link|share-icon|like-button|comment-button|share-button|restack-button)\b[^\"']*[\"'])"
        r"[^>]*>.*?</a\s*>",
        mandatory=True,
    ),
    rule(
        "strip-read-in-app",
        "Remove READ IN APP buttons",
        r"<a\b[^>]*\bclass\s*=\s*[\"'][^\"']*\bread-in-app\b[^\"']*[\"'][^>]*>.*?</a\s*>"
        r"|<a\b[^>]*>\s*(?:<[^>]+>\s*)*read\s+in\s+(?:the\s+)?app(?:\s*<[^>]+>)*\s*</a\s*>",
        mandatory=True,
    ),
    # (f) email-client and Office markup
    rule(
        "strip-downlevel-revealed-markers",
        "Unwrap <!--[if !mso]><!--> ... <!--<![endif]--> markers, keeping their content",
        r"<!--\[if[^\]]*\]><!-->|<!--<!\[endif\]-->",
        mandatory=True,
    ),
    rule(
        "strip-conditional-comments",
        "Remove Microsoft conditional comments",
        r"<!--\s*\[if\b.*?<!\[endif\]\s*-->",
        mandatory=True,
    ),
    rule(
        "strip-downlevel-conditionals",
        "Remove bare <![if]> / <![endif]> markers",
        r"<!\[if[^\]]*\]>|<!\[endif\]>",
        mandatory=True,
    ),
    rule(
        "strip-processing-instructions",
        "Remove XML processing instructions and doctype declarations",
        r"<\?.*?\?>|<!doctype\b[^>]*>",
        mandatory=True,
    ),
    rule(
        "strip-office-xml-blocks",
        "Remove Office <xml> data islands",
        r"<xml\b[^>]*>.*?</xml\s*>",
        mandatory=True,
    ),
    rule(
        "strip-namespaced-elements",
        "Remove namespaced Office elements (o:p, v:shape, w:WordDocument, ...)",
        r"</?[a-z][\w-]*:[\w-]+\b[^>]*>",
        mandatory=True,
    ),
    rule(
        "strip-document-head",
        "Remove the document <head> with its meta and title",
        r"<head\b[^>]*>.*?</head\s*>",
        mandatory=True,
    ),
    rule(
        "strip-document-wrappers",
        "Remove html/body wrappers and stray meta/link/title tags",
        r"<title\b[^>]*>.*?</title\s*>|</?(?:html|body|meta|link|title)\b[^>]*>",
        mandatory=True,
    ),
    rule(
        "strip-comments",
        "Remove HTML comments",
        r"<!--.*?-->",
        mandatory=True,
    ),
    attribute_rule(
        "strip-namespace-attributes",
        "Remove xmlns and Office namespaced attributes",
        dropping(r"xmlns(?::[\w-]+)?|(?:o|v|w|m|x|dt|st\d*):[\w-]+"),
        mandatory=True,
    ),
    # (g) event handlers and dangerous URLs
    attribute_rule(
        "strip-event-handlers",
        "Remove on* event handler attributes",
        dropping(r"on[a-z]+"),
        mandatory=True,
    ),
    attribute_rule(
        "neutralize-dangerous-urls",
        "Neutralize javascript:, vbscript: and data: URLs in links and sources",
        _neutralize_url,
        mandatory=True,
    ),
    # Rewrites
    rule(
        "rewrite-tables",
        "Convert layout tables to divs and simplify data tables",
        r"<table\b.*</table\s*>",
        _rewrite_tables,
        kind="rewrite",
        repeat=True,
    ),
    attribute_rule(
        "strip-data-attributes",
        "Remove data-* attributes",
        dropping(r"data-[\w.:-]+"),
        kind="rewrite",
    ),
    attribute_rule(
        "strip-empty-attributes",
        "Remove attributes with empty values (alt is kept)",
        _drop_empty,
        kind="rewrite",
    ),
    # Normalization (after the shrink pass)
    # Each block matches one way only (first colon), so failed lookaheads backtrack linearly
    rule(
        "strip-leading-css",
        "Remove raw CSS left before the first HTML tag",
        r"\A\s*(?:[^<{}]*\{[^{}:]*:[^{}]*\})+\s*(?=<)",
        kind="normalize",
        mandatory=True,
    ),
    rule(
        "collapse-whitespace",
        "Collapse whitespace runs to a single space",
        r"\s{2,}|[\t\n\r\f\v]",
        " ",
        kind="normalize",
        mandatory=True,
    ),
    rule(
        "trim-block-whitespace",
        "Remove spacing around block-level tag boundaries",
        rf"\s*(</?(?:{BLOCK_TAGS})\b(?:\"[^\"]*\"|'[^']*'|[^'\">])*>)\s*",
        r"\1",
        kind="normalize",
        mandatory=True,
    ),
    rule(
        "trim-content",
        "Trim leading and trailing whitespace",
        r"\A\s+|\s+\Z",
        kind="normalize",
        mandatory=True,
    ),
])

# Tag names removed by the shrink pass when they only contain whitespace
SHRINK_TAGS = (
    "div", "p", "span", "a", "strong", "em", "b", "i", "u", "font", "center",
    "h1", "h2", "h3", "h4", "h5", "h6", "li", "ul", "ol", "blockquote", "section",
)
SHRINK_PATTERN = re.compile(
    r"<(" + "|".join(SHRINK_TAGS) + r")\b(?:\"[^\"]*\"|'[^']*'|[^'\">])*>\s*</\1\s*>",
    re.IGNORECASE,
)

# Rules re-run after the shrink pass no matter how the rule set is configured
SAFETY_RULE_IDS = (
    "strip-style-blocks",
    "strip-script-blocks",
    "strip-embedded-content",
    "strip-orphan-active-tags",
    "strip-event-handlers",
    "neutralize-dangerous-urls",
)
