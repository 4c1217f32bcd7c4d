# -*- coding: utf-8 -*-
"""
URL helpers: scheme safety checks, tracking-parameter removal and domain
extraction.
"""
import html
import logging
import re
from urllib.parse import unquote_plus, urlsplit, urlunsplit

from .config import settings

logger = logging.getLogger(__name__)

SAFE_SCHEMES = frozenset({"http", "https", "mailto", "tel"})

_SCHEME_RE = re.compile(r"^([a-z][a-z0-9+.-]*):", re.IGNORECASE)
# Browsers ignore control characters and whitespace inside a scheme ("java\tscript:")
_SCHEME_NOISE_RE = re.compile(r"[\x00-\x20]+")
# "example.com/page" or "www.example.com" (no scheme, host-looking first segment)
_BARE_HOST_RE = re.compile(r"^(?:www\.)?[a-z0-9](?:[a-z0-9-]*[a-z0-9])?(?:\.[a-z0-9-]+)+(?::\d+)?(?:[/?#]|$)", re.IGNORECASE)


def url_scheme(url: str) -> str | None:
    """Return the lower-cased scheme as a browser would read it, or None."""
    compact = _SCHEME_NOISE_RE.sub("", html.unescape(url or ""))
    match = _SCHEME_RE.match(compact)
    return match.group(1).lower() if match else None


def sanitize_url(url: str) -> str | None:
    """
    Return the URL stripped of surrounding whitespace, or None when its scheme
    is not allowed (javascript:, vbscript:, data:, file:, ...).

    Relative and schemeless URLs are considered safe.
    """
    if url is None:
        return None
    scheme = url_scheme(url)
    if scheme is not None and scheme not in SAFE_SCHEMES:
        return None
    return url.strip()


def is_tracking_param(name: str) -> bool:
    key = name.strip().lower()
    if key.startswith("utm_"):
        return True
    return key in {param.lower() for param in settings.TRACKING_QUERY_PARAMS}


def strip_tracking_params(url: str) -> str:
    """
    Remove utm_* and other known tracking parameters from the query string.

    Kept parameters are copied verbatim, without re-encoding.
    """
    parts = urlsplit(url)
    if not parts.query:
        return url

    pieces = parts.query.split("&")
    kept = [
        piece for piece in pieces
        if not is_tracking_param(unquote_plus(piece.partition("=")[0]))
    ]
    if len(kept) == len(pieces):
        return url

    return urlunsplit((parts.scheme, parts.netloc, parts.path, "&".join(piece for piece in kept if piece), parts.fragment))


def canonicalize_url(url: str) -> str:
    """
    Canonical form used for footnote references.

    Tracking parameters are dropped and host-looking schemeless URLs
    ("example.com/x", "//example.com/x") are coerced to https://.
    """
    candidate = html.unescape(url.strip())
    if candidate.startswith("//"):
        candidate = f"https:{candidate}"
    elif url_scheme(candidate) is None and _BARE_HOST_RE.match(candidate):
        candidate = f"https://{candidate}"

    try:
        return strip_tracking_params(candidate)
    except ValueError as e:
        # urlsplit rejects malformed IPv6 hosts and similar
        logger.debug(f"Could not parse URL for canonicalization: {e}")
        return candidate


def extract_domain(url: str) -> str:
    """
    Host of ``url`` without a leading "www.", or "unknown".

    Schemeless URLs fall back to their first path segment when it looks
    like a host ("example.com/x").
    """
    try:
        host = urlsplit(url).hostname or ""
    except ValueError:
        host = ""
    if not host:
        candidate = url.strip()
        if _BARE_HOST_RE.match(candidate):
            host = re.split(r"[/?#:]", candidate, maxsplit=1)[0].lower()
    host = re.sub(r"^www\.", "", host)
    return host or "unknown"
