"""Content negotiation and response classification helpers.

Every decision here is conservative: a missing header, ``q=0`` or a
wildcard-only Accept never enables the Markdown representation.
"""

import re
from dataclasses import dataclass
from typing import Optional

from .http.headers import HeaderMultimap

MARKDOWN_MEDIA_TYPE = "text/markdown"
HTML_MEDIA_TYPES = frozenset({"text/html", "application/xhtml+xml"})
NEGOTIATION_HEADER = "Accept"

HTML_START_PATTERN = re.compile(
    r"^(?:\ufeff)?\s*(?:<!doctype\s+html\b|<html\b|<head\b|<body\b|<main\b|<article\b)",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class AcceptEntry:
    """One media range of an Accept header."""

    media_type: str
    q: float
    order: int


def _split_csv(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def _parse_q(raw: str) -> float:
    cleaned = raw.strip().strip('"')
    try:
        q = float(cleaned)
    except ValueError:
        return 0.0

    # float() accepts "nan" and "inf"
    if q != q or q < 0 or q == float("inf"):
        return 0.0
    return min(q, 1.0)


def parse_accept(accept: str) -> list[AcceptEntry]:
    """
    Parse an Accept header into media ranges.

    Args:
        accept: Accept header value

    Returns:
        Entries in header order, media types lower-cased
    """
    entries = []
    for order, entry in enumerate(_split_csv(accept)):
        segments = [segment.strip() for segment in entry.split(";")]
        media_type = segments[0].lower()
        q = 1.0

        for segment in segments[1:]:
            key, sep, value = segment.partition("=")
            if key.strip().lower() != "q" or not sep:
                continue
            q = _parse_q(value)
            break

        entries.append(AcceptEntry(media_type=media_type, q=q, order=order))
    return entries


def accepts_markdown(accept: Optional[str]) -> bool:
    """
    Decide whether an Accept value explicitly asks for Markdown.

    Only ``text/markdown`` itself counts; ``*/*`` and ``text/*`` do not.
    Among duplicate entries the highest q wins (first one on ties).

    Args:
        accept: Accept header value, or None

    Returns:
        True if the best ``text/markdown`` entry has q > 0
    """
    if not accept:
        return False

    matches = [entry for entry in parse_accept(accept) if entry.media_type == MARKDOWN_MEDIA_TYPE]
    if not matches:
        return False

    best = max(matches, key=lambda entry: (entry.q, -entry.order))
    return best.q > 0


def request_accepts_markdown(headers: HeaderMultimap) -> bool:
    """Apply ``accepts_markdown`` to every Accept value of a request."""
    return accepts_markdown(headers.get_combined(NEGOTIATION_HEADER))


def is_redirect_status(status: int) -> bool:
    return 300 <= status <= 399


def is_html_content_type(content_type: Optional[str]) -> bool:
    """Check whether a Content-Type value names HTML or XHTML."""
    if not content_type:
        return False

    base_type = content_type.split(";")[0].strip().lower()
    return base_type in HTML_MEDIA_TYPES


def looks_like_html(prefix: str) -> bool:
    """
    Sniff whether a body starts like an HTML document.

    Only consulted when the response declares no Content-Type.
    """
    return HTML_START_PATTERN.match(prefix) is not None


def merge_vary(existing: Optional[str], token: str) -> str:
    """
    Add ``token`` to a Vary value without duplicating it.

    Args:
        existing: Current Vary value (may be None)
        token: Token (or comma list of tokens) to add

    Returns:
        The merged value; ``*`` stays ``*``
    """
    tokens = _split_csv(existing or "")
    if "*" in tokens:
        return "*"

    seen = {item.lower() for item in tokens}
    for incoming in _split_csv(token):
        key = incoming.lower()
        if key in seen:
            continue
        tokens.append(incoming)
        seen.add(key)

    return ", ".join(tokens)
