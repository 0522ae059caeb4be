"""URL helpers for link and image rewriting."""

import re
from typing import Optional
from urllib.parse import urljoin, urlsplit, urlunsplit

ABSOLUTE_SCHEME_PATTERN = re.compile(r"^[a-z][a-z\d+.-]*:", re.IGNORECASE)
SKIP_REWRITE_PREFIXES = ("#", "mailto:", "tel:", "javascript:", "data:")


def normalize_document_url(url: Optional[str]) -> Optional[str]:
    """
    Drop the fragment of an absolute URL.

    Args:
        url: URL to normalize

    Returns:
        The URL without fragment, or None if it is empty or not absolute
    """
    if not url:
        return None

    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return None

    if not parts.scheme:
        return None
    if parts.scheme in ("http", "https"):
        if not parts.netloc:
            return None
        path = parts.path or "/"
    else:
        path = parts.path

    return urlunsplit((parts.scheme.lower(), parts.netloc, path, parts.query, ""))


def resolve_url(url: Optional[str], base_url: Optional[str]) -> Optional[str]:
    """
    Resolve a possibly relative URL against a base.

    Fragment-only URLs are returned unchanged.

    Args:
        url: URL as written in the document
        base_url: Absolute base URL (may be None)

    Returns:
        Absolute URL, or None if it cannot be resolved
    """
    if not url:
        return None

    trimmed = url.strip()
    if not trimmed:
        return None

    if trimmed.startswith("#"):
        return trimmed

    if ABSOLUTE_SCHEME_PATTERN.match(trimmed):
        return normalize_document_url(trimmed)

    if not base_url:
        return None

    if trimmed.startswith("//"):
        scheme = urlsplit(base_url).scheme
        if not scheme:
            return None
        return normalize_document_url(f"{scheme}:{trimmed}")

    try:
        return normalize_document_url(urljoin(base_url, trimmed))
    except ValueError:
        return None


def should_skip_rewrite(url: str) -> bool:
    """True for fragment, mailto:, tel:, javascript: and data: URLs."""
    return url.strip().lower().startswith(SKIP_REWRITE_PREFIXES)
