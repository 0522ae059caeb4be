"""Protocol definitions for HTML to Markdown conversion."""

from __future__ import annotations

from collections.abc import Awaitable
from dataclasses import dataclass
from typing import Optional, Protocol, Union, runtime_checkable

from ..http.headers import HeaderMultimap


@dataclass(frozen=True)
class MarkdownTransformContext:
    """
    Context handed to a converter alongside the HTML.

    Attributes:
        request_url: Original request URL
        response_url: Final response URL, when the upstream reported one
        request_headers: Original request headers
        response_headers: Original response headers
    """

    request_url: str
    response_url: Optional[str] = None
    request_headers: Optional[HeaderMultimap] = None
    response_headers: Optional[HeaderMultimap] = None


@runtime_checkable
class HtmlToMarkdownConverter(Protocol):
    """
    Protocol for the converter injected into the transform pipeline.

    Implementations may also expose ``name`` and ``version`` attributes;
    ``version`` is reported in the ``X-Markdown-Converter`` debug header.
    ``convert`` may return the Markdown directly or an awaitable of it.
    """

    def convert(
        self,
        html: str,
        context: MarkdownTransformContext,
    ) -> Union[str, Awaitable[str]]:
        """
        Convert an HTML document to Markdown.

        Args:
            html: Decoded HTML document
            context: Request/response context

        Returns:
            Markdown string (or an awaitable resolving to one)
        """
        ...
