"""Content conversion for web_markdown (HTML to Markdown, main content, front matter)."""

from .protocols import HtmlToMarkdownConverter, MarkdownTransformContext  # isort: skip
from .converter import (
    DefaultHtmlToMarkdownConverter,
    DocumentMetadata,
    UrlRewriteContext,
    create_default_converter,
    gather_metadata,
)
from .extractor import ContentCandidate, MainContentExtractor, score_candidate
from .markdown import FrontmatterBuilder, HtmlToMarkdown

__all__ = [
    # Protocols
    "HtmlToMarkdownConverter",
    "MarkdownTransformContext",
    # Implementations
    "ContentCandidate",
    "DefaultHtmlToMarkdownConverter",
    "DocumentMetadata",
    "FrontmatterBuilder",
    "HtmlToMarkdown",
    "MainContentExtractor",
    "UrlRewriteContext",
    "create_default_converter",
    "gather_metadata",
    "score_candidate",
]
