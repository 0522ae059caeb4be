"""
web_markdown - Serve Markdown to clients that negotiate for it.

Usage:
    from web_markdown import (
        DefaultHtmlToMarkdownConverter,
        ExchangeRequest,
        ExchangeResponse,
        TransformPipeline,
        TransformPolicy,
    )

    policy = TransformPolicy(converter=DefaultHtmlToMarkdownConverter())
    pipeline = TransformPipeline(policy)

    response = await pipeline.transform(
        ExchangeRequest.create("https://example.com/", {"Accept": "text/markdown"}),
        ExchangeResponse.from_bytes(html, headers={"Content-Type": "text/html"}),
    )
"""

__version__ = "0.1.0"

# conversion has to load before models (models.config imports its protocols)
from .conversion import (  # isort: skip
    ContentCandidate,
    DefaultHtmlToMarkdownConverter,
    FrontmatterBuilder,
    HtmlToMarkdown,
    HtmlToMarkdownConverter,
    MainContentExtractor,
    MarkdownTransformContext,
)
from .errors import FetchError, WebMarkdownError
from .http import BodyReadResult, ExchangeRequest, ExchangeResponse, HeaderMultimap, read_with_limit
from .models.config import (
    ConverterConfig,
    ConverterMode,
    OversizeBehavior,
    TransformConfig,
    TransformPolicy,
    WebMarkdownConfig,
)
from .models.events import FallbackReason, TransformObservation, TransformStats
from .negotiation import accepts_markdown, is_html_content_type, is_redirect_status, looks_like_html, merge_vary
from .pipeline import TransformPipeline, transform_response

__all__ = [
    "__version__",
    # Pipeline
    "TransformPipeline",
    "transform_response",
    # Exchange model
    "ExchangeRequest",
    "ExchangeResponse",
    "HeaderMultimap",
    "BodyReadResult",
    "read_with_limit",
    # Negotiation
    "accepts_markdown",
    "is_html_content_type",
    "is_redirect_status",
    "looks_like_html",
    "merge_vary",
    # Conversion
    "HtmlToMarkdownConverter",
    "MarkdownTransformContext",
    "DefaultHtmlToMarkdownConverter",
    "MainContentExtractor",
    "ContentCandidate",
    "HtmlToMarkdown",
    "FrontmatterBuilder",
    # Config
    "TransformPolicy",
    "TransformConfig",
    "ConverterConfig",
    "ConverterMode",
    "OversizeBehavior",
    "WebMarkdownConfig",
    # Events
    "FallbackReason",
    "TransformObservation",
    "TransformStats",
    # Errors
    "WebMarkdownError",
    "FetchError",
]
