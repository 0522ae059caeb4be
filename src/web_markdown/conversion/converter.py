"""Default HTML to Markdown converter injected into the transform pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from bs4 import BeautifulSoup

from .. import __version__
from ..models.config import ConverterConfig, ConverterMode
from .extractor import MainContentExtractor
from .markdown import FrontmatterBuilder, HtmlToMarkdown, normalize_markdown
from .protocols import MarkdownTransformContext
from .urls import normalize_document_url, resolve_url, should_skip_rewrite

logger = logging.getLogger(__name__)

# Removed before rendering in content mode
CONTENT_MODE_STRIP_SELECTORS = [
    "nav",
    "footer",
    "aside",
    "script",
    "style",
    "noscript",
    "template",
    '[role="navigation"]',
    '[aria-label*="cookie" i]',
    '[id*="cookie" i]',
    '[class*="cookie" i]',
]

CANONICAL_SOURCES = [
    ('link[rel~="canonical"][href]', "href"),
    ('meta[property="og:url"][content]', "content"),
    ('meta[name="twitter:url"][content]', "content"),
]
TITLE_META_SOURCES = [
    ('meta[property="og:title"][content]', "content"),
    ('meta[name="twitter:title"][content]', "content"),
]
DESCRIPTION_SOURCES = [
    ('meta[name="description"][content]', "content"),
    ('meta[property="og:description"][content]', "content"),
    ('meta[name="twitter:description"][content]', "content"),
]


@dataclass(frozen=True)
class UrlRewriteContext:
    """Passed to custom link/image rewriters."""

    kind: str  # "link" or "image"
    request_url: str
    element_tag: str
    response_url: Optional[str] = None
    base_url: Optional[str] = None
    canonical_url: Optional[str] = None


UrlRewriter = Callable[[str, UrlRewriteContext], str]


@dataclass
class DocumentMetadata:
    """Metadata gathered from the document head."""

    url: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    lang: Optional[str] = None
    canonical: Optional[str] = None
    base_url: Optional[str] = None

    def as_front_matter(self) -> dict[str, Optional[str]]:
        return {
            "title": self.title,
            "url": self.url,
            "lang": self.lang,
            "description": self.description,
            "canonical": self.canonical,
        }


def _text(soup: BeautifulSoup, selector: str) -> Optional[str]:
    element = soup.select_one(selector)
    if element is None:
        return None
    value = element.get_text().strip()
    return value or None


def _attribute(soup: BeautifulSoup, selector: str, attribute: str) -> Optional[str]:
    element = soup.select_one(selector)
    if element is None:
        return None
    value = element.get(attribute)
    if isinstance(value, list):
        value = " ".join(value)
    if not value:
        return None
    return value.strip() or None


def _first_attribute(soup: BeautifulSoup, sources: list[tuple[str, str]]) -> Optional[str]:
    for selector, attribute in sources:
        value = _attribute(soup, selector, attribute)
        if value:
            return value
    return None


def _document_lang(soup: BeautifulSoup) -> Optional[str]:
    root_lang = _attribute(soup, "html[lang]", "lang")
    if root_lang:
        return root_lang

    content_language = _attribute(soup, 'meta[http-equiv="content-language" i][content]', "content")
    if not content_language:
        return None

    for separator in (";", ","):
        content_language = content_language.split(separator)[0]
    return content_language.strip() or None


def gather_metadata(
    soup: BeautifulSoup,
    request_url: str,
    response_url: Optional[str] = None,
) -> DocumentMetadata:
    """
    Collect title, description, language and canonical/base URLs.

    The reported ``url`` prefers the canonical URL, then the response URL,
    then the request URL, all without fragments.
    """
    normalized_request = normalize_document_url(request_url) or request_url
    normalized_response = normalize_document_url(response_url)
    fallback = normalized_response or normalized_request

    base_url = resolve_url(_attribute(soup, "base[href]", "href"), fallback)
    canonical = resolve_url(_first_attribute(soup, CANONICAL_SOURCES), base_url or fallback)

    title = _text(soup, "title") or _first_attribute(soup, TITLE_META_SOURCES) or _text(soup, "h1")

    return DocumentMetadata(
        url=canonical or normalized_response or normalized_request,
        title=title,
        description=_first_attribute(soup, DESCRIPTION_SOURCES),
        lang=_document_lang(soup),
        canonical=canonical,
        base_url=base_url,
    )


class DefaultHtmlToMarkdownConverter:
    """
    Converter used when the caller does not inject its own.

    Parses the document with BeautifulSoup, strips configured selectors,
    makes links and images absolute, optionally narrows the document to
    its main content, renders it with html2text and prepends optional
    YAML front matter.

    Example:
        converter = DefaultHtmlToMarkdownConverter(ConverterConfig(mode="content"))
        markdown = converter.convert(html, MarkdownTransformContext(request_url=url))
    """

    name = "web-markdown"
    version = __version__

    def __init__(
        self,
        config: Optional[ConverterConfig] = None,
        rewrite_link: Optional[UrlRewriter] = None,
        rewrite_image: Optional[UrlRewriter] = None,
        renderer: Optional[HtmlToMarkdown] = None,
    ):
        """
        Initialize the converter.

        Args:
            config: Converter options (defaults if None)
            rewrite_link: Optional hook applied to every absolute link
            rewrite_image: Optional hook applied to every absolute image URL
            renderer: Markdown renderer (uses default if None)
        """
        self._config = config or ConverterConfig()
        self._rewrite_link = rewrite_link
        self._rewrite_image = rewrite_image
        self._renderer = renderer or HtmlToMarkdown()
        self._extractor = MainContentExtractor(min_text_length=self._config.content_min_text_length)
        self._frontmatter_builder = FrontmatterBuilder()

    @property
    def config(self) -> ConverterConfig:
        return self._config

    def _strip_selectors(self) -> list[str]:
        selectors = list(self._config.strip_selectors)
        if self._config.mode == ConverterMode.CONTENT:
            selectors.extend(CONTENT_MODE_STRIP_SELECTORS)
        return selectors

    def _apply_strip_selectors(self, soup: BeautifulSoup) -> None:
        for selector in self._strip_selectors():
            for node in soup.select(selector):
                node.extract()

    def _rewrite_urls(
        self,
        soup: BeautifulSoup,
        context: MarkdownTransformContext,
        metadata: DocumentMetadata,
    ) -> None:
        base = metadata.base_url or metadata.canonical or context.response_url or context.request_url

        def rewrite_context(kind: str, tag: str) -> UrlRewriteContext:
            return UrlRewriteContext(
                kind=kind,
                request_url=context.request_url,
                element_tag=tag,
                response_url=context.response_url,
                base_url=metadata.base_url,
                canonical_url=metadata.canonical,
            )

        targets = [
            ("a[href]", "href", "link", self._rewrite_link),
            ("img[src]", "src", "image", self._rewrite_image),
        ]
        for selector, attribute, kind, hook in targets:
            for element in soup.select(selector):
                original = element.get(attribute)
                if not original or should_skip_rewrite(original):
                    continue

                candidate = resolve_url(original, base) or original
                if hook is not None:
                    candidate = hook(candidate, rewrite_context(kind, element.name))
                element[attribute] = candidate

    def _markdown_html(self, soup: BeautifulSoup) -> str:
        if self._config.mode == ConverterMode.CONTENT:
            root = self._extractor.extract(soup)
            return root.decode_contents()

        if soup.body is not None:
            return soup.body.decode_contents()
        return soup.decode_contents()

    def convert(self, html: str, context: MarkdownTransformContext) -> str:
        """
        Convert an HTML document to Markdown.

        Args:
            html: Decoded HTML document
            context: Request/response context

        Returns:
            Markdown ending with a single newline
        """
        soup = BeautifulSoup(html, "html.parser")
        metadata = gather_metadata(soup, context.request_url, context.response_url)

        self._apply_strip_selectors(soup)
        self._rewrite_urls(soup, context, metadata)

        markdown_body = self._renderer.render(self._markdown_html(soup), metadata.url or "")
        logger.debug(f"Rendered {len(markdown_body)} chars of Markdown for {context.request_url}")

        if not self._config.add_front_matter:
            return normalize_markdown(markdown_body)

        front_matter = self._frontmatter_builder.build(
            metadata.as_front_matter(),
            fields=self._config.front_matter_fields,
        )
        return normalize_markdown(f"{front_matter}{markdown_body}")


def create_default_converter(config: Optional[ConverterConfig] = None, **kwargs) -> DefaultHtmlToMarkdownConverter:
    return DefaultHtmlToMarkdownConverter(config, **kwargs)
