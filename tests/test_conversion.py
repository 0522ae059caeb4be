"""Tests for the default converter, Markdown rendering and front matter."""

from bs4 import BeautifulSoup
from web_markdown import __version__
from web_markdown.conversion import (
    DefaultHtmlToMarkdownConverter,
    FrontmatterBuilder,
    HtmlToMarkdown,
    HtmlToMarkdownConverter,
    MarkdownTransformContext,
    gather_metadata,
)
from web_markdown.conversion.urls import normalize_document_url, resolve_url, should_skip_rewrite
from web_markdown.models import ConverterConfig

PAGE_URL = "https://example.com/docs/page"

PROSE = (
    "Markdown is a lightweight markup language for creating formatted text. "
    "It is widely used for documentation because it reads well as plain text "
    "and converts cleanly."
)


def context(url=PAGE_URL, response_url=None):
    return MarkdownTransformContext(request_url=url, response_url=response_url)


class TestUrls:
    """Tests for URL helpers."""

    def test_normalize_drops_fragment(self):
        """Test fragment removal and root path."""
        assert normalize_document_url("https://example.com/a?b=1#top") == "https://example.com/a?b=1"
        assert normalize_document_url("https://example.com") == "https://example.com/"

    def test_normalize_rejects_relative(self):
        """Test that relative or empty URLs are rejected."""
        assert normalize_document_url("/relative") is None
        assert normalize_document_url("") is None
        assert normalize_document_url(None) is None

    def test_resolve_relative(self):
        """Test resolution against a base URL."""
        assert resolve_url("../img/a.png", PAGE_URL) == "https://example.com/img/a.png"
        assert resolve_url("//cdn.example.com/x.js", PAGE_URL) == "https://cdn.example.com/x.js"
        assert resolve_url("#section", PAGE_URL) == "#section"
        assert resolve_url("other", None) is None

    def test_should_skip_rewrite(self):
        """Test schemes that are never rewritten."""
        for url in ("#top", "mailto:a@example.com", "TEL:123", "javascript:void(0)", "data:image/png;base64,AA"):
            assert should_skip_rewrite(url) is True
        assert should_skip_rewrite("/docs") is False


class TestHtmlToMarkdown:
    """Tests for the html2text renderer."""

    def test_renders_headings_and_paragraphs(self):
        """Test ATX headings and paragraphs."""
        markdown = HtmlToMarkdown().render("<h1>Title</h1><p>Body text</p>")

        assert markdown.startswith("# Title")
        assert "Body text" in markdown
        assert not markdown.endswith("\n")

    def test_renders_bullets_with_dash(self):
        """Test the configured bullet marker."""
        markdown = HtmlToMarkdown().render("<ul><li>One</li><li>Two</li></ul>")

        assert "- One" in markdown
        assert "- Two" in markdown

    def test_no_line_wrapping(self):
        """Test that long paragraphs stay on one line."""
        markdown = HtmlToMarkdown().render(f"<p>{PROSE} {PROSE}</p>")

        assert "\n" not in markdown


class TestFrontmatterBuilder:
    """Tests for FrontmatterBuilder."""

    def test_builds_fields_in_order(self):
        """Test field ordering and delimiters."""
        frontmatter = FrontmatterBuilder().build(
            {"url": "https://example.com/", "title": "Hello", "lang": None},
            fields=["title", "url", "lang"],
        )

        assert frontmatter == "---\ntitle: Hello\nurl: https://example.com/\n---\n\n"

    def test_empty_when_no_values(self):
        """Test that no front matter is produced without values."""
        assert FrontmatterBuilder().build({"title": None, "url": ""}) == ""

    def test_quotes_yaml_special_values(self):
        """Test that values needing quotes are quoted."""
        frontmatter = FrontmatterBuilder().build({"title": "Intro: part 1"}, fields=["title"])

        assert "title: 'Intro: part 1'" in frontmatter


class TestGatherMetadata:
    """Tests for metadata collection."""

    def test_prefers_canonical(self):
        """Test canonical, title, description and lang sources."""
        soup = BeautifulSoup(
            '<html lang="en-GB"><head><title> Page Title </title>'
            '<link rel="canonical" href="/canonical#frag">'
            '<meta name="description" content="A description">'
            "</head><body></body></html>",
            "html.parser",
        )

        metadata = gather_metadata(soup, PAGE_URL)

        assert metadata.title == "Page Title"
        assert metadata.canonical == "https://example.com/canonical"
        assert metadata.url == "https://example.com/canonical"
        assert metadata.description == "A description"
        assert metadata.lang == "en-GB"

    def test_fallbacks(self):
        """Test og:title, content-language and the response URL."""
        soup = BeautifulSoup(
            '<html><head><meta property="og:title" content="OG Title">'
            '<meta http-equiv="Content-Language" content="fr, en">'
            "</head><body></body></html>",
            "html.parser",
        )

        metadata = gather_metadata(soup, PAGE_URL, "https://example.com/final#x")

        assert metadata.title == "OG Title"
        assert metadata.lang == "fr"
        assert metadata.canonical is None
        assert metadata.url == "https://example.com/final"

    def test_title_from_h1(self):
        """Test the first heading as a last resort title."""
        soup = BeautifulSoup("<body><h1>Heading</h1></body>", "html.parser")

        assert gather_metadata(soup, PAGE_URL).title == "Heading"


class TestDefaultHtmlToMarkdownConverter:
    """Tests for DefaultHtmlToMarkdownConverter."""

    def test_satisfies_protocol(self):
        """Test the converter protocol and version attributes."""
        converter = DefaultHtmlToMarkdownConverter()

        assert isinstance(converter, HtmlToMarkdownConverter)
        assert converter.name == "web-markdown"
        assert converter.version == __version__

    def test_verbatim_conversion(self):
        """Test a whole-body conversion."""
        html = "<html><head><title>T</title></head><body><h1>Hi</h1><p>There</p></body></html>"

        markdown = DefaultHtmlToMarkdownConverter().convert(html, context())

        assert markdown.startswith("# Hi")
        assert "There" in markdown
        assert "T\n" not in markdown
        assert markdown.endswith("\n")
        assert not markdown.endswith("\n\n")

    def test_links_and_images_become_absolute(self):
        """Test URL rewriting against the request URL."""
        html = '<body><a href="../guide">Guide</a> <img src="img/logo.png" alt="Logo"></body>'

        markdown = DefaultHtmlToMarkdownConverter().convert(html, context())

        assert "[Guide](https://example.com/guide)" in markdown
        assert "![Logo](https://example.com/docs/img/logo.png)" in markdown

    def test_base_href_wins(self):
        """Test that <base href> is the rewrite base."""
        html = '<head><base href="https://static.example.org/root/"></head><body><a href="x">X</a></body>'

        markdown = DefaultHtmlToMarkdownConverter().convert(html, context())

        assert "(https://static.example.org/root/x)" in markdown

    def test_special_urls_untouched(self):
        """Test that mailto links are not rewritten."""
        html = '<body><a href="mailto:team@example.com">Mail</a></body>'

        markdown = DefaultHtmlToMarkdownConverter().convert(html, context())

        assert "mailto:team@example.com" in markdown
        assert "example.com/docs/mailto" not in markdown

    def test_rewrite_hooks(self):
        """Test custom link and image rewriters."""
        seen = []

        def rewrite_link(url, rewrite_context):
            seen.append((rewrite_context.kind, rewrite_context.element_tag))
            return url + "?ref=md"

        converter = DefaultHtmlToMarkdownConverter(rewrite_link=rewrite_link)
        markdown = converter.convert('<body><a href="/a">A</a></body>', context())

        assert "(https://example.com/a?ref=md)" in markdown
        assert seen == [("link", "a")]

    def test_strip_selectors(self):
        """Test configured strip selectors."""
        converter = DefaultHtmlToMarkdownConverter(ConverterConfig(strip_selectors=[".ad"]))

        markdown = converter.convert('<body><p>Keep</p><div class="ad">Buy now</div></body>', context())

        assert "Keep" in markdown
        assert "Buy now" not in markdown

    def test_content_mode(self):
        """Test main content extraction and chrome stripping."""
        html = (
            "<html><body>"
            '<header><a href="/">Home</a></header>'
            '<nav><a href="/a">Menu item</a></nav>'
            f"<main><h1>Guide</h1><p>{PROSE}</p>"
            '<div id="cookie-notice">We use cookies</div></main>'
            "<footer>Copyright</footer>"
            "<script>track()</script>"
            "</body></html>"
        )
        converter = DefaultHtmlToMarkdownConverter(ConverterConfig(mode="content"))

        markdown = converter.convert(html, context())

        assert markdown.startswith("# Guide")
        assert "Markdown is a lightweight" in markdown
        for residue in ("Menu item", "Home", "Copyright", "We use cookies", "track()"):
            assert residue not in markdown

    def test_front_matter(self):
        """Test the YAML front matter block."""
        html = '<html lang="en"><head><title>Hello</title></head><body><p>Text</p></body></html>'
        converter = DefaultHtmlToMarkdownConverter(ConverterConfig(add_front_matter=True))

        markdown = converter.convert(html, context())

        assert markdown.startswith("---\ntitle: Hello\nurl: https://example.com/docs/page\nlang: en\n---\n\n")
        assert markdown.rstrip().endswith("Text")

    def test_front_matter_fields_subset(self):
        """Test restricting front matter fields."""
        converter = DefaultHtmlToMarkdownConverter(
            ConverterConfig(add_front_matter=True, front_matter_fields=["url"])
        )

        markdown = converter.convert("<p>Text</p>", context())

        assert markdown.startswith("---\nurl: https://example.com/docs/page\n---\n\n")
