"""HTML to Markdown rendering and front matter."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from typing import Optional

import html2text
import yaml

logger = logging.getLogger(__name__)


class HtmlToMarkdown:
    """
    Renders HTML fragments as Markdown.

    Uses html2text with settings that keep output stable: no line
    wrapping, inline links, ``-`` bullets and ATX headings.

    Example:
        renderer = HtmlToMarkdown()
        markdown = renderer.render("<h1>Hi</h1>", "https://example.com/")
    """

    def __init__(
        self,
        body_width: int = 0,
        inline_links: bool = True,
        wrap_links: bool = False,
        ignore_images: bool = False,
        ignore_tables: bool = False,
        protect_links: bool = False,
        unicode_snob: bool = True,
        escape_snob: bool = False,
        bullet_marker: str = "-",
    ):
        """
        Initialize the Markdown renderer.

        Args:
            body_width: Max line width (0 = no wrapping)
            inline_links: Use inline [text](url) vs reference style
            wrap_links: Wrap long links
            ignore_images: Skip image conversion
            ignore_tables: Skip table conversion
            protect_links: Wrap link targets in angle brackets
            unicode_snob: Use Unicode chars where possible
            escape_snob: Escape every special Markdown char
            bullet_marker: Marker for unordered list items
        """
        self._options = {
            "body_width": body_width,
            "inline_links": inline_links,
            "wrap_links": wrap_links,
            "ignore_images": ignore_images,
            "ignore_tables": ignore_tables,
            "protect_links": protect_links,
            "unicode_snob": unicode_snob,
            "escape_snob": escape_snob,
            "ul_item_mark": bullet_marker,
        }

    def _make_converter(self, base_url: str) -> html2text.HTML2Text:
        # HTML2Text keeps parser state, so each render gets its own instance
        converter = html2text.HTML2Text(baseurl=base_url)
        for name, value in self._options.items():
            setattr(converter, name, value)
        converter.default_image_alt = ""
        converter.single_line_break = False
        return converter

    def _clean_output(self, markdown: str) -> str:
        """Clean up the rendered Markdown."""
        markdown = markdown.replace("\r\n", "\n")

        # Remove trailing whitespace on each line
        markdown = "\n".join(line.rstrip() for line in markdown.split("\n"))

        # Remove excessive blank lines
        markdown = re.sub(r"\n{3,}", "\n\n", markdown)

        return markdown.strip("\n")

    def render(self, html: str, base_url: str = "") -> str:
        """
        Render HTML as Markdown.

        Args:
            html: HTML fragment or document
            base_url: Base for any link html2text has to resolve

        Returns:
            Markdown without trailing newline
        """
        markdown = self._make_converter(base_url).handle(html)
        return self._clean_output(markdown)


def normalize_markdown(markdown: str) -> str:
    """Unix line endings, no trailing whitespace, exactly one final newline."""
    return markdown.replace("\r\n", "\n").rstrip() + "\n"


class FrontmatterBuilder:
    """
    Builds YAML front matter for Markdown output.

    Example:
        builder = FrontmatterBuilder()
        frontmatter = builder.build(
            {"title": "Getting Started", "url": "https://docs.example.com/start"},
            fields=["title", "url"],
        )
    """

    def build(
        self,
        metadata: Mapping[str, Optional[str]],
        fields: Optional[Iterable[str]] = None,
    ) -> str:
        """
        Build a YAML front matter block.

        Args:
            metadata: Available metadata values
            fields: Fields to include, in output order (all keys if None)

        Returns:
            Front matter with ``---`` delimiters, or "" if no field has a value
        """
        ordered = {}
        for name in fields if fields is not None else metadata.keys():
            value = metadata.get(name)
            if not value:
                continue
            ordered[name] = value

        if not ordered:
            return ""

        body = yaml.safe_dump(
            ordered,
            sort_keys=False,
            allow_unicode=True,
            default_flow_style=False,
            width=1_000_000,
        ).rstrip()
        return f"---\n{body}\n---\n\n"
