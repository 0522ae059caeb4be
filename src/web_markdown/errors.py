"""Exceptions raised outside the transform pipeline."""


class WebMarkdownError(Exception):
    """Base class for web_markdown errors."""


class FetchError(WebMarkdownError):
    """A URL could not be fetched or did not produce Markdown."""
