"""Framework adapters projecting aiohttp objects onto the exchange model."""

from .aiohttp_client import fetch_markdown
from .aiohttp_server import markdown_middleware, request_from_aiohttp, response_from_aiohttp

__all__ = [
    "fetch_markdown",
    "markdown_middleware",
    "request_from_aiohttp",
    "response_from_aiohttp",
]
