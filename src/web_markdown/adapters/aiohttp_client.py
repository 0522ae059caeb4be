"""Fetch a URL with aiohttp and run the response through the pipeline."""

from __future__ import annotations

import logging
from typing import Optional

import aiohttp

from ..http.body import read_with_limit
from ..http.headers import HeaderMultimap, HeaderSource
from ..http.protocols import ExchangeRequest, ExchangeResponse
from ..models.config import TransformPolicy
from ..pipeline.base import TransformPipeline

logger = logging.getLogger(__name__)

DEFAULT_ACCEPT = "text/markdown, text/html;q=0.9, */*;q=0.1"
DEFAULT_USER_AGENT = "web-markdown (+https://pypi.org/project/web-markdown/)"
CHUNK_SIZE = 8192

# aiohttp decodes the transfer encoding, so these no longer describe the body
DECODED_BODY_HEADERS = ("Content-Encoding", "Content-Length")


async def fetch_markdown(
    session: aiohttp.ClientSession,
    url: str,
    policy: TransformPolicy,
    *,
    headers: HeaderSource = None,
    accept: str = DEFAULT_ACCEPT,
    timeout: float = 30.0,
    pipeline: Optional[TransformPipeline] = None,
    max_passthrough_bytes: Optional[int] = None,
) -> ExchangeResponse:
    """
    GET ``url`` asking for Markdown and transform the HTML answer.

    The body is streamed into the pipeline chunk by chunk, so an oversized
    page is never buffered beyond the policy's byte ceiling plus one chunk
    when the policy rejects it. A passed through body is kept only up to
    ``max_passthrough_bytes``; a larger one is discarded unread and the
    returned response has no body (``body_used`` set).

    Args:
        session: Open aiohttp session
        url: URL to fetch
        policy: Transform policy
        headers: Extra request headers
        accept: Accept header sent upstream
        timeout: Total request timeout in seconds
        pipeline: Pipeline to use (built from ``policy`` if None)
        max_passthrough_bytes: Ceiling for passed through bodies (the
            policy's ``max_html_bytes`` if None)

    Returns:
        The transformed (or passed through) response, body in memory

    Raises:
        aiohttp.ClientError: On network errors
        asyncio.TimeoutError: When the request times out
    """
    request_headers = HeaderMultimap(headers)
    request_headers.set("Accept", accept)
    if "User-Agent" not in request_headers:
        request_headers.set("User-Agent", DEFAULT_USER_AGENT)

    request = ExchangeRequest(method="GET", url=url, headers=request_headers)
    pipeline = pipeline or TransformPipeline(policy)

    async with session.get(
        url,
        headers=request_headers.to_multidict(),
        timeout=aiohttp.ClientTimeout(total=timeout),
        allow_redirects=True,
    ) as response:
        upstream_headers = HeaderMultimap(response.headers)
        for name in DECODED_BODY_HEADERS:
            upstream_headers.remove(name)

        upstream = ExchangeResponse(
            status=response.status,
            headers=upstream_headers,
            body=response.content.iter_chunked(CHUNK_SIZE),
            status_text=response.reason or "",
            url=str(response.url),
        )

        result = await pipeline.transform(request, upstream)

        if result.body is upstream.body:
            # Passthrough bodies still stream from the open connection
            limit = max_passthrough_bytes or policy.max_html_bytes
            passthrough = await read_with_limit(result.body, limit, None)
            if passthrough.overflow:
                logger.info(f"Discarded passthrough body of {url}: more than {limit} bytes")
                return ExchangeResponse(
                    status=result.status,
                    headers=result.headers,
                    status_text=result.status_text,
                    url=result.url,
                    body_used=True,
                )
            content = passthrough.content
        else:
            content = await result.read()

    logger.debug(f"Fetched {url}: status {result.status}, {len(content)} bytes")
    return ExchangeResponse.from_bytes(
        content,
        status=result.status,
        headers=result.headers,
        status_text=result.status_text,
        url=result.url,
    )
