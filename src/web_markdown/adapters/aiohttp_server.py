"""aiohttp server middleware that serves Markdown to clients that ask for it."""

from __future__ import annotations

import logging
from collections.abc import Awaitable
from typing import Callable

from aiohttp import web
from multidict import CIMultiDict

from ..http.headers import HeaderMultimap
from ..http.protocols import ExchangeRequest, ExchangeResponse, iter_bytes
from ..models.config import TransformPolicy
from ..pipeline.base import TransformPipeline

logger = logging.getLogger(__name__)

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def request_from_aiohttp(request: web.Request) -> ExchangeRequest:
    return ExchangeRequest(
        method=request.method,
        url=str(request.url),
        headers=HeaderMultimap(request.headers),
    )


def response_from_aiohttp(response: web.StreamResponse) -> ExchangeResponse:
    """
    Project an aiohttp response onto the exchange model.

    Only a ``web.Response`` holding an in-memory body can be read.
    Prepared responses, streaming responses, file responses and payload
    bodies are reported as already consumed.
    """
    headers = HeaderMultimap(response.headers)
    status_text = response.reason or ""

    if response.prepared or not isinstance(response, web.Response):
        return ExchangeResponse(status=response.status, headers=headers, status_text=status_text, body_used=True)

    body = response.body
    if body is None:
        return ExchangeResponse(status=response.status, headers=headers, status_text=status_text)
    if not isinstance(body, (bytes, bytearray)):
        return ExchangeResponse(status=response.status, headers=headers, status_text=status_text, body_used=True)

    return ExchangeResponse(
        status=response.status,
        headers=headers,
        body=iter_bytes(bytes(body)),
        status_text=status_text,
    )


def _response_from_http_exception(exc: web.HTTPException) -> web.Response:
    return web.Response(
        status=exc.status,
        reason=exc.reason,
        headers=exc.headers,
        text=exc.text,
    )


async def to_aiohttp_response(result: ExchangeResponse) -> web.Response:
    body = await result.read()
    return web.Response(
        status=result.status,
        reason=result.status_text or None,
        headers=CIMultiDict(result.headers.items()),
        body=body,
    )


def markdown_middleware(policy: TransformPolicy, pipeline: TransformPipeline | None = None):
    """
    Create an aiohttp middleware running every response through the pipeline.

    Example:
        policy = TransformPolicy(converter=DefaultHtmlToMarkdownConverter())
        app = web.Application(middlewares=[markdown_middleware(policy)])

    Args:
        policy: Transform policy
        pipeline: Pipeline to use (built from ``policy`` if None)

    Returns:
        aiohttp middleware
    """
    pipeline = pipeline or TransformPipeline(policy)

    @web.middleware
    async def middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
        try:
            response = await handler(request)
        except web.HTTPException as exc:
            response = _response_from_http_exception(exc)

        upstream = response_from_aiohttp(response)
        result = await pipeline.transform(request_from_aiohttp(request), upstream)

        if result.body_used:
            # Streaming responses keep their body; only headers can still change
            if not response.prepared:
                for name in result.headers.names():
                    response.headers.popall(name, None)
                    for value in result.headers.get_all(name):
                        response.headers.add(name, value)
            return response

        rebuilt = await to_aiohttp_response(result)
        # Cookies live outside the header map until the response is prepared
        rebuilt.cookies.update(response.cookies)
        return rebuilt

    return middleware
