"""Pipeline step for HTML to Markdown conversion."""

import inspect
import logging

from ...conversion.protocols import MarkdownTransformContext
from ...models.events import FallbackReason
from ..base import ExchangeContext

logger = logging.getLogger(__name__)


class ConvertStep:
    """
    Pipeline step that hands the HTML to the injected converter.

    Reads ctx.html, writes ctx.markdown. Any exception raised by the
    converter ends the exchange as a passthrough of the original HTML.
    """

    name = "convert"

    async def execute(self, ctx: ExchangeContext) -> ExchangeContext:
        if ctx.html is None:
            return ctx.pass_through(FallbackReason.NO_BODY)

        context = MarkdownTransformContext(
            request_url=ctx.request.url,
            response_url=ctx.response.url or None,
            request_headers=ctx.request.headers,
            response_headers=ctx.response.headers,
        )

        try:
            markdown = ctx.policy.converter.convert(ctx.html, context)
            if inspect.isawaitable(markdown):
                markdown = await markdown
        except Exception as e:
            logger.warning(f"Conversion failed for {ctx.request.url}: {e}")
            return ctx.pass_through(FallbackReason.CONVERTER_ERROR)

        if not isinstance(markdown, str):
            logger.warning(f"Converter returned {type(markdown).__name__} for {ctx.request.url}, expected str")
            return ctx.pass_through(FallbackReason.CONVERTER_ERROR)

        ctx.markdown = markdown
        return ctx
