"""NegotiateStep - decides whether an exchange may be transformed at all."""

import logging

from ...models.events import FallbackReason
from ...negotiation import is_html_content_type, is_redirect_status, request_accepts_markdown
from ..base import ExchangeContext

logger = logging.getLogger(__name__)


class NegotiateStep:
    """
    Pipeline step that gates the exchange before any body is read.

    Passes the exchange through when:
        - the Accept header does not explicitly ask for Markdown
        - the upstream body was already consumed or is streaming
        - the status is a redirect
        - a non-HTML Content-Type is declared
        - the response has no body

    A missing Content-Type is not decided here; the body is sniffed
    after it has been read.
    """

    name = "negotiate"

    async def execute(self, ctx: ExchangeContext) -> ExchangeContext:
        response = ctx.response

        if not request_accepts_markdown(ctx.request.headers):
            return ctx.pass_through(FallbackReason.NOT_ACCEPTABLE)

        if response.body_used:
            return ctx.pass_through(FallbackReason.STREAMED_UNSUPPORTED)

        if is_redirect_status(response.status):
            return ctx.pass_through(FallbackReason.STATUS)

        content_type = response.headers.get("Content-Type")
        if content_type and not is_html_content_type(content_type):
            return ctx.pass_through(FallbackReason.NOT_HTML)

        if response.body is None:
            return ctx.pass_through(FallbackReason.NO_BODY)

        return ctx
