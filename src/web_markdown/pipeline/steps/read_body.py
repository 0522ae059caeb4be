"""ReadBodyStep - bounded read of the upstream HTML body."""

import logging

from ...http.body import read_with_limit, replay_body
from ...models.config import OversizeBehavior
from ...models.events import FallbackReason
from ...negotiation import looks_like_html
from ..base import ExchangeContext

logger = logging.getLogger(__name__)


class ReadBodyStep:
    """
    Pipeline step that reads the body up to the policy's byte ceiling.

    Populates:
        ctx.html: Decoded HTML
        ctx.html_bytes: Bytes read

    The upstream body is replaced with a replay of the bytes read (plus
    any unread remainder), so a later passthrough forwards the original
    bytes unchanged.
    """

    name = "read_body"

    async def execute(self, ctx: ExchangeContext) -> ExchangeContext:
        response = ctx.response
        policy = ctx.policy
        content_type = response.headers.get("Content-Type")
        reject = policy.oversize_behavior == OversizeBehavior.NOT_ACCEPTABLE

        result = await read_with_limit(
            response.body,
            policy.max_html_bytes,
            content_type,
            close_on_overflow=reject,
        )
        ctx.html_bytes = result.bytes_read

        if result.overflow:
            logger.info(
                f"HTML for {ctx.request.url} exceeds {policy.max_html_bytes} bytes "
                f"({policy.oversize_behavior.value})"
            )
            if reject:
                return ctx.reject()

            response.body = replay_body(result.chunks, response.body)
            return ctx.pass_through(FallbackReason.TOO_LARGE)

        response.body = replay_body(result.chunks)
        ctx.html = result.text

        if not content_type and not looks_like_html(result.text):
            return ctx.pass_through(FallbackReason.NOT_HTML)

        return ctx
