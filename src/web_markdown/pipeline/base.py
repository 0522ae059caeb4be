"""Base classes for the transform pipeline."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Optional, Protocol, runtime_checkable

from ..http.headers import HeaderMultimap
from ..http.protocols import ExchangeRequest, ExchangeResponse, iter_bytes
from ..models.config import TransformPolicy
from ..models.events import FallbackReason, TransformObservation
from ..negotiation import NEGOTIATION_HEADER, merge_vary

logger = logging.getLogger(__name__)

TRANSFORMED_HEADER = "X-Markdown-Transformed"
CONVERTER_HEADER = "X-Markdown-Converter"

MARKDOWN_CONTENT_TYPE = "text/markdown; charset=utf-8"
NOT_ACCEPTABLE_CONTENT_TYPE = "text/plain; charset=utf-8"
NOT_ACCEPTABLE_BODY = "Not Acceptable: HTML exceeds maxHtmlBytes"

# Representation headers that no longer describe the Markdown body
STALE_REPRESENTATION_HEADERS = ("Content-Length", "Content-Encoding", "ETag")


def now_ms() -> float:
    return time.perf_counter() * 1000


@dataclass
class ExchangeContext:
    """
    State for a single exchange, accumulated as it moves through the steps.

    Attributes:
        request: Inbound request
        response: Upstream response; steps that consume the body replace
            ``response.body`` with a replay of the original bytes
        policy: Transform policy
        headers: Outgoing headers (upstream headers plus the Vary merge)
        started_at: Pipeline entry time, in milliseconds
        html: Decoded HTML once the body has been read
        html_bytes: Bytes read from the upstream body
        markdown: Converted Markdown (set only when transformed)
        fallback: Terminal fallback reason, if any
        rejected: True when the exchange ends in a 406
    """

    request: ExchangeRequest
    response: ExchangeResponse
    policy: TransformPolicy
    headers: HeaderMultimap
    started_at: float = field(default_factory=now_ms)

    html: Optional[str] = None
    html_bytes: int = 0
    markdown: Optional[str] = None

    fallback: Optional[FallbackReason] = None
    rejected: bool = False

    @property
    def done(self) -> bool:
        return self.fallback is not None or self.markdown is not None

    def pass_through(self, reason: FallbackReason) -> ExchangeContext:
        """Finish the exchange by forwarding the upstream response."""
        self.fallback = reason
        return self

    def reject(self) -> ExchangeContext:
        """Finish the exchange with 406 Not Acceptable (oversized HTML)."""
        self.fallback = FallbackReason.TOO_LARGE
        self.rejected = True
        return self


@runtime_checkable
class TransformStep(Protocol):
    """
    Protocol for pipeline steps.

    Each step receives the ExchangeContext and returns it. A step ends
    the exchange by calling ``ctx.pass_through(reason)``, ``ctx.reject()``
    or by setting ``ctx.markdown``; the remaining steps are then skipped.

    Steps never raise for expected outcomes. Converter failures are
    caught by the convert step and turned into a passthrough.
    """

    name: str

    async def execute(self, ctx: ExchangeContext) -> ExchangeContext:
        """
        Execute this pipeline step.

        Args:
            ctx: The exchange context with accumulated state

        Returns:
            The (possibly modified) context
        """
        ...


@dataclass
class TransformPipeline:
    """
    Runs an exchange through the negotiation, body read and convert steps.

    Every exchange ends in exactly one terminal branch: transformed,
    passthrough (with a FallbackReason) or a 406 rejection. ``Vary``
    always includes ``Accept``, and exactly one TransformObservation is
    reported to the policy's callback.

    Example:
        pipeline = TransformPipeline(policy)
        response = await pipeline.transform(request, upstream_response)
    """

    policy: TransformPolicy
    steps: list[TransformStep] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.steps:
            from .steps import default_steps

            self.steps = default_steps()

    async def transform(
        self,
        request: ExchangeRequest,
        response: ExchangeResponse,
    ) -> ExchangeResponse:
        """
        Transform (or pass through) a single exchange.

        Args:
            request: Inbound request
            response: Upstream response

        Returns:
            The response to send to the client
        """
        started_at = now_ms()
        headers = response.headers.copy()
        headers.set("Vary", merge_vary(headers.get_combined("Vary"), NEGOTIATION_HEADER))

        ctx = ExchangeContext(
            request=request,
            response=response,
            policy=self.policy,
            headers=headers,
            started_at=started_at,
        )

        for step in self.steps:
            if ctx.done:
                break
            ctx = await step.execute(ctx)

        if not ctx.done:
            # A custom step list that never converts still has to terminate
            ctx.pass_through(FallbackReason.CONVERTER_ERROR)

        return self._finalize(ctx)

    def add_step(self, step: TransformStep) -> TransformPipeline:
        """
        Add a step to the pipeline (fluent API).

        Args:
            step: The step to add

        Returns:
            Self for chaining
        """
        self.steps.append(step)
        return self

    def _finalize(self, ctx: ExchangeContext) -> ExchangeResponse:
        if ctx.rejected:
            result = self._not_acceptable(ctx)
        elif ctx.markdown is not None and ctx.fallback is None:
            result = self._transformed(ctx)
        else:
            self._apply_debug_headers(ctx.headers, transformed=False)
            result = ExchangeResponse(
                status=ctx.response.status,
                headers=ctx.headers,
                body=ctx.response.body,
                status_text=ctx.response.status_text,
                url=ctx.response.url,
                body_used=ctx.response.body_used,
            )

        observation = TransformObservation(
            transformed=ctx.fallback is None,
            reason=ctx.fallback,
            duration_ms=max(0.0, now_ms() - ctx.started_at),
            html_bytes=ctx.html_bytes,
            markdown_bytes=len(ctx.markdown.encode("utf-8")) if ctx.fallback is None and ctx.markdown else 0,
            status=result.status,
        )

        if ctx.fallback is None:
            logger.debug(f"Transformed {ctx.request.url} ({observation.html_bytes} -> {observation.markdown_bytes} bytes)")
        else:
            logger.debug(f"Passed through {ctx.request.url}: {ctx.fallback.value} (status {result.status})")

        if self.policy.on_observation is not None:
            self.policy.on_observation(observation)

        return result

    def _transformed(self, ctx: ExchangeContext) -> ExchangeResponse:
        headers = ctx.headers
        headers.set("Content-Type", MARKDOWN_CONTENT_TYPE)
        for name in STALE_REPRESENTATION_HEADERS:
            headers.remove(name)
        self._apply_debug_headers(headers, transformed=True)

        return ExchangeResponse(
            status=ctx.response.status,
            headers=headers,
            body=iter_bytes(ctx.markdown.encode("utf-8")),
            status_text=ctx.response.status_text,
            url=ctx.response.url,
        )

    def _not_acceptable(self, ctx: ExchangeContext) -> ExchangeResponse:
        headers = ctx.headers
        headers.set("Content-Type", NOT_ACCEPTABLE_CONTENT_TYPE)
        headers.remove("Content-Length")
        self._apply_debug_headers(headers, transformed=False)

        return ExchangeResponse(
            status=406,
            headers=headers,
            body=iter_bytes(NOT_ACCEPTABLE_BODY.encode("utf-8")),
            status_text="Not Acceptable",
            url=ctx.response.url,
        )

    def _apply_debug_headers(self, headers: HeaderMultimap, transformed: bool) -> None:
        if not self.policy.debug_headers:
            return

        headers.set(TRANSFORMED_HEADER, "1" if transformed else "0")
        if transformed:
            headers.set(CONVERTER_HEADER, self.policy.converter_version)


async def transform_response(
    request: ExchangeRequest,
    response: ExchangeResponse,
    policy: TransformPolicy,
) -> ExchangeResponse:
    """Run a single exchange through a default pipeline."""
    return await TransformPipeline(policy).transform(request, response)
