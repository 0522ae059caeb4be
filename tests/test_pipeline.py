"""Tests for the transform pipeline and its steps."""

from unittest.mock import MagicMock

import pytest
from web_markdown.http.protocols import ExchangeRequest, ExchangeResponse
from web_markdown.models import FallbackReason, OversizeBehavior, TransformPolicy
from web_markdown.negotiation import merge_vary
from web_markdown.pipeline import (
    CONVERTER_HEADER,
    TRANSFORMED_HEADER,
    ExchangeContext,
    TransformPipeline,
    transform_response,
)
from web_markdown.pipeline.steps import ConvertStep, NegotiateStep, ReadBodyStep

HTML = b"<html><body><h1>Hi</h1></body></html>"


class StaticConverter:
    """Converter returning a fixed Markdown string."""

    name = "static"
    version = "9.9.9"

    def __init__(self, markdown="# Hi\n"):
        self.markdown = markdown
        self.calls = []

    def convert(self, html, context):
        self.calls.append((html, context))
        return self.markdown


class AsyncConverter:
    """Converter with a coroutine convert method."""

    async def convert(self, html, context):
        return "async markdown\n"


class FailingConverter:
    """Converter that always raises."""

    version = "0.0.1"

    def convert(self, html, context):
        raise ValueError("boom")


def make_policy(converter=None, **kwargs):
    observations = []
    policy = TransformPolicy(
        converter=converter or StaticConverter(),
        on_observation=observations.append,
        **kwargs,
    )
    return policy, observations


def markdown_request(accept="text/markdown"):
    return ExchangeRequest.create("https://example.com/page", {"Accept": accept})


def html_response(body=HTML, status=200, headers=None):
    return ExchangeResponse.from_bytes(
        body,
        status=status,
        headers=headers if headers is not None else {"Content-Type": "text/html; charset=utf-8"},
        status_text="OK",
    )


class TestScenarios:
    """End-to-end scenarios through the default steps."""

    @pytest.mark.asyncio
    async def test_transformed(self):
        """Scenario A: Markdown requested, HTML returned."""
        policy, observations = make_policy(debug_headers=True)
        upstream = html_response(
            headers={
                "Content-Type": "text/html",
                "Content-Length": str(len(HTML)),
                "ETag": '"abc"',
                "Content-Encoding": "identity",
                "Cache-Control": "max-age=60",
            }
        )

        result = await TransformPipeline(policy).transform(markdown_request(), upstream)

        assert result.status == 200
        assert result.status_text == "OK"
        assert result.headers.get("Content-Type") == "text/markdown; charset=utf-8"
        assert result.headers.get("Vary") == "Accept"
        assert result.headers.get(TRANSFORMED_HEADER) == "1"
        assert result.headers.get(CONVERTER_HEADER) == "9.9.9"
        assert result.headers.get("Cache-Control") == "max-age=60"
        for name in ("Content-Length", "ETag", "Content-Encoding"):
            assert name not in result.headers
        assert await result.text() == "# Hi\n"

        assert len(observations) == 1
        observation = observations[0]
        assert observation.transformed is True
        assert observation.reason is None
        assert observation.html_bytes == len(HTML)
        assert observation.markdown_bytes == len(b"# Hi\n")
        assert observation.status == 200
        assert observation.duration_ms >= 0

    @pytest.mark.asyncio
    async def test_not_acceptable_passthrough(self):
        """Scenario B: browser Accept header leaves the response alone."""
        policy, observations = make_policy(debug_headers=True)

        result = await TransformPipeline(policy).transform(
            markdown_request("text/html,*/*"),
            html_response(headers={"Content-Type": "text/html", "Vary": "Accept-Encoding"}),
        )

        assert result.status == 200
        assert result.headers.get("Content-Type") == "text/html"
        assert result.headers.get("Vary") == "Accept-Encoding, Accept"
        assert result.headers.get(TRANSFORMED_HEADER) == "0"
        assert CONVERTER_HEADER not in result.headers
        assert await result.read() == HTML
        assert observations[0].reason == FallbackReason.NOT_ACCEPTABLE
        assert observations[0].transformed is False

    @pytest.mark.asyncio
    async def test_redirect_passthrough(self):
        """Scenario C: redirects keep their status and Location."""
        policy, observations = make_policy()
        upstream = html_response(
            body=b"",
            status=302,
            headers={"Content-Type": "text/html", "Location": "/elsewhere"},
        )

        result = await TransformPipeline(policy).transform(markdown_request(), upstream)

        assert result.status == 302
        assert result.headers.get("Location") == "/elsewhere"
        assert observations[0].reason == FallbackReason.STATUS

    @pytest.mark.asyncio
    async def test_oversize_rejected(self):
        """Scenario D: oversized HTML with not-acceptable behaviour."""
        policy, observations = make_policy(
            max_html_bytes=10,
            oversize_behavior=OversizeBehavior.NOT_ACCEPTABLE,
        )
        upstream = html_response(headers={"Content-Type": "text/html", "Content-Length": str(len(HTML))})

        result = await TransformPipeline(policy).transform(markdown_request(), upstream)

        assert result.status == 406
        assert result.status_text == "Not Acceptable"
        assert result.headers.get("Content-Type") == "text/plain; charset=utf-8"
        assert "Content-Length" not in result.headers
        assert result.headers.get("Vary") == "Accept"
        assert await result.text() == "Not Acceptable: HTML exceeds maxHtmlBytes"

        observation = observations[0]
        assert observation.status == 406
        assert observation.reason == FallbackReason.TOO_LARGE
        assert observation.rejected is True
        assert observation.html_bytes == len(HTML)

    @pytest.mark.asyncio
    async def test_converter_error_passthrough(self):
        """Scenario E: a failing converter never fails the exchange."""
        policy, observations = make_policy(FailingConverter(), debug_headers=True)

        result = await TransformPipeline(policy).transform(markdown_request(), html_response())

        assert result.status == 200
        assert result.headers.get("Content-Type") == "text/html; charset=utf-8"
        assert result.headers.get(TRANSFORMED_HEADER) == "0"
        assert await result.read() == HTML
        assert observations[0].reason == FallbackReason.CONVERTER_ERROR
        assert observations[0].html_bytes == len(HTML)


class TestPassthroughBranches:
    """Tests for the remaining passthrough branches."""

    @pytest.mark.asyncio
    async def test_oversize_passthrough_replays_full_body(self):
        """Test that a too-large body passes through bit-identical."""
        body = b"<html><body>" + b"x" * 5000 + b"</body></html>"
        chunks = [body[i : i + 100] for i in range(0, len(body), 100)]

        async def stream():
            for chunk in chunks:
                yield chunk

        policy, observations = make_policy(max_html_bytes=1000)
        upstream = ExchangeResponse(status=200, headers=html_response().headers, body=stream())

        result = await TransformPipeline(policy).transform(markdown_request(), upstream)

        assert result.status == 200
        assert await result.read() == body
        assert observations[0].reason == FallbackReason.TOO_LARGE
        assert observations[0].rejected is False
        assert observations[0].html_bytes == 1100

    @pytest.mark.asyncio
    async def test_body_already_used(self):
        """Test that a consumed body is never read."""
        converter = StaticConverter()
        policy, observations = make_policy(converter)
        upstream = ExchangeResponse(status=200, headers=html_response().headers, body_used=True)

        result = await TransformPipeline(policy).transform(markdown_request(), upstream)

        assert result.body_used is True
        assert converter.calls == []
        assert observations[0].reason == FallbackReason.STREAMED_UNSUPPORTED

    @pytest.mark.asyncio
    async def test_non_html_content_type(self):
        """Test that declared non-HTML types pass through."""
        policy, observations = make_policy()
        upstream = html_response(body=b'{"a": 1}', headers={"Content-Type": "application/json"})

        result = await TransformPipeline(policy).transform(markdown_request(), upstream)

        assert await result.read() == b'{"a": 1}'
        assert observations[0].reason == FallbackReason.NOT_HTML
        assert observations[0].html_bytes == 0

    @pytest.mark.asyncio
    async def test_no_body(self):
        """Test a response without a body."""
        policy, observations = make_policy()
        upstream = ExchangeResponse(status=204, headers=html_response().headers)

        result = await TransformPipeline(policy).transform(markdown_request(), upstream)

        assert result.status == 204
        assert observations[0].reason == FallbackReason.NO_BODY

    @pytest.mark.asyncio
    async def test_sniffs_missing_content_type(self):
        """Test that undeclared HTML is detected by its prefix."""
        policy, observations = make_policy()

        result = await TransformPipeline(policy).transform(markdown_request(), html_response(headers={}))

        assert result.headers.get("Content-Type") == "text/markdown; charset=utf-8"
        assert observations[0].transformed is True

    @pytest.mark.asyncio
    async def test_sniff_rejects_non_html(self):
        """Test that undeclared non-HTML passes through unchanged."""
        policy, observations = make_policy()

        result = await TransformPipeline(policy).transform(
            markdown_request(), html_response(body=b"just text", headers={})
        )

        assert await result.read() == b"just text"
        assert observations[0].reason == FallbackReason.NOT_HTML

    @pytest.mark.asyncio
    async def test_vary_wildcard_preserved(self):
        """Test that Vary: * stays a wildcard."""
        policy, _ = make_policy()

        result = await TransformPipeline(policy).transform(
            markdown_request("text/html"),
            html_response(headers={"Content-Type": "text/html", "Vary": "*"}),
        )

        assert result.headers.get_all("Vary") == ["*"]

    @pytest.mark.asyncio
    async def test_no_debug_headers_by_default(self):
        """Test that debug headers are opt-in."""
        policy, _ = make_policy()

        result = await TransformPipeline(policy).transform(markdown_request(), html_response())

        assert TRANSFORMED_HEADER not in result.headers
        assert CONVERTER_HEADER not in result.headers


class TestConverterHandling:
    """Tests for converter invocation."""

    @pytest.mark.asyncio
    async def test_async_converter(self):
        """Test that awaitable results are accepted."""
        policy, observations = make_policy(AsyncConverter(), debug_headers=True)

        result = await transform_response(markdown_request(), html_response(), policy)

        assert await result.text() == "async markdown\n"
        assert result.headers.get(CONVERTER_HEADER) == "unknown"
        assert observations[0].transformed is True

    @pytest.mark.asyncio
    async def test_converter_receives_context(self):
        """Test the decoded HTML and context handed to the converter."""
        converter = StaticConverter()
        policy, _ = make_policy(converter)
        upstream = html_response(body="<html><body>café</body></html>".encode("iso-8859-1"))
        upstream.headers.set("Content-Type", "text/html; charset=iso-8859-1")
        upstream.url = "https://example.com/final"

        await TransformPipeline(policy).transform(markdown_request(), upstream)

        html, context = converter.calls[0]
        assert html == "<html><body>café</body></html>"
        assert context.request_url == "https://example.com/page"
        assert context.response_url == "https://example.com/final"
        assert context.request_headers.get("Accept") == "text/markdown"

    @pytest.mark.asyncio
    async def test_idna_charset_is_converted(self):
        """Test that a charset label the codec cannot replace with still converts."""
        converter = StaticConverter()
        policy, observations = make_policy(converter)
        upstream = html_response(headers={"Content-Type": "text/html; charset=idna"})

        result = await TransformPipeline(policy).transform(markdown_request(), upstream)

        assert await result.text() == "# Hi\n"
        assert converter.calls[0][0] == HTML.decode("utf-8")
        assert observations[0].transformed is True

    @pytest.mark.asyncio
    async def test_duration_covers_header_merge(self, monkeypatch):
        """Test that duration_ms is measured from pipeline entry."""
        clock = {"now": 1000.0}

        def advancing_merge_vary(existing, name):
            clock["now"] += 50.0
            return merge_vary(existing, name)

        class SlowConverter(StaticConverter):
            def convert(self, html, context):
                clock["now"] += 20.0
                return super().convert(html, context)

        monkeypatch.setattr("web_markdown.pipeline.base.now_ms", lambda: clock["now"])
        monkeypatch.setattr("web_markdown.pipeline.base.merge_vary", advancing_merge_vary)
        policy, observations = make_policy(SlowConverter())

        await TransformPipeline(policy).transform(markdown_request(), html_response())

        assert observations[0].duration_ms == 70.0

    @pytest.mark.asyncio
    async def test_non_string_result_is_converter_error(self):
        """Test that a converter returning a non-string falls back."""
        policy, observations = make_policy(StaticConverter(markdown=None))

        result = await TransformPipeline(policy).transform(markdown_request(), html_response())

        assert await result.read() == HTML
        assert observations[0].reason == FallbackReason.CONVERTER_ERROR


class TestSteps:
    """Tests for individual steps and pipeline composition."""

    @pytest.mark.asyncio
    async def test_negotiate_step_order(self):
        """Test that not-acceptable is decided before anything else."""
        policy, _ = make_policy()
        ctx = ExchangeContext(
            request=markdown_request("text/html"),
            response=ExchangeResponse(status=302, body_used=True),
            policy=policy,
            headers=html_response().headers,
        )

        ctx = await NegotiateStep().execute(ctx)

        assert ctx.fallback == FallbackReason.NOT_ACCEPTABLE
        assert ctx.done is True

    @pytest.mark.asyncio
    async def test_read_body_step_populates_html(self):
        """Test the decoded HTML and byte count."""
        policy, _ = make_policy()
        ctx = ExchangeContext(
            request=markdown_request(),
            response=html_response(),
            policy=policy,
            headers=html_response().headers,
        )

        ctx = await ReadBodyStep().execute(ctx)

        assert ctx.html == HTML.decode()
        assert ctx.html_bytes == len(HTML)
        assert ctx.done is False

    @pytest.mark.asyncio
    async def test_convert_step_without_html(self):
        """Test that converting nothing is a no-body passthrough."""
        policy, _ = make_policy()
        ctx = ExchangeContext(
            request=markdown_request(),
            response=ExchangeResponse(status=200),
            policy=policy,
            headers=html_response().headers,
        )

        ctx = await ConvertStep().execute(ctx)

        assert ctx.fallback == FallbackReason.NO_BODY

    @pytest.mark.asyncio
    async def test_custom_steps(self):
        """Test a pipeline with an injected step."""
        step = MagicMock()
        step.name = "stop"

        async def execute(ctx):
            return ctx.pass_through(FallbackReason.STATUS)

        step.execute = execute
        policy, observations = make_policy()

        pipeline = TransformPipeline(policy, steps=[step])
        result = await pipeline.transform(markdown_request(), html_response())

        assert result.status == 200
        assert observations[0].reason == FallbackReason.STATUS

    @pytest.mark.asyncio
    async def test_steps_without_terminal_outcome(self):
        """Test that a pipeline always terminates with one observation."""
        policy, observations = make_policy()
        pipeline = TransformPipeline(policy, steps=[NegotiateStep(), ReadBodyStep()])

        result = await pipeline.transform(markdown_request(), html_response())

        assert await result.read() == HTML
        assert len(observations) == 1
        assert observations[0].transformed is False

    def test_default_steps(self):
        """Test the default step order."""
        policy, _ = make_policy()

        pipeline = TransformPipeline(policy)

        assert [step.name for step in pipeline.steps] == ["negotiate", "read_body", "convert"]
