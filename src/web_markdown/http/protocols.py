"""Framework-neutral request/response model handed to the transform pipeline."""

from __future__ import annotations

from collections.abc import AsyncIterable, AsyncIterator
from dataclasses import dataclass, field
from typing import Optional

from .headers import HeaderMultimap, HeaderSource

# Body streams yield raw byte chunks in whatever sizes the transport provides
ByteStream = AsyncIterable[bytes]


async def iter_bytes(*chunks: bytes) -> AsyncIterator[bytes]:
    """Expose in-memory chunks as a byte stream."""
    for chunk in chunks:
        yield chunk


@dataclass(frozen=True)
class ExchangeRequest:
    """
    Immutable inbound request as seen by the pipeline.

    Attributes:
        method: HTTP method (GET, HEAD, ...)
        url: Absolute request URL
        headers: Request headers
    """

    method: str
    url: str
    headers: HeaderMultimap = field(default_factory=HeaderMultimap)

    @classmethod
    def create(cls, url: str, headers: HeaderSource = None, method: str = "GET") -> ExchangeRequest:
        return cls(method=method.upper(), url=url, headers=HeaderMultimap(headers))


@dataclass
class ExchangeResponse:
    """
    Upstream (or transformed) response.

    Attributes:
        status: HTTP status code
        headers: Response headers
        body: Unconsumed byte stream, or None when the response has no body
        status_text: Reason phrase ("" when the upstream did not set one)
        url: Final response URL after redirects, when known
        body_used: True once the body has been read or started streaming
            elsewhere; such a body must never be re-read
    """

    status: int
    headers: HeaderMultimap = field(default_factory=HeaderMultimap)
    body: Optional[ByteStream] = None
    status_text: str = ""
    url: Optional[str] = None
    body_used: bool = False

    @classmethod
    def from_bytes(
        cls,
        content: bytes | str | None,
        status: int = 200,
        headers: HeaderSource = None,
        status_text: str = "",
        url: Optional[str] = None,
    ) -> ExchangeResponse:
        """Build a response around an in-memory body."""
        if isinstance(content, str):
            content = content.encode("utf-8")
        body = iter_bytes(content) if content is not None else None
        return cls(
            status=status,
            headers=HeaderMultimap(headers),
            body=body,
            status_text=status_text,
            url=url,
        )

    async def read(self) -> bytes:
        """
        Drain the body into memory.

        Returns:
            The full body (empty bytes when there is none)

        Raises:
            RuntimeError: If the body was already consumed
        """
        if self.body_used:
            raise RuntimeError("Response body already consumed")
        self.body_used = True
        if self.body is None:
            return b""

        parts = [chunk async for chunk in self.body]
        return b"".join(parts)

    async def text(self, encoding: str = "utf-8") -> str:
        data = await self.read()
        return data.decode(encoding, errors="replace")
