"""Size-bounded body reading and charset decoding."""

from __future__ import annotations

import codecs
import logging
import re
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Optional

from .protocols import ByteStream

logger = logging.getLogger(__name__)

CHARSET_PATTERN = re.compile(r"charset=([^;\s]+)", re.IGNORECASE)


@dataclass
class BodyReadResult:
    """
    Outcome of a bounded body read.

    Attributes:
        overflow: True if the body exceeded the byte ceiling
        text: Decoded body ("" on overflow)
        bytes_read: Bytes observed, including the chunk that crossed the ceiling
        chunks: Raw chunks consumed from the stream, in order
    """

    overflow: bool
    text: str
    bytes_read: int
    chunks: list[bytes] = field(default_factory=list)

    @property
    def content(self) -> bytes:
        return b"".join(self.chunks)


def extract_charset(content_type: Optional[str]) -> Optional[str]:
    """
    Pull the charset parameter out of a Content-Type value.

    Args:
        content_type: Content-Type header value

    Returns:
        Charset label without quotes, or None
    """
    if not content_type:
        return None

    match = CHARSET_PATTERN.search(content_type)
    if not match:
        return None

    charset = match.group(1).strip().strip("\"'")
    return charset or None


def decode_body(data: bytes, content_type: Optional[str]) -> str:
    """
    Decode body bytes using the declared charset, falling back to UTF-8.

    Never raises: unknown labels fall back to UTF-8 and undecodable
    sequences are replaced.
    """
    encoding = "utf-8"
    charset = extract_charset(content_type)
    if charset:
        try:
            info = codecs.lookup(charset)
        except LookupError:
            logger.debug(f"Unknown charset {charset!r}, decoding as utf-8")
        else:
            # base64, rot13 and friends resolve but are not text encodings
            if getattr(info, "_is_text_encoding", True):
                encoding = info.name
            else:
                logger.debug(f"Charset {charset!r} is not a text encoding, decoding as utf-8")

    try:
        return data.decode(encoding, errors="replace")
    except (LookupError, UnicodeError):
        # idna and punycode reject errors="replace"
        logger.debug(f"Cannot decode with {encoding!r}, decoding as utf-8")
        return data.decode("utf-8", errors="replace")


async def _close_stream(stream: ByteStream) -> None:
    aclose = getattr(stream, "aclose", None)
    if aclose is not None:
        await aclose()


async def read_with_limit(
    stream: Optional[ByteStream],
    max_bytes: int,
    content_type: Optional[str],
    *,
    close_on_overflow: bool = True,
) -> BodyReadResult:
    """
    Read a byte stream, giving up as soon as it grows past ``max_bytes``.

    At most ``max_bytes`` plus one chunk is ever held in memory. On
    overflow the stream is no longer pulled from; it is closed unless
    ``close_on_overflow`` is False, in which case the caller keeps the
    unread remainder (see ``replay_body``).

    Args:
        stream: Async iterable of byte chunks, or None for no body
        max_bytes: Byte ceiling
        content_type: Declared Content-Type, used for the charset
        close_on_overflow: Close the stream after an overflow

    Returns:
        BodyReadResult describing the read
    """
    if stream is None:
        return BodyReadResult(overflow=False, text="", bytes_read=0)

    chunks: list[bytes] = []
    total = 0

    try:
        async for chunk in stream:
            if not chunk:
                continue

            total += len(chunk)
            chunks.append(chunk)

            if total > max_bytes:
                logger.debug(f"Body exceeded {max_bytes} bytes after reading {total}")
                if close_on_overflow:
                    await _close_stream(stream)
                return BodyReadResult(overflow=True, text="", bytes_read=total, chunks=chunks)
    except BaseException:
        await _close_stream(stream)
        raise

    return BodyReadResult(
        overflow=False,
        text=decode_body(b"".join(chunks), content_type),
        bytes_read=total,
        chunks=chunks,
    )


async def replay_body(chunks: list[bytes], remainder: Optional[ByteStream] = None) -> AsyncIterator[bytes]:
    """
    Yield already-consumed chunks, then whatever is left in ``remainder``.

    Used to pass a partially read body through unchanged.
    """
    for chunk in chunks:
        yield chunk

    if remainder is not None:
        async for chunk in remainder:
            yield chunk
