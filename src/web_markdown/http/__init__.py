"""HTTP exchange model and body handling for web_markdown."""

from .body import BodyReadResult, decode_body, extract_charset, read_with_limit, replay_body
from .headers import HeaderMultimap
from .protocols import ByteStream, ExchangeRequest, ExchangeResponse, iter_bytes

__all__ = [
    "BodyReadResult",
    "ByteStream",
    "ExchangeRequest",
    "ExchangeResponse",
    "HeaderMultimap",
    "decode_body",
    "extract_charset",
    "iter_bytes",
    "read_with_limit",
    "replay_body",
]
