"""Content-negotiation transform pipeline."""

from .base import (
    CONVERTER_HEADER,
    TRANSFORMED_HEADER,
    ExchangeContext,
    TransformPipeline,
    TransformStep,
    transform_response,
)

__all__ = [
    "CONVERTER_HEADER",
    "TRANSFORMED_HEADER",
    "ExchangeContext",
    "TransformPipeline",
    "TransformStep",
    "transform_response",
]
