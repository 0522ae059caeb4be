"""Configuration and observation models for web_markdown."""

from .config import (
    ByteSize,
    ConverterConfig,
    ConverterMode,
    OversizeBehavior,
    TransformConfig,
    TransformPolicy,
    WebMarkdownConfig,
)
from .events import FallbackReason, TransformObservation, TransformStats

__all__ = [
    # Config
    "ByteSize",
    "ConverterConfig",
    "ConverterMode",
    "OversizeBehavior",
    "TransformConfig",
    "TransformPolicy",
    "WebMarkdownConfig",
    # Events
    "FallbackReason",
    "TransformObservation",
    "TransformStats",
]
