"""Observation records emitted by the transform pipeline."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class FallbackReason(str, Enum):
    """Why an exchange was not transformed."""

    NOT_ACCEPTABLE = "not-acceptable"
    STREAMED_UNSUPPORTED = "streamed-unsupported"
    STATUS = "status"
    NOT_HTML = "not-html"
    NO_BODY = "no-body"
    TOO_LARGE = "too-large"
    CONVERTER_ERROR = "converter-error"


@dataclass
class TransformObservation:
    """
    Outcome of a single pipeline invocation.

    Handed to the policy's observation callback exactly once per exchange.

    Attributes:
        transformed: True if the body was replaced with Markdown
        reason: Why the exchange fell back (None when transformed)
        duration_ms: Time from pipeline entry to the terminal branch
        html_bytes: HTML bytes read from the upstream body
        markdown_bytes: UTF-8 size of the Markdown produced
        status: Final status code sent to the client
    """

    transformed: bool
    status: int
    reason: Optional[FallbackReason] = None
    duration_ms: float = 0.0
    html_bytes: int = 0
    markdown_bytes: int = 0

    @property
    def rejected(self) -> bool:
        return self.status == 406 and self.reason == FallbackReason.TOO_LARGE

    def to_dict(self) -> dict:
        return {
            "transformed": self.transformed,
            "reason": self.reason.value if self.reason else None,
            "duration_ms": round(self.duration_ms, 3),
            "html_bytes": self.html_bytes,
            "markdown_bytes": self.markdown_bytes,
            "status": self.status,
        }


@dataclass
class TransformStats:
    """
    Running totals over many observations.

    Can be passed directly as the observation callback:

        stats = TransformStats()
        policy = TransformPolicy(converter=converter, on_observation=stats.record)
    """

    transformed: int = 0
    passthrough: int = 0
    rejected: int = 0
    html_bytes: int = 0
    markdown_bytes: int = 0
    total_duration_ms: float = 0.0
    reasons: dict[str, int] = field(default_factory=dict)

    def record(self, observation: TransformObservation) -> None:
        if observation.transformed:
            self.transformed += 1
        elif observation.rejected:
            self.rejected += 1
        else:
            self.passthrough += 1

        if observation.reason is not None:
            key = observation.reason.value
            self.reasons[key] = self.reasons.get(key, 0) + 1

        self.html_bytes += observation.html_bytes
        self.markdown_bytes += observation.markdown_bytes
        self.total_duration_ms += observation.duration_ms

    @property
    def total(self) -> int:
        return self.transformed + self.passthrough + self.rejected

    @property
    def transform_rate(self) -> float:
        """Share of exchanges that were transformed, as a percentage."""
        if self.total == 0:
            return 0.0
        return (self.transformed / self.total) * 100

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "transformed": self.transformed,
            "passthrough": self.passthrough,
            "rejected": self.rejected,
            "reasons": dict(self.reasons),
            "html_bytes": self.html_bytes,
            "markdown_bytes": self.markdown_bytes,
            "total_duration_ms": round(self.total_duration_ms, 2),
            "transform_rate": round(self.transform_rate, 1),
        }
