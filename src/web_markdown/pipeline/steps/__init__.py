"""Pipeline steps for the transform pipeline."""

from .convert import ConvertStep
from .negotiate import NegotiateStep
from .read_body import ReadBodyStep


def default_steps() -> list:
    """Steps in the order every exchange runs through them."""
    return [NegotiateStep(), ReadBodyStep(), ConvertStep()]


__all__ = [
    "ConvertStep",
    "NegotiateStep",
    "ReadBodyStep",
    "default_steps",
]
