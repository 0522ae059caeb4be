"""Pydantic configuration models for web_markdown."""

import re
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ..conversion.protocols import HtmlToMarkdownConverter
from .events import TransformObservation

DEFAULT_MAX_HTML_BYTES = 3 * 1024 * 1024
DEFAULT_CONTENT_MIN_TEXT_LENGTH = 140

SIZE_UNITS = {"b": 1, "kb": 1024, "mb": 1024**2, "gb": 1024**3}
SIZE_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([kmg]?b)?\s*$", re.IGNORECASE)

FrontMatterField = Literal["title", "url", "lang", "description", "canonical"]
DEFAULT_FRONT_MATTER_FIELDS: list[FrontMatterField] = ["title", "url", "lang", "description", "canonical"]


class OversizeBehavior(str, Enum):
    """What to do with HTML bodies above the byte ceiling."""

    PASSTHROUGH = "passthrough"
    NOT_ACCEPTABLE = "not-acceptable"


class ConverterMode(str, Enum):
    """Which part of the document the default converter renders."""

    VERBATIM = "verbatim"
    CONTENT = "content"


class ByteSize(int):
    """
    Byte ceiling that may be written as a size string in YAML or on the CLI.

    ``max_html_bytes: 512kb`` and ``--max-html-bytes 3mb`` both end up here.
    Units are binary (``kb`` is 1024 bytes) and case-insensitive; a bare
    number is a byte count.

    Examples:
        >>> ByteSize._parse("64kb")
        65536
        >>> ByteSize._parse("1.5 MB")
        1572864
    """

    @classmethod
    def __get_pydantic_core_schema__(cls, source: Any, handler: Any) -> Any:
        from pydantic_core import core_schema

        return core_schema.no_info_plain_validator_function(cls._parse)

    @classmethod
    def _parse(cls, v: Any) -> int:
        # bool is an int subclass, but "max_html_bytes: true" is a typo
        if isinstance(v, int) and not isinstance(v, bool):
            return v

        match = SIZE_PATTERN.match(v) if isinstance(v, str) else None
        if match is None:
            raise ValueError(f"Invalid byte size: {v!r}. Use a byte count or a size like '512kb' or '3mb'.")

        number, unit = match.groups()
        return int(float(number) * SIZE_UNITS[(unit or "b").lower()])


class ConverterConfig(BaseModel):
    """Configuration for the default HTML to Markdown converter."""

    mode: ConverterMode = Field(
        ConverterMode.VERBATIM,
        description="verbatim renders the whole body, content renders the detected main content",
    )
    add_front_matter: bool = Field(False, description="Prepend a YAML front matter block")
    strip_selectors: list[str] = Field(
        default_factory=list,
        description="CSS selectors removed before rendering",
    )
    content_min_text_length: int = Field(
        DEFAULT_CONTENT_MIN_TEXT_LENGTH,
        ge=1,
        description="Minimum visible text for a main-content candidate",
    )
    front_matter_fields: list[FrontMatterField] = Field(
        default_factory=lambda: list(DEFAULT_FRONT_MATTER_FIELDS),
        description="Front matter fields, in output order",
    )

    model_config = {"extra": "forbid"}


class TransformConfig(BaseModel):
    """Serializable part of the transform policy."""

    max_html_bytes: ByteSize = Field(
        DEFAULT_MAX_HTML_BYTES,
        description="Largest HTML body that will be converted (e.g., '512kb', '3mb')",
    )
    oversize_behavior: OversizeBehavior = Field(
        OversizeBehavior.PASSTHROUGH,
        description="passthrough or not-acceptable (406) for bodies above the ceiling",
    )
    debug_headers: bool = Field(False, description="Emit X-Markdown-* debug headers")

    model_config = {"extra": "forbid"}

    @field_validator("max_html_bytes")
    @classmethod
    def check_max_html_bytes(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("max_html_bytes must be a positive number of bytes")
        return value


class TransformPolicy(BaseModel):
    """
    Immutable policy handed to every pipeline invocation.

    Example:
        policy = TransformPolicy(
            converter=DefaultHtmlToMarkdownConverter(),
            max_html_bytes="1mb",
            oversize_behavior=OversizeBehavior.NOT_ACCEPTABLE,
        )
    """

    converter: HtmlToMarkdownConverter
    max_html_bytes: ByteSize = Field(DEFAULT_MAX_HTML_BYTES)
    oversize_behavior: OversizeBehavior = Field(OversizeBehavior.PASSTHROUGH)
    debug_headers: bool = Field(False)
    on_observation: Optional[Callable[[TransformObservation], None]] = Field(None)

    model_config = {"extra": "forbid", "frozen": True, "arbitrary_types_allowed": True}

    @field_validator("max_html_bytes")
    @classmethod
    def check_max_html_bytes(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("max_html_bytes must be a positive number of bytes")
        return value

    @property
    def converter_version(self) -> str:
        return str(getattr(self.converter, "version", None) or "unknown")


class WebMarkdownConfig(BaseModel):
    """
    Root configuration model for web_markdown.

    YAML format:
        transform:
          max_html_bytes: 1mb
          oversize_behavior: not-acceptable
          debug_headers: true
        converter:
          mode: content
          add_front_matter: true
        log_level: DEBUG
    """

    transform: TransformConfig = Field(default_factory=TransformConfig)
    converter: ConverterConfig = Field(default_factory=ConverterConfig)

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        "INFO",
        description="Logging level",
    )
    log_file: Optional[Path] = Field(None, description="Log file path")

    model_config = {"extra": "forbid"}

    def build_policy(
        self,
        converter: Optional[HtmlToMarkdownConverter] = None,
        on_observation: Optional[Callable[[TransformObservation], None]] = None,
    ) -> TransformPolicy:
        """
        Create the runtime policy.

        Args:
            converter: Converter to inject (default converter built from
                ``self.converter`` if None)
            on_observation: Optional observation callback

        Returns:
            Frozen TransformPolicy
        """
        if converter is None:
            from ..conversion.converter import DefaultHtmlToMarkdownConverter

            converter = DefaultHtmlToMarkdownConverter(self.converter)

        return TransformPolicy(
            converter=converter,
            max_html_bytes=self.transform.max_html_bytes,
            oversize_behavior=self.transform.oversize_behavior,
            debug_headers=self.transform.debug_headers,
            on_observation=on_observation,
        )

    def to_yaml(self) -> str:
        """Serialize config to YAML string."""
        import yaml

        return yaml.dump(self.model_dump(mode="json", exclude_none=True), default_flow_style=False)

    @classmethod
    def from_yaml(cls, yaml_str: str) -> "WebMarkdownConfig":
        """Load config from YAML string."""
        import yaml

        data = yaml.safe_load(yaml_str) or {}
        return cls.model_validate(data)

    @classmethod
    def from_yaml_file(cls, path: Path) -> "WebMarkdownConfig":
        """Load config from YAML file."""
        return cls.from_yaml(path.read_text())
