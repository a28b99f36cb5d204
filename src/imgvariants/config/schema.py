"""Pydantic models for global configuration."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

from imgvariants.types import EmitMode, SourceMeta

# An output reference: a preset name or an inline output spec mapping.
OutputRef = str | dict[str, Any]


class ImgVariantsConfig(BaseModel):
    """Global, read-only configuration passed to every component."""

    emit_file: EmitMode = EmitMode.NORMAL
    cache_dir: Path | None = None
    cache_max_mb: float = 5000.0
    presets: dict[str, dict[str, Any]] = Field(default_factory=dict)
    default_outputs: list[OutputRef] | None = None
    context: str | None = None
    name: str | None = None
    meta: Callable[[SourceMeta], SourceMeta] | None = None
    public_path: str = ""
    output_dir: Path | None = None
    max_concurrency: int | None = Field(default=None, ge=1)

    @field_validator("emit_file", mode="before")
    @classmethod
    def _coerce_emit_flag(cls, value: Any) -> Any:
        # Plain booleans are accepted for the emit switch: false disables emission.
        if value is True:
            return EmitMode.NORMAL
        if value is False:
            return EmitMode.DISABLED
        return value

    @field_validator("default_outputs", mode="before")
    @classmethod
    def _wrap_single_output(cls, value: Any) -> Any:
        if isinstance(value, (str, dict)):
            return [value]
        return value

    @property
    def cache_enabled(self) -> bool:
        return self.cache_dir is not None
