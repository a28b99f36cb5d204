"""Shared Pydantic models for imgvariants."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# A single concrete variant's options: every multiplexed field resolved to a
# scalar, plus carried-through fields such as ``preset``.
ImageOptions = dict[str, Any]

# Canonical list-valued option fields, ready for multiplexing.
NormalizedOptions = dict[str, list[Any]]


# ── Enums ──


class EmitMode(StrEnum):
    NORMAL = "normal"
    SYNTHETIC = "synthetic"
    DISABLED = "disabled"


class ResizeMode(StrEnum):
    COVER = "cover"
    CONTAIN = "contain"
    FILL = "fill"
    INSIDE = "inside"


# ── Runtime models ──


class SourceMeta(BaseModel):
    """Metadata of a decoded source image."""

    model_config = ConfigDict(frozen=True)

    width: float
    height: float
    format: str
    scale: float | None = None


class TransformInfo(BaseModel):
    """Metadata describing a transformed payload."""

    width: int
    height: int
    format: str
    size: int = 0
    channels: int | None = None


class VariantResult(BaseModel):
    name: str
    url: str
    width: int
    height: int
    format: str
    size: int = 0
    scale: float | None = None
    preset: str | None = None
    inline: bool = False
    data: str | None = None
    options: dict[str, Any] = Field(default_factory=dict)
