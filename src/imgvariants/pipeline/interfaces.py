"""Collaborator protocols the variant pipeline calls into."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from imgvariants.types import ImageOptions, SourceMeta, TransformInfo, VariantResult

if TYPE_CHECKING:
    from imgvariants.config.schema import ImgVariantsConfig


class MetadataExtractor(Protocol):
    def __call__(
        self,
        source_bytes: bytes,
        source_path: str | Path,
        config: ImgVariantsConfig | None = None,
    ) -> SourceMeta: ...


class Transform(Protocol):
    async def __call__(
        self,
        source_bytes: bytes,
        meta: SourceMeta,
        options: ImageOptions,
    ) -> tuple[bytes, TransformInfo]: ...


class ResultAssembler(Protocol):
    def __call__(
        self,
        source_bytes: bytes,
        payload: bytes | None,
        info: TransformInfo,
        options: ImageOptions,
        config: ImgVariantsConfig,
        source_path: str | Path,
    ) -> VariantResult: ...


class FileEmitter(Protocol):
    def __call__(self, name: str, payload: bytes) -> None: ...
