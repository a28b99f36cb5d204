"""Top-level entry points: expand() and ImgVariants."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from imgvariants.cache.manager import VariantCache
from imgvariants.config.loader import load_config
from imgvariants.config.schema import ImgVariantsConfig, OutputRef
from imgvariants.imaging.result import DirectoryEmitter
from imgvariants.imaging.transform import transform_image
from imgvariants.pipeline.engine import VariantPipeline
from imgvariants.pipeline.interfaces import FileEmitter, Transform
from imgvariants.types import VariantResult
from imgvariants.utils.image import load_image

logger = logging.getLogger(__name__)


class ImgVariants:
    """Main expander class with full lifecycle control."""

    def __init__(
        self,
        config: ImgVariantsConfig | None = None,
        transform: Transform = transform_image,
        emitter: FileEmitter | None = None,
        **overrides: Any,
    ) -> None:
        self._config = config or load_config(**overrides)

        # Cache
        self._cache = VariantCache(
            self._config.cache_dir,
            max_size_mb=self._config.cache_max_mb,
        )

        if emitter is None and self._config.output_dir is not None:
            emitter = DirectoryEmitter(self._config.output_dir)
        self._pipeline = VariantPipeline(
            self._config,
            cache=self._cache,
            transform=transform,
            emitter=emitter,
        )

    @property
    def config(self) -> ImgVariantsConfig:
        return self._config

    @property
    def cache(self) -> VariantCache:
        return self._cache

    async def expand_async(
        self,
        input_path: str | Path,
        outputs: OutputRef | Sequence[OutputRef] | None = None,
    ) -> list[VariantResult]:
        """Expand one source image into its variants asynchronously."""
        input_path = Path(input_path)
        source_bytes = load_image(input_path)
        results = await self._pipeline.run(input_path, source_bytes, outputs=outputs)
        logger.info("Produced %d variant(s) for %s", len(results), input_path)
        return results

    def close(self) -> None:
        self._cache.close()


# ── Module-level convenience functions ──


def expand(
    input_path: str | Path,
    outputs: OutputRef | Sequence[OutputRef] | None = None,
    **overrides: Any,
) -> list[VariantResult]:
    """Expand a source image into its variants (sync wrapper)."""
    expander = ImgVariants(**overrides)
    try:
        return asyncio.run(expander.expand_async(input_path, outputs=outputs))
    finally:
        expander.close()
