"""Custom exception hierarchy for imgvariants."""

from __future__ import annotations

from typing import Any


class ImgVariantsError(Exception):
    """Base exception for all imgvariants errors."""

    def __init__(self, message: str = "", **kwargs: Any) -> None:
        super().__init__(message)
        self.message = message


class ConfigError(ImgVariantsError):
    """Invalid configuration — bad YAML, unknown emit mode, wrong types."""

    def __init__(self, message: str = "", path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class NormalizationError(ImgVariantsError, ValueError):
    """A numeric option could not be parsed and reached a variant."""

    def __init__(self, message: str = "", field: str = "", value: Any = None) -> None:
        super().__init__(message)
        self.field = field
        self.value = value


class CacheReadError(ImgVariantsError):
    """Cache read failure. The cache layer reports it as a miss."""

    def __init__(
        self,
        message: str = "",
        key: str = "",
        original: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.key = key
        self.original = original


class CacheWriteError(ImgVariantsError):
    """Cache write failure; fails the variant being stored."""

    def __init__(
        self,
        message: str = "",
        key: str = "",
        original: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.key = key
        self.original = original


class TransformError(ImgVariantsError):
    """The image transform rejected its input.

    Examples: non-positive dimension, unsupported output format, undecodable
    source bytes.
    """

    def __init__(
        self,
        message: str = "",
        error_type: str = "invalid_options",
        original: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.error_type = error_type
        self.original = original


class VariantError(ImgVariantsError):
    """Failure of a single variant, carrying its index and options."""

    def __init__(
        self,
        message: str = "",
        index: int = 0,
        options: dict[str, Any] | None = None,
        inner: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.index = index
        self.options = options or {}
        self.inner = inner
