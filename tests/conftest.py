import io

import pytest
from PIL import Image

from imgvariants.config.schema import ImgVariantsConfig
from imgvariants.types import SourceMeta, TransformInfo


@pytest.fixture
def png_bytes():
    """A 40x20 RGB PNG."""
    buf = io.BytesIO()
    Image.new("RGB", (40, 20), (200, 30, 30)).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def rgba_png_bytes():
    """A 30x30 PNG with transparency."""
    buf = io.BytesIO()
    Image.new("RGBA", (30, 30), (0, 0, 255, 128)).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def source_meta():
    return SourceMeta(width=40, height=20, format="png")


@pytest.fixture
def make_config():
    """Factory for configs with sensible test defaults."""

    def _make(**kwargs) -> ImgVariantsConfig:
        return ImgVariantsConfig(**kwargs)

    return _make


@pytest.fixture
def fake_transform():
    """Async transform double recording its calls."""

    class FakeTransform:
        def __init__(self):
            self.calls = []

        async def __call__(self, source_bytes, meta, options):
            self.calls.append(dict(options))
            width = int(options.get("width", meta.width))
            height = int(options.get("height", meta.height))
            fmt = options.get("format", meta.format)
            payload = f"{width}x{height}.{fmt}".encode()
            return payload, TransformInfo(
                width=width, height=height, format=fmt, size=len(payload)
            )

    return FakeTransform()
