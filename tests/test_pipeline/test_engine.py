"""Tests for the variant pipeline."""

from unittest.mock import AsyncMock, patch

import pytest

from imgvariants.cache.keys import Namespace, generate_cache_key, hash_source
from imgvariants.cache.manager import VariantCache
from imgvariants.errors.exceptions import (
    CacheWriteError,
    NormalizationError,
    TransformError,
    VariantError,
)
from imgvariants.pipeline.engine import VariantPipeline, merge_source_meta
from imgvariants.types import EmitMode, SourceMeta, TransformInfo

_PRESETS = {
    "thumb": {"width": [64, 128], "format": "webp"},
    "full": {"format": "jpeg"},
}


class RecordingEmitter:
    def __init__(self):
        self.emitted = []

    def __call__(self, name, payload):
        self.emitted.append((name, payload))


@pytest.fixture
def emitter():
    return RecordingEmitter()


def _pipeline(config, transform, cache=None, emitter=None):
    return VariantPipeline(config, cache=cache, transform=transform, emitter=emitter)


class TestBuildOptions:
    def test_width_list_with_format(self, make_config, fake_transform, source_meta):
        pipeline = _pipeline(make_config(), fake_transform)
        options = pipeline.build_options(source_meta, [{"width": [100, 200], "format": "webp"}])
        assert options == [
            {"width": 100.0, "format": "webp"},
            {"width": 200.0, "format": "webp"},
        ]

    def test_source_density_becomes_default_scale(self, make_config, fake_transform):
        meta = SourceMeta(width=20, height=10, format="png", scale=2.0)
        pipeline = _pipeline(make_config(), fake_transform)
        options = pipeline.build_options(meta, [{"width": 10}, {"width": 10, "scale": 1}])
        assert options == [{"width": 10.0, "scale": 2.0}, {"width": 10.0, "scale": 1.0}]


class TestMergeSourceMeta:
    def test_no_density_unchanged(self, source_meta):
        options = {"width": 1.0}
        assert merge_source_meta(options, source_meta) is options


class TestRun:
    async def test_results_in_multiplexed_order(self, make_config, fake_transform, png_bytes, emitter):
        pipeline = _pipeline(make_config(), fake_transform, emitter=emitter)
        results = await pipeline.run(
            "/img/a.png", png_bytes, outputs=[{"width": [30, 10, 20], "format": "png"}]
        )
        assert [r.width for r in results] == [30, 10, 20]
        assert len(fake_transform.calls) == 3
        assert [name for name, _ in emitter.emitted] == [r.name for r in results]

    async def test_unknown_preset_skipped(self, make_config, fake_transform, png_bytes):
        pipeline = _pipeline(make_config(presets=_PRESETS), fake_transform)
        results = await pipeline.run("a.png", png_bytes, outputs=["thumb", "unknown", "full"])
        assert len(results) == 2 + 1
        assert [r.preset for r in results] == ["thumb", "thumb", "full"]

    async def test_default_outputs_are_all_presets(self, make_config, fake_transform, png_bytes):
        pipeline = _pipeline(make_config(presets=_PRESETS), fake_transform)
        results = await pipeline.run("a.png", png_bytes)
        assert len(results) == 3

    async def test_no_outputs_yields_nothing(self, make_config, fake_transform, png_bytes):
        pipeline = _pipeline(make_config(), fake_transform)
        assert await pipeline.run("a.png", png_bytes) == []
        assert fake_transform.calls == []

    async def test_meta_supplied_skips_extraction(self, make_config, fake_transform):
        meta = SourceMeta(width=10, height=10, format="png")
        pipeline = _pipeline(make_config(), fake_transform)
        results = await pipeline.run("a.png", b"not decoded", outputs=[{}], meta=meta)
        assert [(r.width, r.height) for r in results] == [(10, 10)]

    async def test_density_suffix_applied(self, make_config, fake_transform, png_bytes):
        pipeline = _pipeline(make_config(), fake_transform)
        await pipeline.run("/img/a@2x.png", png_bytes, outputs=[{"format": "png"}])
        assert fake_transform.calls == [{"format": "png", "scale": 2.0}]


class TestEmission:
    async def test_inline_not_emitted(self, make_config, fake_transform, png_bytes, emitter):
        pipeline = _pipeline(make_config(), fake_transform, emitter=emitter)
        results = await pipeline.run("a.png", png_bytes, outputs=[{"inline": True}])
        assert emitter.emitted == []
        assert results[0].data.startswith("data:image/png;base64,")

    async def test_disabled_emission(self, make_config, fake_transform, png_bytes, emitter):
        config = make_config(emit_file=EmitMode.DISABLED)
        pipeline = _pipeline(config, fake_transform, emitter=emitter)
        results = await pipeline.run("a.png", png_bytes, outputs=[{"width": 5}])
        assert len(results) == 1
        assert len(fake_transform.calls) == 1
        assert emitter.emitted == []

    async def test_missing_emitter_is_tolerated(self, make_config, fake_transform, png_bytes):
        pipeline = _pipeline(make_config(), fake_transform)
        results = await pipeline.run("a.png", png_bytes, outputs=[{"width": 5}])
        assert len(results) == 1


class TestSyntheticMode:
    async def test_never_transforms_or_caches(self, make_config, png_bytes, tmp_path, emitter):
        transform = AsyncMock()
        cache = VariantCache(tmp_path)
        config = make_config(emit_file=EmitMode.SYNTHETIC)
        pipeline = _pipeline(config, transform, cache=cache, emitter=emitter)
        try:
            with patch.object(cache, "lookup") as lookup, patch.object(cache, "store") as store:
                results = await pipeline.run(
                    "a.png", png_bytes, outputs=[{"width": [10, 20], "format": "webp"}]
                )
                lookup.assert_not_called()
                store.assert_not_called()
            transform.assert_not_called()
            assert [(r.width, r.height, r.format) for r in results] == [
                (10, 5, "webp"),
                (20, 10, "webp"),
            ]
            assert emitter.emitted == []
        finally:
            cache.close()

    async def test_inline_still_transformed(self, make_config, fake_transform, png_bytes):
        config = make_config(emit_file=EmitMode.SYNTHETIC)
        pipeline = _pipeline(config, fake_transform)
        results = await pipeline.run(
            "a.png", png_bytes, outputs=[{"inline": True}, {"width": 5}]
        )
        assert len(fake_transform.calls) == 1
        assert results[0].data is not None
        assert results[1].data is None


class TestCaching:
    async def test_second_run_is_full_cache_hit(self, make_config, fake_transform, png_bytes, tmp_path):
        config = make_config(cache_dir=tmp_path)
        outputs = [{"width": [100, 200], "format": "webp"}]

        cache1 = VariantCache(tmp_path)
        try:
            first = await _pipeline(config, fake_transform, cache=cache1).run(
                "/img/a.png", png_bytes, outputs=outputs
            )
        finally:
            cache1.close()

        cache2 = VariantCache(tmp_path)
        try:
            second = await _pipeline(config, fake_transform, cache=cache2).run(
                "/img/a.png", png_bytes, outputs=outputs
            )
            assert cache2.stats().hits == 2
        finally:
            cache2.close()

        assert len(fake_transform.calls) == 2
        assert [r.model_dump() for r in first] == [r.model_dump() for r in second]

    async def test_partial_hit_retransforms(self, make_config, fake_transform, png_bytes, tmp_path):
        cache = VariantCache(tmp_path)
        try:
            options = {"width": 10.0}
            source_id = f"{(tmp_path / 'a.png').resolve()}:{hash_source(png_bytes)}"
            key = generate_cache_key(source_id, options)
            await cache.put(Namespace.BUFFER, key.base, b"stale payload")

            pipeline = _pipeline(make_config(cache_dir=tmp_path), fake_transform, cache=cache)
            results = await pipeline.run(tmp_path / "a.png", png_bytes, outputs=[{"width": 10}])

            assert fake_transform.calls == [options]
            hit = await cache.lookup(key)
            assert hit is not None
            assert hit[0] == b"10x20.png"
            assert results[0].width == 10
        finally:
            cache.close()

    async def test_changed_source_bytes_miss(self, make_config, fake_transform, png_bytes, rgba_png_bytes, tmp_path):
        cache = VariantCache(tmp_path)
        try:
            pipeline = _pipeline(make_config(cache_dir=tmp_path), fake_transform, cache=cache)
            meta = SourceMeta(width=10, height=10, format="png")
            await pipeline.run("a.png", png_bytes, outputs=[{}], meta=meta)
            await pipeline.run("a.png", rgba_png_bytes, outputs=[{}], meta=meta)
            assert len(fake_transform.calls) == 2
        finally:
            cache.close()

    async def test_store_failure_fails_variant(self, make_config, fake_transform, png_bytes, tmp_path):
        cache = VariantCache(tmp_path)
        try:
            pipeline = _pipeline(make_config(cache_dir=tmp_path), fake_transform, cache=cache)
            with patch.object(cache, "store", AsyncMock(side_effect=CacheWriteError("full"))):
                with pytest.raises(VariantError) as exc_info:
                    await pipeline.run("a.png", png_bytes, outputs=[{"width": 5}])
            assert isinstance(exc_info.value.inner, CacheWriteError)
        finally:
            cache.close()


class TestFailures:
    async def test_transform_failure_propagates(self, make_config, png_bytes):
        async def failing(source_bytes, meta, options):
            if options["width"] == 2.0:
                raise TransformError("bad size")
            return b"ok", TransformInfo(width=1, height=1, format="png", size=2)

        pipeline = _pipeline(make_config(), failing)
        with pytest.raises(VariantError) as exc_info:
            await pipeline.run("a.png", png_bytes, outputs=[{"width": [1, 2, 3]}])
        assert exc_info.value.index == 1
        assert exc_info.value.options == {"width": 2.0}
        assert isinstance(exc_info.value.inner, TransformError)

    async def test_siblings_complete_when_one_fails(self, make_config, png_bytes):
        completed = []

        async def transform(source_bytes, meta, options):
            if options["width"] == 1.0:
                raise TransformError("bad")
            completed.append(options["width"])
            return b"ok", TransformInfo(width=1, height=1, format="png", size=2)

        pipeline = _pipeline(make_config(), transform)
        with pytest.raises(VariantError):
            await pipeline.run("a.png", png_bytes, outputs=[{"width": [1, 2, 3]}])
        assert sorted(completed) == [2.0, 3.0]

    async def test_first_failure_in_variant_order_reported(self, make_config, png_bytes):
        import asyncio

        async def transform(source_bytes, meta, options):
            # Later variants fail sooner
            await asyncio.sleep(0.01 / options["width"])
            if options["width"] > 1.0:
                raise TransformError(f"bad {options['width']}")
            return b"ok", TransformInfo(width=1, height=1, format="png", size=2)

        pipeline = _pipeline(make_config(), transform)
        with pytest.raises(VariantError) as exc_info:
            await pipeline.run("a.png", png_bytes, outputs=[{"width": [1, 2, 4]}])
        assert exc_info.value.index == 1

    async def test_bad_numeric_surfaces_as_normalization_error(self, make_config, fake_transform, png_bytes):
        pipeline = _pipeline(make_config(), fake_transform)
        with pytest.raises(VariantError) as exc_info:
            await pipeline.run("a.png", png_bytes, outputs=[{"width": "wide"}])
        assert isinstance(exc_info.value.inner, NormalizationError)
        assert fake_transform.calls == []

    async def test_bad_numeric_fails_in_synthetic_mode(self, make_config, fake_transform, png_bytes):
        pipeline = _pipeline(make_config(emit_file=EmitMode.SYNTHETIC), fake_transform)
        with pytest.raises(VariantError):
            await pipeline.run("a.png", png_bytes, outputs=[{"height": "tall"}])


class TestConcurrency:
    async def test_max_concurrency_respected(self, make_config, png_bytes):
        import asyncio

        active = 0
        peak = 0

        async def transform(source_bytes, meta, options):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return b"ok", TransformInfo(width=1, height=1, format="png", size=2)

        pipeline = _pipeline(make_config(max_concurrency=2), transform)
        results = await pipeline.run("a.png", png_bytes, outputs=[{"width": [1, 2, 3, 4, 5]}])
        assert len(results) == 5
        assert peak <= 2

    async def test_order_preserved_despite_completion_order(self, make_config, png_bytes):
        import asyncio

        async def transform(source_bytes, meta, options):
            # Larger widths finish first
            await asyncio.sleep(0.05 / options["width"])
            w = int(options["width"])
            return b"x", TransformInfo(width=w, height=1, format="png", size=1)

        pipeline = _pipeline(make_config(), transform)
        results = await pipeline.run("a.png", png_bytes, outputs=[{"width": [1, 2, 5, 10]}])
        assert [r.width for r in results] == [1, 2, 5, 10]
