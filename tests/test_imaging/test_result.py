"""Tests for result assembly, emission and serialization."""

import json

import pytest

from imgvariants.imaging.result import (
    DirectoryEmitter,
    create_image_object,
    render_name,
    serialize_results,
)
from imgvariants.types import TransformInfo

_INFO = TransformInfo(width=20, height=10, format="jpeg", size=3)


class TestCreateImageObject:
    def test_default_name_template(self, make_config):
        result = create_image_object(
            b"src", b"abc", _INFO, {"width": 20.0}, make_config(), "/img/photo.png"
        )
        stem, _, ext = result.name.rpartition(".")
        assert stem.startswith("photo-")
        assert len(stem) == len("photo-") + 16
        assert ext == "jpg"
        assert result.url == result.name
        assert result.inline is False
        assert result.data is None

    def test_custom_name_template(self, make_config):
        options = {"name": "{{ name }}-{{ width }}w{% if scale %}@{{ scale|int }}x{% endif %}.{{ ext }}", "scale": 2.0}
        result = create_image_object(b"src", b"abc", _INFO, options, make_config(), "logo.png")
        assert result.name == "logo-20w@2x.jpg"

    def test_public_path_prefix(self, make_config):
        config = make_config(public_path="/static/")
        result = create_image_object(b"src", b"abc", _INFO, {"name": "x.{{ ext }}"}, config, "a.png")
        assert result.url == "/static/x.jpg"

    def test_path_relative_to_context(self, make_config, tmp_path):
        source = tmp_path / "assets" / "icons" / "a.png"
        config = make_config(context=str(tmp_path))
        options = {"name": "{{ path }}{{ name }}.{{ ext }}"}
        result = create_image_object(b"src", b"abc", _INFO, options, config, source)
        assert result.name == "assets/icons/a.jpg"

    def test_inline_carries_data_url(self, make_config):
        result = create_image_object(
            b"src", b"abc", _INFO, {"inline": True}, make_config(), "a.png"
        )
        assert result.inline is True
        assert result.data == "data:image/jpeg;base64,YWJj"
        assert result.url == result.data

    def test_synthetic_hash_is_stable(self, make_config):
        options = {"width": 20.0}
        r1 = create_image_object(b"src", None, _INFO, options, make_config(), "a.png")
        r2 = create_image_object(b"src", None, _INFO, options, make_config(), "a.png")
        assert r1.name == r2.name

    def test_preset_and_options_recorded(self, make_config):
        options = {"width": 20.0, "preset": "thumb"}
        result = create_image_object(b"src", b"abc", _INFO, options, make_config(), "a.png")
        assert result.preset == "thumb"
        assert result.options == options


class TestRenderName:
    def test_missing_values_render_empty(self):
        assert render_name("{{ name }}{{ preset }}.png", {"name": "a", "preset": None}) == "a.png"


class TestDirectoryEmitter:
    def test_writes_file(self, tmp_path):
        emit = DirectoryEmitter(tmp_path / "out")
        emit("sub/a.png", b"payload")
        assert (tmp_path / "out" / "sub" / "a.png").read_bytes() == b"payload"

    def test_refuses_escape(self, tmp_path):
        emit = DirectoryEmitter(tmp_path / "out")
        with pytest.raises(ValueError):
            emit("../evil.png", b"payload")


class TestSerializeResults:
    def test_json_list_in_order(self, make_config):
        results = [
            create_image_object(b"s", b"a", _INFO, {"width": 1.0}, make_config(), "a.png"),
            create_image_object(b"s", b"b", _INFO, {"width": 2.0}, make_config(), "a.png"),
        ]
        data = json.loads(serialize_results(results))
        assert [d["options"]["width"] for d in data] == [1.0, 2.0]
        assert data[0]["format"] == "jpeg"
