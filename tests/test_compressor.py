import json
import zlib

import pytest

from wbox_converter.compressor import load_wbox, render_document, serialize_and_compress
from wbox_converter.errors import ContentError, WriteFailedError


def test_render_is_pretty_and_sorted():
    text = render_document({"width": 2, "name": "Été", "tileMap": ["a"]})
    assert text.splitlines()[0] == "{"
    assert text.index('"name"') < text.index('"tileMap"') < text.index('"width"')
    assert "Été" in text


def test_output_is_a_raw_zlib_stream(tmp_path):
    document = {"tileArray": [0, 1], "tileAmounts": [64, 64], "width": 2}
    out = serialize_and_compress(document, tmp_path / "map.wbox")
    raw = out.read_bytes()
    assert raw[:1] == b"\x78"
    assert json.loads(zlib.decompress(raw).decode("utf-8")) == document
    assert load_wbox(out) == document


def test_large_document_is_streamed(tmp_path):
    document = {"tileArray": list(range(50000)), "tileAmounts": [1] * 50000}
    out = serialize_and_compress(document, tmp_path / "big.wbox")
    assert load_wbox(out) == document


def test_write_failure(tmp_path):
    target = tmp_path / "missing_dir" / "map.wbox"
    with pytest.raises(WriteFailedError, match="map.wbox"):
        serialize_and_compress({"a": 1}, target)
    assert not target.exists()


def test_load_wbox_rejects_garbage(tmp_path):
    path = tmp_path / "bad.wbox"
    path.write_bytes(b"not compressed")
    with pytest.raises(ContentError):
        load_wbox(path)


@pytest.mark.parametrize("value", [float("nan"), float("inf"), "\ud800"])
def test_unrenderable_document_is_a_content_error(tmp_path, value):
    target = tmp_path / "map.wbox"
    with pytest.raises(ContentError):
        serialize_and_compress({"tileMap": [], "bad": value}, target)
    assert not target.exists()
