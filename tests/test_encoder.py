import numpy as np
import pytest
from PIL import Image

from wbox_converter.encoder import KnownTileIds, encode, expand_runs, tile_indices
from wbox_converter.errors import TileResolutionError
from wbox_converter.imaging import normalize_image, to_pixels
from wbox_converter.palette import load_palette
from wbox_converter.quantizer import quantize, rewrite

WHITE = (255, 255, 255)
BLACK = (0, 0, 0)


def _checker_image():
    image = Image.new("RGB", (2, 2))
    image.putpixel((0, 0), WHITE)
    image.putpixel((1, 0), BLACK)
    image.putpixel((0, 1), BLACK)
    image.putpixel((1, 1), WHITE)
    return image


def _quantized(image, palette_lines):
    palette = load_palette(palette_lines)
    pixels = to_pixels(normalize_image(image))
    mapping = quantize(pixels, palette)
    return rewrite(pixels, mapping), mapping


def test_known_tile_ids_are_append_only():
    known = KnownTileIds(["a", "b"])
    assert known.extend(["b", "c", "a", "c"]) == ["c"]
    assert known.as_list() == ["a", "b", "c"]
    assert known.index("a") == 0
    assert known.index("c") == 2


def test_known_tile_ids_keep_slots_of_other_entries():
    known = KnownTileIds([7, "a", "a", None])
    known.add("b")
    assert known.as_list() == [7, "a", "a", None, "b"]
    assert known.index("a") == 1
    assert known.index("b") == 4
    assert 7 not in known


def test_first_run_is_bottom_row():
    pixels, mapping = _quantized(_checker_image(), ["1 #FFFFFF", "2 #000000"])
    assert pixels.shape == (128, 128, 3)

    known, grid = encode(pixels, mapping)
    assert known.as_list() == ["1", "2"]
    assert (grid.width, grid.height) == (128, 128)
    # bottom half of the image is black then white, top half white then black
    assert grid.tile_array == [1, 0] * 64 + [0, 1] * 64
    assert grid.tile_amounts == [64] * 256


def test_row_sums_match_width():
    rng = np.random.default_rng(3)
    image = Image.fromarray(rng.integers(0, 256, size=(70, 150, 3), dtype=np.uint8))
    pixels, mapping = _quantized(image, ["a #FF0000", "b #00FF00", "c #0000FF", "d #000000"])
    _, grid = encode(pixels, mapping)

    assert len(grid.tile_array) == len(grid.tile_amounts)
    assert all(amount >= 1 for amount in grid.tile_amounts)
    rows = expand_runs(grid.tile_array, grid.tile_amounts, grid.width)
    assert len(rows) == grid.height
    assert all(len(row) == grid.width for row in rows)


def test_runs_expand_to_bottom_up_grid():
    rng = np.random.default_rng(11)
    image = Image.fromarray(rng.integers(0, 256, size=(128, 192, 3), dtype=np.uint8))
    pixels, mapping = _quantized(image, ["a #FF0000", "b #00FF00", "c #0000FF"])
    known, grid = encode(pixels, mapping)

    expected = tile_indices(pixels, mapping, known)[::-1].tolist()
    assert expand_runs(grid.tile_array, grid.tile_amounts, grid.width) == expected


def test_runs_do_not_cross_rows():
    pixels = np.zeros((2, 3, 3), dtype=np.uint8)
    _, mapping = _quantized(Image.new("RGB", (1, 1)), ["0 #000000"])
    _, grid = encode(pixels, mapping)
    assert grid.tile_array == [0, 0]
    assert grid.tile_amounts == [3, 3]


def test_existing_ids_keep_their_positions():
    pixels, mapping = _quantized(_checker_image(), ["1 #FFFFFF", "2 #000000"])
    known, grid = encode(pixels, mapping, KnownTileIds(["9", "2"]))
    assert known.as_list() == ["9", "2", "1"]
    assert grid.tile_array[:2] == [1, 2]


def test_unresolvable_pixel_aborts():
    pixels, mapping = _quantized(_checker_image(), ["1 #FFFFFF", "2 #000000"])
    pixels[5, 7] = (1, 2, 3)
    with pytest.raises(TileResolutionError, match=r"\(7, 5\).*#010203"):
        encode(pixels, mapping)


def test_expand_runs_rejects_bad_runs():
    with pytest.raises(ValueError):
        expand_runs([0, 1], [2], 2)
    with pytest.raises(ValueError):
        expand_runs([0, 1], [1, 2], 2)
    with pytest.raises(ValueError):
        expand_runs([0], [1], 2)
    with pytest.raises(ValueError):
        expand_runs([0], [0], 2)
