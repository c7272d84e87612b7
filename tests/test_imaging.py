import pytest
from PIL import Image

from wbox_converter.errors import ConfigurationError, ContentError
from wbox_converter.imaging import normalize_image, normalized_size, open_rgb_image


@pytest.mark.parametrize(
    "size, expected",
    [
        ((1, 1), (128, 128)),
        ((128, 128), (128, 128)),
        ((129, 64), (192, 128)),
        ((200, 300), (256, 320)),
        ((640, 64), (640, 128)),
    ],
)
def test_normalized_size(size, expected):
    assert normalized_size(*size) == expected


def test_normalize_uses_nearest_filter():
    image = Image.new("RGB", (2, 1), (0, 0, 0))
    image.putpixel((1, 0), (200, 100, 50))
    out = normalize_image(image)
    assert out.size == (128, 128)
    assert {color for _, color in out.getcolors()} == {(0, 0, 0), (200, 100, 50)}
    assert out.getpixel((63, 127)) == (0, 0, 0)
    assert out.getpixel((64, 0)) == (200, 100, 50)


def test_normalize_converts_mode_without_resizing():
    image = Image.new("L", (128, 192), 80)
    out = normalize_image(image)
    assert out.mode == "RGB"
    assert out.size == (128, 192)
    assert out.getpixel((5, 5)) == (80, 80, 80)


def test_open_rgb_image(tmp_path):
    path = tmp_path / "a.png"
    Image.new("RGBA", (3, 3), (1, 2, 3, 4)).save(path)
    img = open_rgb_image(path)
    assert img.mode == "RGB"
    assert img.getpixel((0, 0)) == (1, 2, 3)

    with pytest.raises(ConfigurationError, match="not found"):
        open_rgb_image(tmp_path / "missing.png")

    bogus = tmp_path / "bogus.png"
    bogus.write_bytes(b"definitely not an image")
    with pytest.raises(ContentError, match="freeze map"):
        open_rgb_image(bogus, "freeze map")
