"""Image decoding and grid-size normalization."""

from __future__ import annotations

from pathlib import Path
from typing import Tuple

import numpy as np
from PIL import Image

from .errors import ConfigurationError, ContentError

TILE_PIXELS = 64
MIN_TILES = 2


def normalized_size(width: int, height: int) -> Tuple[int, int]:
    """Round each axis up to a multiple of 64, never below 128."""

    def snap(length: int) -> int:
        return max((length + TILE_PIXELS - 1) // TILE_PIXELS, MIN_TILES) * TILE_PIXELS

    return snap(width), snap(height)


def normalize_image(image: Image.Image) -> Image.Image:
    image = image.convert("RGB")
    target = normalized_size(*image.size)
    if image.size != target:
        image = image.resize(target, Image.NEAREST)
    return image


def open_rgb_image(path: str | Path, role: str = "image") -> Image.Image:
    """Decode ``path`` to 8-bit RGB. ``role`` names the file in error messages."""

    path = Path(path)
    try:
        with Image.open(path) as img:
            img.load()
            return img.convert("RGB")
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Input {role} not found: {path}") from exc
    except OSError as exc:
        raise ContentError(f"Failed to decode {role}: {path}") from exc


def to_pixels(image: Image.Image) -> np.ndarray:
    """Return an owned ``(height, width, 3)`` uint8 array of ``image``."""

    return np.array(image.convert("RGB"), dtype=np.uint8)


def from_pixels(pixels: np.ndarray) -> Image.Image:
    return Image.fromarray(np.ascontiguousarray(pixels, dtype=np.uint8))
