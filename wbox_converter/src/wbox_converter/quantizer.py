"""Resolve image colors to palette entries and rewrite pixels.

Both phases fan out over a thread pool. Workers only read shared inputs and
return private results that the caller merges once every task has finished.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, Iterator, List, Optional, Tuple

import numpy as np

from .palette import Color, PaletteEntry, PaletteIndex

COLOR_CHUNK = 4096
ROW_BAND = 64


def pack_rgb(pixels: np.ndarray) -> np.ndarray:
    """Pack the trailing RGB axis into single ``0xRRGGBB`` integers."""

    pixels = np.asarray(pixels, dtype=np.uint32)
    return (pixels[..., 0] << 16) | (pixels[..., 1] << 8) | pixels[..., 2]


def unpack_rgb(keys: np.ndarray) -> np.ndarray:
    keys = np.asarray(keys, dtype=np.uint32)
    return np.stack(((keys >> 16) & 0xFF, (keys >> 8) & 0xFF, keys & 0xFF), axis=-1).astype(np.uint8)


def default_workers() -> int:
    return os.cpu_count() or 1


class ColorMapping(Mapping):
    """Read-only map from a source color to the palette entry replacing it."""

    def __init__(self, resolved: Dict[Color, PaletteEntry]):
        self._resolved = dict(resolved)
        keys = sorted(self._resolved)
        self._source_keys = pack_rgb(np.array(keys, dtype=np.uint32).reshape(-1, 3))
        self._targets = np.array(
            [self._resolved[key].color for key in keys], dtype=np.uint8
        ).reshape(-1, 3)

    def __getitem__(self, color: Color) -> PaletteEntry:
        return self._resolved[tuple(color)]

    def __iter__(self) -> Iterator[Color]:
        return iter(self._resolved)

    def __len__(self) -> int:
        return len(self._resolved)

    def tile_ids(self) -> List[str]:
        """Distinct palette ids in use, ordered by palette position."""

        used = sorted(set(self._resolved.values()), key=lambda entry: entry.position)
        return list(dict.fromkeys(entry.id for entry in used))

    def color_to_id(self) -> Dict[Color, str]:
        """Inverse lookup from a replacement color to its palette id."""

        return {entry.color: entry.id for entry in self._resolved.values()}

    def lookup_packed(self, keys: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Return ``(found, targets)`` for packed source colors.

        ``targets`` is only meaningful where ``found`` is true.
        """

        if len(self._source_keys) == 0:
            found = np.zeros(keys.shape, dtype=bool)
            return found, np.zeros(keys.shape + (3,), dtype=np.uint8)
        slots = np.searchsorted(self._source_keys, keys)
        slots = np.minimum(slots, len(self._source_keys) - 1)
        found = self._source_keys[slots] == keys
        return found, self._targets[slots]


def distinct_colors(pixels: np.ndarray) -> np.ndarray:
    """Return the distinct colors of ``pixels`` as an ``(N, 3)`` uint8 array."""

    return unpack_rgb(np.unique(pack_rgb(pixels).reshape(-1)))


def _resolve_chunk(palette: PaletteIndex, colors: np.ndarray) -> Dict[Color, PaletteEntry]:
    positions = palette.nearest_positions(colors)
    entries = palette.entries
    return {
        (int(r), int(g), int(b)): entries[int(position)]
        for (r, g, b), position in zip(colors, positions)
    }


def quantize(
    pixels: np.ndarray,
    palette: PaletteIndex,
    max_workers: Optional[int] = None,
) -> ColorMapping:
    """Map every distinct color of ``pixels`` to its nearest palette entry."""

    colors = distinct_colors(pixels)
    resolved: Dict[Color, PaletteEntry] = {}
    with ThreadPoolExecutor(max_workers=max_workers or default_workers()) as executor:
        futures = [
            executor.submit(_resolve_chunk, palette, colors[start : start + COLOR_CHUNK])
            for start in range(0, len(colors), COLOR_CHUNK)
        ]
        for future in as_completed(futures):
            resolved.update(future.result())
    return ColorMapping(resolved)


def _rewrite_band(band: np.ndarray, mapping: ColorMapping) -> np.ndarray:
    found, targets = mapping.lookup_packed(pack_rgb(band))
    out = band.copy()
    out[found] = targets[found]
    return out


def rewrite(
    pixels: np.ndarray,
    mapping: ColorMapping,
    max_workers: Optional[int] = None,
) -> np.ndarray:
    """Return a copy of ``pixels`` with each color replaced per ``mapping``.

    Colors missing from ``mapping`` are passed through unchanged.
    """

    height = pixels.shape[0]
    if height == 0:
        return pixels.copy()
    with ThreadPoolExecutor(max_workers=max_workers or default_workers()) as executor:
        bands = list(
            executor.map(
                lambda start: _rewrite_band(pixels[start : start + ROW_BAND], mapping),
                range(0, height, ROW_BAND),
            )
        )
    return np.concatenate(bands, axis=0)
