"""Run-length encoding of the quantized tile grid.

Rows are visited from the bottom edge of the image to the top edge and each
row left to right; the map loader treats row 0 as the bottom of the world.
Runs never cross a row boundary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from .errors import TileResolutionError
from .quantizer import ColorMapping, pack_rgb


class KnownTileIds:
    """Append-only ordered set of tile ids.

    Positions of ids already present never change, so indices handed out
    earlier stay valid. An id listed more than once resolves to its first
    occurrence.
    """

    def __init__(self, ids: Iterable[object] = ()):
        self._ids: List[object] = []
        self._positions: Dict[str, int] = {}
        for tile_id in ids:
            self._append(tile_id)

    def _append(self, tile_id: object) -> None:
        # Non-string entries keep their slot but can never be referenced.
        if isinstance(tile_id, str) and tile_id not in self._positions:
            self._positions[tile_id] = len(self._ids)
        self._ids.append(tile_id)

    def add(self, tile_id: str) -> bool:
        """Append ``tile_id`` unless already known. Returns True if appended."""

        if tile_id in self._positions:
            return False
        self._append(tile_id)
        return True

    def extend(self, tile_ids: Iterable[str]) -> List[str]:
        return [tile_id for tile_id in tile_ids if self.add(tile_id)]

    def index(self, tile_id: str) -> int:
        return self._positions[tile_id]

    def __contains__(self, tile_id: object) -> bool:
        return tile_id in self._positions

    def __iter__(self) -> Iterator[object]:
        return iter(self._ids)

    def __len__(self) -> int:
        return len(self._ids)

    def as_list(self) -> List[object]:
        return list(self._ids)


@dataclass
class EncodedGrid:
    """Flattened runs of a tile grid plus its size in pixels."""

    width: int
    height: int
    tile_array: List[int] = field(default_factory=list)
    tile_amounts: List[int] = field(default_factory=list)


def _row_runs(row: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    starts = np.concatenate(([0], np.flatnonzero(row[1:] != row[:-1]) + 1))
    lengths = np.diff(np.concatenate((starts, [len(row)])))
    return row[starts], lengths


def _tile_index_table(
    mapping: ColorMapping, known_ids: KnownTileIds
) -> Tuple[np.ndarray, np.ndarray]:
    colors: List[Tuple[int, int, int]] = []
    indices: List[int] = []
    for color, tile_id in sorted(mapping.color_to_id().items()):
        if tile_id not in known_ids:
            raise TileResolutionError(
                f"Tile id {tile_id!r} for color #{color[0]:02X}{color[1]:02X}{color[2]:02X} "
                "is missing from the known tile ids"
            )
        colors.append(color)
        indices.append(known_ids.index(tile_id))
    keys = pack_rgb(np.array(colors, dtype=np.uint32).reshape(-1, 3))
    return keys, np.array(indices, dtype=np.int64)


def tile_indices(
    pixels: np.ndarray, mapping: ColorMapping, known_ids: KnownTileIds
) -> np.ndarray:
    """Return the ``(height, width)`` grid of ``known_ids`` positions, top row first."""

    keys, indices = _tile_index_table(mapping, known_ids)
    packed = pack_rgb(pixels)
    if len(keys) == 0:
        found = np.zeros(packed.shape, dtype=bool)
        slots = np.zeros(packed.shape, dtype=np.intp)
    else:
        slots = np.minimum(np.searchsorted(keys, packed), len(keys) - 1)
        found = keys[slots] == packed
    if not found.all():
        y, x = (int(v) for v in np.argwhere(~found)[0])
        r, g, b = (int(v) for v in pixels[y, x])
        raise TileResolutionError(
            f"Pixel ({x}, {y}) has color #{r:02X}{g:02X}{b:02X} with no known tile id"
        )
    return indices[slots]


def encode(
    pixels: np.ndarray,
    mapping: ColorMapping,
    known_ids: Optional[KnownTileIds] = None,
) -> Tuple[KnownTileIds, EncodedGrid]:
    """Encode a quantized ``(height, width, 3)`` image.

    Tile ids used by ``mapping`` that ``known_ids`` lacks are appended to it
    (in palette order) before indices are assigned.
    """

    known_ids = known_ids if known_ids is not None else KnownTileIds()
    known_ids.extend(mapping.tile_ids())

    height, width = pixels.shape[:2]
    grid = tile_indices(pixels, mapping, known_ids)
    encoded = EncodedGrid(width=width, height=height)
    rows = range(height - 1, -1, -1) if width else range(0)
    for y in rows:
        values, lengths = _row_runs(grid[y])
        encoded.tile_array.extend(int(v) for v in values)
        encoded.tile_amounts.extend(int(n) for n in lengths)
    return known_ids, encoded


def expand_runs(
    tile_array: Sequence[int], tile_amounts: Sequence[int], width: int
) -> List[List[int]]:
    """Expand runs back into rows, bottom row first."""

    if len(tile_array) != len(tile_amounts):
        raise ValueError("tileArray and tileAmounts must have the same length")
    rows: List[List[int]] = []
    row: List[int] = []
    for value, amount in zip(tile_array, tile_amounts):
        if amount < 1:
            raise ValueError(f"Run length must be at least 1, got {amount}")
        row.extend([value] * amount)
        if len(row) > width:
            raise ValueError("A run crosses a row boundary")
        if len(row) == width:
            rows.append(row)
            row = []
    if row:
        raise ValueError("Runs do not fill the last row")
    return rows
