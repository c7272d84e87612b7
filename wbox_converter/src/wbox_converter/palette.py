"""Palette loading and nearest-color lookup.

A palette file holds one ``<id> #RRGGBB`` entry per line. Lines that do not
match are skipped without complaint. Lookups use squared Euclidean distance in
plain RGB space; when several entries are equally close the one loaded first
wins.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np
from scipy.spatial import cKDTree

from .errors import ConfigurationError, EmptyPaletteError

Color = Tuple[int, int, int]

_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


@dataclass(frozen=True)
class PaletteEntry:
    """One allowed tile: its id and the RGB color that stands for it."""

    id: str
    color: Color
    position: int = 0


def parse_hex_color(text: str) -> Optional[Color]:
    """Parse ``#RRGGBB`` (the ``#`` is optional). Returns ``None`` if invalid."""

    if text.startswith("#"):
        text = text[1:]
    if len(text) != 6 or not all(c in _HEX_DIGITS for c in text):
        return None
    value = int(text, 16)
    return ((value >> 16) & 0xFF, (value >> 8) & 0xFF, value & 0xFF)


def parse_palette_lines(lines: Iterable[str]) -> List[PaletteEntry]:
    entries: List[PaletteEntry] = []
    for line in lines:
        tile_id, sep, hex_text = line.rstrip("\r\n").partition(" ")
        if not sep:
            continue
        color = parse_hex_color(hex_text)
        if color is None:
            continue
        entries.append(PaletteEntry(tile_id, color, len(entries)))
    return entries


class PaletteIndex:
    """Immutable palette plus a k-d tree over its RGB points."""

    def __init__(self, entries: Sequence[PaletteEntry]):
        if not entries:
            raise EmptyPaletteError("Palette is empty; at least one '<id> #RRGGBB' line is required")
        self._entries = tuple(
            PaletteEntry(entry.id, entry.color, position) for position, entry in enumerate(entries)
        )
        self._points = np.array([entry.color for entry in self._entries], dtype=np.int64)
        self._tree = cKDTree(self._points.astype(np.float64))

    @property
    def entries(self) -> Tuple[PaletteEntry, ...]:
        return self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def nearest(self, color: Color) -> PaletteEntry:
        return self._entries[int(self.nearest_positions(np.array([color]))[0])]

    def nearest_positions(self, colors: np.ndarray) -> np.ndarray:
        """Return the palette position closest to each row of ``colors``.

        ``colors`` is an ``(N, 3)`` array. Candidates at equal distance are
        resolved to the lowest palette position.
        """

        queries = np.asarray(colors, dtype=np.int64).reshape(-1, 3)
        if len(queries) == 0:
            return np.zeros(0, dtype=np.intp)

        k = 2 if len(self._entries) > 1 else 1
        _, found = self._tree.query(queries.astype(np.float64), k=k)
        found = np.asarray(found, dtype=np.intp).reshape(len(queries), k)
        best = found[:, 0].copy()
        if k == 1:
            return best

        # The tree returns distances as floats; compare exact integer distances
        # to detect ties.
        first = self._squared_distances(queries, found[:, 0])
        second = self._squared_distances(queries, found[:, 1])
        for row in np.flatnonzero(first == second):
            best[row] = self._lowest_position_at(queries[row], int(first[row]))
        return best

    def _squared_distances(self, queries: np.ndarray, positions: np.ndarray) -> np.ndarray:
        delta = queries - self._points[positions]
        return np.einsum("ij,ij->i", delta, delta)

    def _lowest_position_at(self, query: np.ndarray, distance: int) -> int:
        radius = float(np.sqrt(distance)) + 1e-6
        candidates = self._tree.query_ball_point(query.astype(np.float64), radius)
        tied = [
            position
            for position in candidates
            if int(((query - self._points[position]) ** 2).sum()) == distance
        ]
        return min(tied)


def load_palette(lines: Iterable[str]) -> PaletteIndex:
    return PaletteIndex(parse_palette_lines(lines))


def load_palette_file(path: str | Path) -> PaletteIndex:
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Palette file not found: {path}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigurationError(f"Failed to read palette file: {path}") from exc
    return load_palette(text.splitlines())
