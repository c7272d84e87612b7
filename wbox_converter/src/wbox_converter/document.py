"""Map document loading and composition.

The document is a JSON object. Only the fields written here are touched;
everything else passes through as loaded.
"""

from __future__ import annotations

import copy
import json
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

import numpy as np
from PIL import Image

from .encoder import EncodedGrid
from .errors import ConfigurationError, ContentError
from .imaging import TILE_PIXELS, to_pixels

FROZEN_COLOR = (255, 255, 255)


@dataclass(frozen=True)
class WorldLaw:
    name: str
    enabled: bool

    def to_json(self) -> Dict[str, Any]:
        # A law that is on is recorded by name only.
        if self.enabled:
            return {"name": self.name}
        return {"name": self.name, "boolVal": False}


def parse_world_laws(lines: Iterable[str]) -> List[WorldLaw]:
    """Parse ``<name> <value>`` lines; lines without a space are skipped."""

    laws: List[WorldLaw] = []
    for line in lines:
        name, sep, value = line.rstrip("\r\n").partition(" ")
        if not sep:
            continue
        laws.append(WorldLaw(name.strip(), value.strip().lower() == "true"))
    return laws


def load_world_laws(path: str | Path) -> List[WorldLaw]:
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ConfigurationError(f"World laws file not found: {path}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigurationError(f"Failed to read world laws file: {path}") from exc
    return parse_world_laws(text.splitlines())


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not a JSON value")


def load_document(path: str | Path) -> Dict[str, Any]:
    """Load a map document; non-standard constants and lone surrogates are rejected."""

    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f, parse_constant=_reject_constant)
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Map data file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise ContentError(f"Map data is not valid JSON: {path}: {exc}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigurationError(f"Failed to read map data file: {path}") from exc
    except ValueError as exc:
        raise ContentError(f"Map data is not valid JSON: {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ContentError(f"Map data must be a JSON object: {path}")
    try:
        json.dumps(data, ensure_ascii=False).encode("utf-8")
    except UnicodeEncodeError as exc:
        raise ContentError(f"Map data contains text that is not valid UTF-8: {path}") from exc
    return data


def frozen_tiles(image: Image.Image) -> List[int]:
    """Linear indices (row-major, top row first) of the pure white pixels."""

    pixels = to_pixels(image)
    white = np.all(pixels == np.array(FROZEN_COLOR, dtype=np.uint8), axis=-1)
    return [int(i) for i in np.flatnonzero(white.reshape(-1))]


def check_freeze_size(freeze_map: Image.Image, width: int, height: int) -> None:
    if freeze_map.size != (width, height):
        raise ContentError(
            f"Freeze map is {freeze_map.size[0]}x{freeze_map.size[1]} "
            f"but the normalized image is {width}x{height}"
        )


def existing_tile_map(document: Dict[str, Any]) -> Optional[List[Any]]:
    tile_map = document.get("tileMap")
    return tile_map if isinstance(tile_map, list) else None


def _world_law_list(document: Dict[str, Any]) -> List[Any]:
    world_laws = document.get("worldLaws")
    if not isinstance(world_laws, dict):
        world_laws = {}
        document["worldLaws"] = world_laws
    law_list = world_laws.get("list")
    if not isinstance(law_list, list):
        law_list = []
        world_laws["list"] = law_list
    return law_list


def compose(
    document: Dict[str, Any],
    tile_ids: Sequence[str],
    grid: EncodedGrid,
    world_laws: Sequence[WorldLaw] = (),
    frozen: Optional[Sequence[int]] = None,
) -> Dict[str, Any]:
    """Return a copy of ``document`` updated with a freshly encoded grid.

    ``tile_ids`` are appended to ``tileMap`` unless already present. A
    document without a ``tileMap`` array keeps lacking one and a
    ``RuntimeWarning`` is issued.
    """

    result = copy.deepcopy(document)

    tile_map = existing_tile_map(result)
    if tile_map is None:
        warnings.warn("tileMap array not found in map data", RuntimeWarning, stacklevel=2)
    else:
        present = set(item for item in tile_map if isinstance(item, str))
        for tile_id in tile_ids:
            if tile_id not in present:
                tile_map.append(tile_id)
                present.add(tile_id)

    result["tileArray"] = list(grid.tile_array)
    result["tileAmounts"] = list(grid.tile_amounts)
    result["width"] = grid.width // TILE_PIXELS
    result["height"] = grid.height // TILE_PIXELS

    _world_law_list(result).extend(law.to_json() for law in world_laws)

    if frozen is not None:
        result["frozen_tiles"] = list(frozen)

    return result
