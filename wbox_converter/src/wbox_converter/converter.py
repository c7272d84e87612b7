"""End-to-end conversion of an image into a ``.wbox`` map."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
from PIL import Image

from .compressor import serialize_and_compress
from .document import (
    WorldLaw,
    check_freeze_size,
    compose,
    existing_tile_map,
    frozen_tiles,
    load_document,
    load_world_laws,
)
from .encoder import EncodedGrid, KnownTileIds, encode
from .errors import ConfigurationError, WriteFailedError
from .imaging import from_pixels, normalize_image, open_rgb_image, to_pixels
from .palette import PaletteIndex, load_palette_file
from .quantizer import ColorMapping, quantize, rewrite


@dataclass
class ConvertOptions:
    """Input and output locations plus processing switches."""

    palette_path: Path = Path("palettes/no-special.txt")
    map_data_path: Path = Path("map_data.json")
    output_path: Path = Path("map.wbox")
    world_laws_path: Optional[Path] = Path("worldlaws/default.txt")
    freeze_map_path: Optional[Path] = None
    preview_path: Optional[Path] = None
    max_workers: Optional[int] = None
    validate_freeze_size: bool = False


@dataclass
class MapBuild:
    document: Dict[str, Any]
    grid: EncodedGrid
    mapping: ColorMapping
    known_ids: KnownTileIds
    pixels: np.ndarray
    frozen: Optional[List[int]] = None


@dataclass
class ConversionResult:
    output_path: Path
    build: MapBuild
    timings: List[Tuple[str, float]] = field(default_factory=list)


def build_map_document(
    image: Image.Image,
    palette: PaletteIndex,
    document: Dict[str, Any],
    world_laws: Sequence[WorldLaw] = (),
    freeze_map: Optional[Image.Image] = None,
    max_workers: Optional[int] = None,
    validate_freeze_size: bool = False,
) -> MapBuild:
    """Quantize ``image`` against ``palette`` and merge the result into ``document``."""

    image = normalize_image(image)
    pixels = to_pixels(image)
    mapping = quantize(pixels, palette, max_workers)
    pixels = rewrite(pixels, mapping, max_workers)

    known_ids = KnownTileIds(existing_tile_map(document) or [])
    known_ids, grid = encode(pixels, mapping, known_ids)

    frozen = None
    if freeze_map is not None:
        if validate_freeze_size:
            check_freeze_size(freeze_map, grid.width, grid.height)
        frozen = frozen_tiles(freeze_map)

    composed = compose(document, mapping.tile_ids(), grid, world_laws, frozen)
    return MapBuild(composed, grid, mapping, known_ids, pixels, frozen)


class _StageClock:
    def __init__(self) -> None:
        self.start = time.perf_counter()
        self.timings: List[Tuple[str, float]] = []

    def mark(self, stage: str) -> None:
        self.timings.append((stage, time.perf_counter() - self.start))


def convert_file_to_wbox(input_path: str | Path | None, options: ConvertOptions) -> ConversionResult:
    clock = _StageClock()

    palette = load_palette_file(options.palette_path)
    clock.mark("Palette loaded")

    if input_path is None:
        raise ConfigurationError("No input file provided")
    image = open_rgb_image(input_path, "image")
    document = load_document(options.map_data_path)
    world_laws: List[WorldLaw] = []
    if options.world_laws_path is not None:
        world_laws = load_world_laws(options.world_laws_path)
    freeze_map = None
    if options.freeze_map_path is not None:
        freeze_map = open_rgb_image(options.freeze_map_path, "freeze map")

    build = build_map_document(
        image,
        palette,
        document,
        world_laws,
        freeze_map,
        options.max_workers,
        options.validate_freeze_size,
    )
    clock.mark("Image processed and JSON updated")

    if options.preview_path is not None:
        try:
            from_pixels(build.pixels).save(options.preview_path)
        except (OSError, ValueError) as exc:
            raise WriteFailedError(f"Failed to save preview: {options.preview_path}: {exc}") from exc
        clock.mark("Preview saved")

    output_path = serialize_and_compress(build.document, options.output_path)
    clock.mark("Compression finished")

    return ConversionResult(output_path, build, clock.timings)
