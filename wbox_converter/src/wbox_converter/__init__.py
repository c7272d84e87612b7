"""Image to .wbox tile map converter.

Quantizes an image against a tile palette, run-length encodes the resulting
tile grid and merges it into a JSON map document that is written zlib
compressed. Use the CLI (``python -m wbox_converter``) or the functions below.
"""

from .compressor import load_wbox, render_document, serialize_and_compress
from .converter import ConvertOptions, build_map_document, convert_file_to_wbox
from .document import WorldLaw, compose, frozen_tiles, parse_world_laws
from .encoder import EncodedGrid, KnownTileIds, encode, expand_runs
from .errors import (
    ConfigurationError,
    ContentError,
    ConversionError,
    EmptyPaletteError,
    TileResolutionError,
    WriteFailedError,
)
from .imaging import normalize_image, normalized_size
from .palette import PaletteEntry, PaletteIndex, load_palette, load_palette_file
from .quantizer import ColorMapping, quantize, rewrite

__all__ = [
    "ColorMapping",
    "ConfigurationError",
    "ContentError",
    "ConversionError",
    "ConvertOptions",
    "EmptyPaletteError",
    "EncodedGrid",
    "KnownTileIds",
    "PaletteEntry",
    "PaletteIndex",
    "TileResolutionError",
    "WorldLaw",
    "WriteFailedError",
    "build_map_document",
    "compose",
    "convert_file_to_wbox",
    "encode",
    "expand_runs",
    "frozen_tiles",
    "load_palette",
    "load_palette_file",
    "load_wbox",
    "normalize_image",
    "normalized_size",
    "parse_world_laws",
    "quantize",
    "render_document",
    "rewrite",
    "serialize_and_compress",
]
