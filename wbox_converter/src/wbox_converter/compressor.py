"""Render a map document and write it as a zlib stream (``.wbox``)."""

from __future__ import annotations

import contextlib
import json
import zlib
from pathlib import Path
from typing import Any, Dict

from .errors import ConfigurationError, ContentError, WriteFailedError

COMPRESSION_LEVEL = 1
CHUNK_SIZE = 64 * 1024


def render_document(document: Dict[str, Any]) -> str:
    return json.dumps(document, indent=2, sort_keys=True, ensure_ascii=False, allow_nan=False)


def serialize_and_compress(document: Dict[str, Any], output_path: str | Path) -> Path:
    """Write ``document`` to ``output_path``; a partial file is removed on failure."""

    output_path = Path(output_path)
    try:
        payload = render_document(document).encode("utf-8")
    except ValueError as exc:
        raise ContentError(f"Map data cannot be rendered as JSON: {exc}") from exc
    compressor = zlib.compressobj(COMPRESSION_LEVEL)
    try:
        with output_path.open("wb") as f:
            for start in range(0, len(payload), CHUNK_SIZE):
                f.write(compressor.compress(payload[start : start + CHUNK_SIZE]))
            f.write(compressor.flush())
    except OSError as exc:
        with contextlib.suppress(OSError):
            output_path.unlink(missing_ok=True)
        raise WriteFailedError(f"Failed to write output: {output_path}: {exc}") from exc
    return output_path


def load_wbox(path: str | Path) -> Dict[str, Any]:
    """Inflate and parse a ``.wbox`` file."""

    path = Path(path)
    try:
        data = path.read_bytes()
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Map file not found: {path}") from exc
    try:
        document = json.loads(zlib.decompress(data).decode("utf-8"))
    except (zlib.error, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ContentError(f"Not a valid .wbox file: {path}") from exc
    if not isinstance(document, dict):
        raise ContentError(f"Not a valid .wbox file: {path}")
    return document
