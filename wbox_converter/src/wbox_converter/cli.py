"""Command line interface for the wbox converter."""

from __future__ import annotations

import argparse
import sys
import warnings
from pathlib import Path

from .converter import ConvertOptions, convert_file_to_wbox
from .errors import ConversionError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wbox-converter",
        description=(
            "Quantize an image against a tile palette and write a run-length encoded "
            "map (.wbox).\nThe image is resized to a multiple of 64 pixels per axis "
            "(at least 128x128); one pixel becomes one tile."
        ),
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument(
        "input",
        nargs="?",
        metavar="IMAGE_FILE",
        help="Input image file (ex: images/example.png)",
    )
    parser.add_argument(
        "-p",
        "--palette",
        default="palettes/no-special.txt",
        metavar="PALETTE_FILE",
        help="Palette file with one '<id> #RRGGBB' entry per line",
    )
    parser.add_argument(
        "-m",
        "--map-data",
        default="map_data.json",
        metavar="MAP_JSON",
        help="JSON map data to merge the encoded grid into",
    )
    parser.add_argument(
        "-o",
        "--output",
        default="map.wbox",
        metavar="OUTPUT_FILE",
        help="Output file name",
    )
    parser.add_argument(
        "-w",
        "--world-laws",
        default="worldlaws/default.txt",
        metavar="WORLD_LAWS_FILE",
        help="World laws file with one '<name> <true|false>' entry per line",
    )
    parser.add_argument(
        "--no-world-laws",
        action="store_true",
        help="Do not append any world laws",
    )
    parser.add_argument(
        "-f",
        "--freeze-map",
        metavar="FREEZE_MAP_IMAGE",
        help="Optional image whose pure white pixels mark frozen tiles",
    )
    parser.add_argument(
        "--check-freeze-size",
        action="store_true",
        help="Fail if the freeze map size differs from the normalized image size",
    )
    parser.add_argument(
        "--preview",
        metavar="PREVIEW_IMAGE",
        help="Also save the quantized image (ex: output.png)",
    )
    parser.add_argument(
        "--workers",
        type=int,
        help="Worker threads for quantization (default: CPU count)",
    )
    parser.add_argument(
        "-n",
        "--no-pause",
        action="store_true",
        help="Do not wait for Enter before exiting",
    )
    return parser


def options_from_args(args: argparse.Namespace) -> ConvertOptions:
    if args.workers is not None and args.workers < 1:
        raise ConversionError("--workers must be at least 1")
    return ConvertOptions(
        palette_path=Path(args.palette),
        map_data_path=Path(args.map_data),
        output_path=Path(args.output),
        world_laws_path=None if args.no_world_laws else Path(args.world_laws),
        freeze_map_path=Path(args.freeze_map) if args.freeze_map else None,
        preview_path=Path(args.preview) if args.preview else None,
        max_workers=args.workers,
        validate_freeze_size=args.check_freeze_size,
    )


def pause_before_exit() -> None:
    if not sys.stdin or not sys.stdin.isatty():
        return
    print("Press Enter to exit...")
    try:
        input()
    except EOFError:
        pass


def run(args: argparse.Namespace) -> int:
    error: ConversionError | None = None
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        try:
            result = convert_file_to_wbox(args.input, options_from_args(args))
        except ConversionError as exc:
            error = exc
    for warning in caught:
        print(f"Warning: {warning.message}", file=sys.stderr)
    if error is not None:
        print(f"Error: {error}", file=sys.stderr)
        return 1

    for stage, elapsed in result.timings:
        print(f"{stage} in {elapsed:.3f}s")
    if result.build.frozen is not None:
        print(f"Frozen tiles added: {len(result.build.frozen)}")
    if args.preview:
        print(f"wrote {args.preview}")
    print(f"wrote {result.output_path}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    status = run(args)
    if not args.no_pause:
        pause_before_exit()
    return status


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
