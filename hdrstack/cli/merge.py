"""hdrstack CLI merge.

Merges a burst of raw YUV420 frames of a static scene into one HDR JPEG.
"""

import argparse
import dataclasses
import logging
import os
import sys
import time
from typing import List, Optional

from hdrstack.domain.types import FrameGeometry, FrameMetadata
from hdrstack.features.accumulate.logic import accumulate
from hdrstack.features.accumulate.models import MAX_FRAMES
from hdrstack.features.tonemap.models import DegenerateTonemapError
from hdrstack.infrastructure.encoders import JpegFileEncoder
from hdrstack.infrastructure.loaders import SUPPORTED_RAW_EXTENSIONS, load_yuv420_frame
from hdrstack.kernel.image.validation import FrameGeometryError, validate_geometry
from hdrstack.kernel.image.wide import WideImage
from hdrstack.kernel.system.config import DEFAULT_HDR_CONFIG, ConfigError, load_config, save_config
from hdrstack.kernel.system.logging import setup_logging
from hdrstack.pipeline.merge import run_merge


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hdrstack",
        description="hdrstack -- merge a burst of YUV420 frames into an HDR still",
        epilog="Example: hdrstack --width 4056 --height 3040 --output ./out burst/",
    )

    parser.add_argument(
        "inputs",
        nargs="*",
        metavar="FILE_OR_DIR",
        help="Raw planar YUV420 frames, or directories containing them",
    )

    parser.add_argument("--width", type=int, default=None, metavar="INT", help="Frame width in pixels")
    parser.add_argument("--height", type=int, default=None, metavar="INT", help="Frame height in pixels")
    parser.add_argument(
        "--stride",
        type=int,
        default=None,
        metavar="INT",
        help="Luma row stride in bytes (default: width)",
    )

    parser.add_argument(
        "--output",
        default=".",
        metavar="DIR",
        help="Output directory (default: current directory)",
    )

    parser.add_argument(
        "--name",
        default="hdr",
        help="Output file name without extension (default: hdr)",
    )

    parser.add_argument(
        "--quality",
        type=int,
        default=93,
        metavar="INT",
        help="JPEG quality (default: 93)",
    )

    parser.add_argument(
        "--config",
        default=None,
        metavar="JSON_FILE",
        help="Load tuning from a flat JSON file layered over the defaults",
    )

    parser.add_argument(
        "--init-config",
        default=None,
        metavar="JSON_FILE",
        help="Write the default tuning to JSON_FILE and exit",
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        default=False,
        help="Log debug details",
    )

    return parser


def discover_files(inputs: List[str]) -> List[str]:
    """Resolves input paths to a sorted list of raw frame files."""
    files = []
    for input_path in inputs:
        path = os.path.abspath(input_path)
        if os.path.isfile(path):
            files.append(path)
        elif os.path.isdir(path):
            for fname in sorted(os.listdir(path)):
                fpath = os.path.join(path, fname)
                if os.path.isfile(fpath) and os.path.splitext(fname)[1].lower() in SUPPORTED_RAW_EXTENSIONS:
                    files.append(fpath)
        else:
            print(f"Warning: Path not found: {path}", file=sys.stderr)
    return files


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point. Returns 0 on success, 1 on failure."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    if args.init_config:
        save_config(DEFAULT_HDR_CONFIG, args.init_config)
        print(f"Config created: {os.path.abspath(args.init_config)}", file=sys.stderr)
        return 0

    if args.width is None or args.height is None:
        print("Error: --width and --height are required.", file=sys.stderr)
        return 1

    geometry = FrameGeometry(args.width, args.height, args.stride or args.width)
    try:
        validate_geometry(geometry)
    except FrameGeometryError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    files = discover_files(args.inputs)
    if not files:
        print("Error: No frame files found.", file=sys.stderr)
        return 1
    if len(files) > MAX_FRAMES:
        print(f"Error: At most {MAX_FRAMES} frames can be merged, got {len(files)}.", file=sys.stderr)
        return 1

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return 1
    config = dataclasses.replace(
        config, accumulate=dataclasses.replace(config.accumulate, num_frames=len(files))
    )

    total = len(files)
    print(f"Merging {total} frame(s) -> {os.path.abspath(args.output)}", file=sys.stderr)
    t_start = time.monotonic()

    acc = WideImage.allocate(geometry.width, geometry.height)
    try:
        for i, file_path in enumerate(files, 1):
            print(f"  [{i}/{total}] {os.path.basename(file_path)}", file=sys.stderr)
            frame = load_yuv420_frame(file_path, geometry)
            accumulate(acc, frame.data, geometry.stride)

        output = run_merge(acc, config, geometry)

        encoder = JpegFileEncoder(args.output, quality=args.quality)
        encoder.save(output, geometry, FrameMetadata(), args.name)
    except (FrameGeometryError, DegenerateTonemapError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Done: {encoder.path_for(args.name)} in {time.monotonic() - t_start:.1f}s", file=sys.stderr)
    return 0


def cli_entry() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    sys.exit(main())
