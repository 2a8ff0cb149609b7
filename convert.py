#!/usr/bin/env python3
"""
Story course -> PowerPoint converter

Finds the course disc image in the content directory, plays it through
headless Chromium and writes one slide per player page.

Usage:
    python convert.py                               # ../content -> ../output.pptx
    python convert.py --content-dir ./courses       # Different input directory
    python convert.py --output deck.pptx --headed   # Watch the browser work
    python convert.py --max-slides 20 -v            # Short debug run
"""

import argparse
import logging
import sys
from pathlib import Path

from storydeck.config import CONTENT_DIR, MAX_SLIDES, OUTPUT_PPTX, SCRATCH_DIR, ConverterConfig
from storydeck.errors import SetupError
from storydeck.pipeline import convert_course

log = logging.getLogger("storydeck")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Convert a story-player course image into a PowerPoint deck",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--content-dir", type=Path, default=CONTENT_DIR,
        help=f"Directory holding the course .iso (default: {CONTENT_DIR})",
    )
    parser.add_argument(
        "--output", "-o", type=Path, default=OUTPUT_PPTX,
        help=f"Output .pptx path (default: {OUTPUT_PPTX})",
    )
    parser.add_argument(
        "--scratch-dir", type=Path, default=SCRATCH_DIR,
        help=f"Working directory for extraction, removed afterwards (default: {SCRATCH_DIR})",
    )
    parser.add_argument(
        "--max-slides", type=int, default=MAX_SLIDES,
        help=f"Stop after this many slides (default: {MAX_SLIDES})",
    )
    parser.add_argument("--headed", action="store_true", help="Show the browser window")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)-7s %(name)s  %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        config = ConverterConfig(
            content_dir=args.content_dir,
            output_path=args.output,
            scratch_dir=args.scratch_dir,
            max_slides=args.max_slides,
            headless=not args.headed,
        )
    except ValueError as e:
        log.error("Invalid configuration: %s", e)
        return 2

    log.info("Starting story to PPTX converter...")
    try:
        report = convert_course(config)
    except SetupError as e:
        log.error("%s: %s", type(e).__name__, e)
        return 1

    log.info(report.summary())
    return 0 if report.saved else 1


if __name__ == "__main__":
    sys.exit(main())
