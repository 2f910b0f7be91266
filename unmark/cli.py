"""
Command Line Interface
======================
Batch watermark removal/insertion without the GUI.

Usage:
    unmark -i photo.png -o clean.png
    unmark -i ./inbox -o ./outbox --add --force-large
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from unmark.core import DEFAULT_LOGO_VALUE, BlendMode, EngineConfig, WatermarkEngine, WatermarkSize

log = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".bmp"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="unmark",
        description="Remove or add the bottom-right logo watermark on images."
    )
    parser.add_argument("-i", "--input", required=True,
                        help="Input image file or directory")
    parser.add_argument("-o", "--output", required=True,
                        help="Output image file or directory")

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("-r", "--remove", action="store_true",
                      help="Remove watermark (default action)")
    mode.add_argument("-a", "--add", action="store_true",
                      help="Add watermark")

    size = parser.add_mutually_exclusive_group()
    size.add_argument("--force-small", action="store_true",
                      help="Force small watermark (48x48)")
    size.add_argument("--force-large", action="store_true",
                      help="Force large watermark (96x96)")

    parser.add_argument("--logo-value", type=float, default=DEFAULT_LOGO_VALUE,
                        help="Logo brightness at full opacity (default: 255.0)")
    parser.add_argument("--assets", default=None,
                        help="Directory containing bg_48.png and bg_96.png")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable debug logging")
    return parser


def collect_images(directory: Path) -> List[Path]:
    """Supported image files directly inside ``directory``, sorted by name."""
    return sorted(
        p for p in directory.iterdir()
        if p.is_file() and p.suffix.lower() in SUPPORTED_EXTENSIONS
    )


def _size_override(args: argparse.Namespace) -> Optional[WatermarkSize]:
    if args.force_small:
        return WatermarkSize.SMALL
    if args.force_large:
        return WatermarkSize.LARGE
    return None


def run_batch(engine: WatermarkEngine, input_dir: Path, output_dir: Path, mode: BlendMode) -> int:
    """
    Process every supported image in a directory.

    Returns:
        Number of files that failed.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    success_count = 0
    fail_count = 0

    print(f"Batch processing directory: {input_dir}")

    for in_file in collect_images(input_dir):
        out_file = output_dir / in_file.name
        print(f"Processing: {in_file.name}... ", end="", flush=True)
        try:
            engine.process_file(in_file, out_file, mode)
        except Exception as e:
            print("FAILED")
            print(f"  Error: {e}", file=sys.stderr)
            log.debug("Failed to process %s", in_file, exc_info=True)
            fail_count += 1
        else:
            print("OK")
            success_count += 1

    print(f"\nCompleted: {success_count} succeeded, {fail_count} failed.")
    return fail_count


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point. Returns the process exit status."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s"
    )

    mode = BlendMode.ADD if args.add else BlendMode.REMOVE
    config = EngineConfig(logo_value=args.logo_value, size_override=_size_override(args))

    input_path = Path(args.input).resolve()
    output_path = Path(args.output).resolve()

    if not input_path.exists():
        print(f"Input path not found: {input_path}", file=sys.stderr)
        return 1

    try:
        engine = WatermarkEngine.from_assets(args.assets, config)
    except (OSError, ValueError) as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        return 1

    if input_path.is_dir():
        failed = run_batch(engine, input_path, output_path, mode)
        return 1 if failed else 0

    print(f"Processing: {input_path.name}")
    try:
        engine.process_file(input_path, output_path, mode)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        log.debug("Failed to process %s", input_path, exc_info=True)
        return 1

    print(f"[OK] Success: {output_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
