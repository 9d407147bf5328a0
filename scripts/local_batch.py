"""
Quick local batch helper: queues every image in a folder, runs one sequential
pass against the image-edit API and writes the PNG results to disk. This
bypasses the HTTP layer.
"""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

# Ensure project root is importable when running from scripts/
import sys

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from batch_edit_service import config
from batch_edit_service.context import AppContext
from batch_edit_service.downloads import encode_png, suggested_filename
from batch_edit_service.models import ItemStatus, SourceImage

IMAGE_SUFFIXES = {".jpg", ".jpeg", ".png", ".webp", ".bmp", ".gif"}


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Edit every image in a folder, one at a time")
    parser.add_argument("--input", required=True, help="Folder with source images")
    parser.add_argument("--output", required=True, help="Folder to write the edited PNGs to")
    parser.add_argument("--instruction", default=None, help="Global instruction (defaults to settings)")
    parser.add_argument(
        "--item-instruction",
        action="append",
        default=[],
        metavar="FILENAME=TEXT",
        help="Per-image instruction; may be given several times",
    )
    return parser.parse_args()


def _collect_sources(folder: Path) -> list[SourceImage]:
    return [
        SourceImage(filename=path.name, data=path.read_bytes())
        for path in sorted(folder.iterdir())
        if path.is_file() and path.suffix.lower() in IMAGE_SUFFIXES
    ]


async def _run(args: argparse.Namespace) -> int:
    input_dir = Path(args.input)
    output_dir = Path(args.output)
    if not input_dir.is_dir():
        raise FileNotFoundError(f"Input folder not found: {input_dir}")

    settings = config.get_settings()
    ctx = AppContext(settings)
    if args.instruction is not None:
        ctx.set_global_instruction(args.instruction)

    items = ctx.enqueue(_collect_sources(input_dir))
    overrides = dict(entry.split("=", 1) for entry in args.item_instruction if "=" in entry)
    for item in items:
        if item.source.filename in overrides:
            ctx.set_custom_instruction(item.item_id, overrides[item.source.filename])

    summary = await ctx.processor.run()
    print(f"Run {summary.outcome.value}: {summary.succeeded}/{summary.processed} succeeded")

    output_dir.mkdir(parents=True, exist_ok=True)
    for item in ctx.store.items():
        if item.status is ItemStatus.SUCCESS:
            target = output_dir / suggested_filename(item.source.filename, settings.result_filename_prefix)
            target.write_bytes(encode_png(item.result))
            print(f"{item.source.filename}: wrote {target}")
        else:
            print(f"{item.source.filename}: {item.status.value} {item.error_message or ''}".rstrip())
    return 0 if summary.failed == 0 else 1


def main() -> None:
    args = parse_args()
    raise SystemExit(asyncio.run(_run(args)))


if __name__ == "__main__":
    main()
