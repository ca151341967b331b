from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from pyimgnorm.config import NormalizeSettings, load_settings
from pyimgnorm.pipeline import ImageNormalizer
from pyimgnorm.sources import FileSource, LocatorSource, open_locator
from pyimgnorm.utils.encoding import encode_base64, mime_type_for


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pyimgnorm-normalize")
    parser.add_argument(
        "--input",
        required=True,
        help="Input image path or file:// URI",
    )
    output = parser.add_mutually_exclusive_group(required=True)
    output.add_argument("--output", default=None, help="Where to write the encoded image")
    output.add_argument(
        "--base64",
        action="store_true",
        help="Print the encoded image to stdout as a base64 data URI instead of writing a file",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Optional JSON/YAML settings file; explicit flags override its values",
    )
    parser.add_argument("--width", type=int, default=None, help="Target width in pixels. Default: 800")
    parser.add_argument("--height", type=int, default=None, help="Target height in pixels. Default: 600")
    parser.add_argument("--max-bytes", type=int, default=None, help="Encoded size budget. Default: 100000")
    parser.add_argument("--floor-quality", type=int, default=None, help="Lowest JPEG quality tried. Default: 10")
    parser.add_argument("--step", type=int, default=None, help="JPEG quality decrement per attempt. Default: 10")
    parser.add_argument("--codec", default=None, choices=["jpeg", "png"], help="Output codec. Default: jpeg")
    parser.add_argument(
        "--density",
        type=float,
        default=None,
        help="Density the source was authored at (1.0 = baseline); output is scaled by 1/density",
    )
    parser.add_argument(
        "--fit",
        default=None,
        choices=["contain", "cover"],
        help="Rescale the decoded image against the target box. Default: none (downsample only)",
    )
    parser.add_argument(
        "--zoom-to-budget",
        action="store_true",
        help="Shrink the image toward the byte budget before lowering JPEG quality",
    )
    parser.add_argument(
        "--report-json",
        default=None,
        help="Optional path to write a JSON summary (sizes, quality attempts, states)",
    )
    parser.add_argument(
        "--strict-budget",
        action="store_true",
        help="Exit with code 3 when the output still exceeds --max-bytes",
    )
    parser.add_argument("--log-level", default="WARNING", help="Logging level. Default: WARNING")
    return parser


def _resolve_settings(args: argparse.Namespace) -> NormalizeSettings:
    base = load_settings(args.config) if args.config else NormalizeSettings()
    return base.merged(
        target_width=args.width,
        target_height=args.height,
        max_bytes=args.max_bytes,
        floor_quality=args.floor_quality,
        step=args.step,
        codec=args.codec,
        density_override=args.density,
        fit=args.fit,
    )


def _build_source(raw: str):
    if raw.startswith("file://"):
        return LocatorSource(raw, open_locator)
    path = Path(raw)
    if not path.is_file():
        raise FileNotFoundError(f"Input not found: {path}")
    return FileSource(path)


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    try:
        settings = _resolve_settings(args)
        source = _build_source(args.input)
        budget = settings.budget()

        normalizer = ImageNormalizer(codec=settings.codec)
        result = normalizer.normalize(
            source,
            settings.target_width,
            settings.target_height,
            budget,
            settings.density_override,
            fit=settings.fit,
            zoom_to_budget=bool(args.zoom_to_budget),
        )

        if args.base64:
            print(encode_base64(result.data, mime_type=mime_type_for(settings.codec)))
        else:
            out_path = Path(args.output)
            out_path.parent.mkdir(parents=True, exist_ok=True)
            out_path.write_bytes(result.data)

        if args.report_json:
            report: dict[str, Any] = {"input": str(args.input), "output": args.output}
            report.update(result.to_dict())
            report_path = Path(args.report_json)
            report_path.parent.mkdir(parents=True, exist_ok=True)
            report_path.write_text(json.dumps(report, indent=2, sort_keys=True), encoding="utf-8")

        if args.strict_budget and not result.within_budget:
            print(
                f"error: output is {len(result.data)} bytes, budget is {budget.max_bytes}",
                file=sys.stderr,
            )
            return 3
        return 0
    except Exception as exc:  # noqa: BLE001 - CLI boundary
        print(f"error: {exc}", file=sys.stderr)
        print(f"context: input={args.input!r}", file=sys.stderr)
        if args.config:
            print(f"context: config={args.config!r}", file=sys.stderr)
        return 2


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
