"""Command-line front end: analyze one photo and print the estimate.

Usage:
    python -m repair_vision photo.jpg --description "rear bumper dent"
    python -m repair_vision photo.jpg --language sw --out-dir out --narrate

Requires ``GEMINI_API_KEY`` (and ``ELEVENLABS_API_KEY`` for ``--narrate``).
Set ``REPAIR_VISION_TELEMETRY=1`` to print per-stage timings to stderr.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
import sys

from repair_vision.config import SUPPORTED_LANGUAGES, Settings, resolve_settings
from repair_vision.core.exceptions import InvalidInputFileError, RepairVisionError
from repair_vision.core.types import AnalysisOutcome, DamageAnalysisResult
from repair_vision.costs import aggregate_costs, format_rwf, format_usd
from repair_vision.generation import GeminiImageBackend
from repair_vision.images import load_image_file
from repair_vision.narration import compose_narration
from repair_vision.orchestrator import AnalysisOrchestrator
from repair_vision.shopping import part_search_url
from repair_vision.speech import ElevenLabsSynthesizer
from repair_vision.telemetry import InMemoryReporter, TelemetryContext, telemetry_enabled

# ruff: noqa: T201


def render_estimate(analysis: DamageAnalysisResult) -> str:
    """Render the itemized estimate as a plain-text table."""
    if not analysis.costs:
        return "No damage was detected, or costs could not be estimated."

    name = analysis.vehicle.display_name or "Unidentified vehicle"
    rows = [
        (
            item.part,
            item.damage,
            item.suggestion.upper() if item.is_replacement else item.suggestion,
            format_usd(item.cost_usd),
            format_rwf(item.cost_rwf),
        )
        for item in analysis.costs
    ]
    totals = aggregate_costs(analysis.costs)
    header = ("Part", "Damage", "Action", "Cost (USD)", "Cost (RWF)")
    footer = ("", "", "Total", totals.formatted_usd, totals.formatted_rwf)
    widths = [max(len(r[i]) for r in (header, *rows, footer)) for i in range(5)]

    def fmt(row: tuple[str, ...]) -> str:
        left = [row[i].ljust(widths[i]) for i in range(3)]
        right = [row[i].rjust(widths[i]) for i in range(3, 5)]
        return "  ".join(left + right)

    rule = "-" * len(fmt(header))
    lines = [f"Repair estimate for {name}", rule, fmt(header), rule]
    lines.extend(fmt(r) for r in rows)
    lines.extend([rule, fmt(footer)])
    lines.append("")
    lines.extend(
        f"  {item.part}: {part_search_url(item.part, analysis.vehicle)}"
        for item in analysis.costs
    )
    return "\n".join(lines)


def _write_outputs(outcome: AnalysisOutcome, out_dir: Path) -> list[Path]:
    out_dir.mkdir(parents=True, exist_ok=True)
    written = []
    if outcome.analysis is not None:
        image = outcome.analysis.annotated_image
        path = out_dir / f"annotated.{image.extension}"
        path.write_bytes(image.data)
        written.append(path)
    if outcome.preview is not None:
        image = outcome.preview.repaired_image
        path = out_dir / f"repaired.{image.extension}"
        path.write_bytes(image.data)
        written.append(path)
    return written


async def main_async(args: argparse.Namespace, settings: Settings) -> int:
    image = load_image_file(args.photo)
    reporter = InMemoryReporter()
    telemetry = TelemetryContext(reporter)
    backend = GeminiImageBackend(settings.gemini)
    orchestrator = AnalysisOrchestrator(
        backend, settings=settings, telemetry=telemetry
    )
    outcome = await orchestrator.analyze(
        image.data, image.mime_type, args.description, language=args.language
    )

    for path in _write_outputs(outcome, args.out_dir):
        print(f"Wrote {path}")
    if outcome.analysis is not None:
        print(render_estimate(outcome.analysis))

    if args.narrate and outcome.analysis is not None:
        synthesizer = ElevenLabsSynthesizer(settings.elevenlabs, telemetry=telemetry)
        text = compose_narration(outcome.analysis.vehicle, outcome.analysis.costs)
        clip = await synthesizer.synthesize(text, args.language or settings.language)
        path = args.out_dir / "narration.mp3"
        path.write_bytes(clip.data)
        print(f"Wrote {path}")

    if telemetry_enabled():
        print(reporter.get_report(), file=sys.stderr)

    if outcome.error:
        print(outcome.error, file=sys.stderr)
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="repair-vision",
        description="Analyze vehicle damage in a photo and estimate repair costs",
    )
    parser.add_argument("photo", type=Path, help="Path to the vehicle photo")
    parser.add_argument(
        "--description", default="", help="Free-text description of the damage"
    )
    parser.add_argument("--language", choices=SUPPORTED_LANGUAGES, default=None)
    parser.add_argument(
        "--out-dir",
        type=Path,
        default=Path("repair_vision_output"),
        help="Directory for generated images and audio",
    )
    parser.add_argument(
        "--narrate", action="store_true", help="Also synthesize the spoken diagnosis"
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = resolve_settings()
        return asyncio.run(main_async(args, settings))
    except InvalidInputFileError as e:
        print(str(e), file=sys.stderr)
        return 2
    except (RepairVisionError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
