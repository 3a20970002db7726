"""
Command-line entry point: convert a D&D Beyond character export.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from .config import ExportSettings, configure_logging, load_settings
from .errors import CharacterFileError
from .formats.registry import FormatAdapterRegistry, create_default_registry
from .importers.dndbeyond import CharacterSheet, read_character_file
from .models import ConversionOptions
from .spellcasting.calculator import SpellSlotCalculator, validate_class_info

logger = logging.getLogger("vtt-export.cli")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="vtt-export",
        description="Convert a D&D Beyond character export for a virtual tabletop",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Show how well each format fits the character
  vtt-export character.json --rank

  # Convert with the best-ranked format
  vtt-export character.json --output character_export.json

  # Convert to a specific format
  vtt-export character.json --format fantasy-grounds --output character.xml
        """,
    )

    parser.add_argument(
        "file",
        type=Path,
        help="D&D Beyond character JSON file"
    )
    parser.add_argument(
        "--format",
        dest="format_id",
        help="Target format id (default: VTT_EXPORT_DEFAULT_FORMAT, else best-ranked format)"
    )
    parser.add_argument(
        "--output",
        type=Path,
        help="Write the converted document here instead of stdout"
    )
    parser.add_argument(
        "--rank",
        action="store_true",
        help="Only print the compatibility ranking of every format"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging, including spell slot calculations"
    )

    return parser.parse_args(argv)


def format_ranking_line(format_id: str, score: int, recommendation: str, data_loss: int) -> str:
    return f"{format_id:<18} {score:>3}  {recommendation:<9} data loss {data_loss}%"


async def run(
    args: argparse.Namespace,
    settings: ExportSettings,
    registry: FormatAdapterRegistry,
    sheet: CharacterSheet,
) -> int:
    if args.rank:
        for entry in await registry.get_adapters_by_compatibility(sheet):
            analysis = entry.compatibility
            print(format_ranking_line(entry.format_id, analysis.score, analysis.recommendation.value, analysis.data_loss))
            for limitation in analysis.limitations:
                print(f"    - {limitation}")
        return 0

    format_id = args.format_id or settings.default_format
    if format_id is None:
        ranked = await registry.get_adapters_by_compatibility(sheet)
        if not ranked:
            print("Error: no export formats are registered", file=sys.stderr)
            return 1
        format_id = ranked[0].format_id
        logger.info("Using best-ranked format %s (score %d)", format_id, ranked[0].compatibility.score)

    options = ConversionOptions(format_options={"indent": settings.json_indent})
    result = await registry.convert(format_id, sheet, options)
    if not result.success:
        print(f"Error: {result.error}", file=sys.stderr)
        return 1

    for warning in result.warnings:
        print(f"Warning: {warning}", file=sys.stderr)

    if args.output:
        args.output.write_text(result.data, encoding="utf-8")
        logger.info("Wrote %s (%d chars)", args.output, len(result.data))
    else:
        print(result.data)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the vtt-export command."""
    args = parse_args(argv)

    try:
        settings = load_settings()
    except ValidationError as e:
        print(f"Error: invalid settings in environment: {e}", file=sys.stderr)
        return 1
    if args.debug:
        settings = settings.model_copy(update={"log_level": "DEBUG", "spell_slot_debug": True})
    configure_logging(settings)

    try:
        data = read_character_file(args.file)
    except CharacterFileError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    sheet = CharacterSheet(data)
    for warning in validate_class_info(sheet.classes):
        logger.warning(warning)

    registry = create_default_registry(calculator=SpellSlotCalculator(debug=settings.spell_slot_debug))
    return asyncio.run(run(args, settings, registry, sheet))


if __name__ == "__main__":
    sys.exit(main())
