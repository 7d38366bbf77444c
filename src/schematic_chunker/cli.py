"""
Command-Line Interface for Schematic Chunker

Usage:
    schemchunk build.schem output.lua
    schemchunk build.schem output.lua --compact
    schemchunk build.litematic output.json --out json --stats
    schemchunk --batch builds/ --output-dir converted/ --out json

"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional
import time

from .converter import BatchConverter, ConversionOptions, SchematicConverter
from .aggregator import ConversionStats


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="schemchunk",
        description="Schematic Chunker - Convert voxel schematics to chunked, RLE-compressed data",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  schemchunk build.schem output.lua
      Convert a Sponge schematic to a Lua table

  schemchunk build.schem output.lua --compact
      Abbreviate block states (oak_stairs[f=n,h=t])

  schemchunk build.litematic output.json --out json --stats
      Convert a Litematica file to JSON and print statistics

  schemchunk --batch builds/ --output-dir converted/ --out json
      Convert every schematic in a directory

Input formats:
  .schematic   WorldEdit/MCEdit classic schematic
  .schem       Sponge schematic (versions 2 and 3)
  .litematic   Litematica schematic
        """
    )

    parser.add_argument(
        "input",
        nargs="?",
        help="Input schematic file"
    )

    parser.add_argument(
        "output",
        nargs="?",
        help="Output file path"
    )

    parser.add_argument(
        "--out",
        choices=["lua", "json"],
        default="lua",
        type=str.lower,
        help="Output format (default: lua)"
    )

    parser.add_argument(
        "--include-air",
        action="store_true",
        help="Include air blocks in output"
    )

    parser.add_argument(
        "--no-rle",
        action="store_true",
        help="Disable RLE compression (sparse [y, index] pairs)"
    )

    parser.add_argument(
        "--compact",
        action="store_true",
        help="Compact block names (strip prefix, abbreviate states)"
    )

    parser.add_argument(
        "--strip-states", "--normalize",
        dest="strip_states",
        action="store_true",
        help="Strip all block states (loses metadata)"
    )

    # Batch processing
    parser.add_argument(
        "--batch",
        help="Batch convert a directory of schematics"
    )

    parser.add_argument(
        "--output-dir",
        help="Output directory for batch processing"
    )

    # Misc
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output"
    )

    parser.add_argument(
        "--stats",
        action="store_true",
        help="Print detailed statistics"
    )

    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 1.0.0"
    )

    return parser


def options_from_args(args) -> ConversionOptions:
    """Map parsed flags onto ConversionOptions."""
    return ConversionOptions.from_flags(
        include_air=args.include_air,
        use_rle=not args.no_rle,
        compact=args.compact,
        strip_states=args.strip_states,
    )


def format_stats(stats: ConversionStats) -> str:
    """Render conversion statistics as a text block."""
    size = stats.size
    lines = [
        "",
        "--- Conversion Statistics ---",
        f"  Build size:      {size.width} x {size.height} x {size.length}",
        f"  Total blocks:    {stats.total_blocks:,}",
        f"  Non-air blocks:  {stats.non_air_blocks:,}",
        f"  Stored blocks:   {stats.stored_blocks:,}",
        f"  Palette size:    {stats.palette_size}",
        f"  Chunk count:     {stats.chunk_count}",
        f"  Y range:         {stats.min_y} - {stats.max_y}",
        "-----------------------------",
        "",
    ]
    if stats.clamped_blocks:
        lines.insert(-2, f"  Out of height:   {stats.clamped_blocks:,}")
    return "\n".join(lines)


def process_single(args) -> int:
    """Convert a single schematic file."""
    if not args.input or not args.output:
        print("Error: Missing input or output path.", file=sys.stderr)
        return 1

    input_path = Path(args.input).resolve()
    output_path = Path(args.output).resolve()
    if not input_path.exists():
        print(f"Error: Input file not found: {input_path}", file=sys.stderr)
        return 1

    start_time = time.time()

    try:
        converter = SchematicConverter.from_options(options_from_args(args))

        print(f"Reading: {input_path}")
        converter.load(input_path)

        if args.verbose:
            print("Building chunked data...")
        result = converter.convert()
        size = result.size
        print(f"Parsed: {size.width}x{size.height}x{size.length}")

        if args.stats:
            print(format_stats(result.stats))

        written = converter.export(output_path, args.out)
        size_kb = written.stat().st_size / 1024
        print(f"Wrote {args.out.upper()} to: {written} ({size_kb:.2f} KB)")
        print(
            f"Summary: {result.stats.stored_blocks:,} blocks, "
            f"{result.stats.palette_size} palette entries, "
            f"{result.stats.chunk_count} chunks"
        )

        elapsed = time.time() - start_time
        if args.verbose:
            print(f"\nCompleted in {elapsed:.2f}s")

        return 0

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


def process_batch(args) -> int:
    """Convert every schematic in a directory."""
    batch_dir = Path(args.batch)
    if not batch_dir.is_dir():
        print(f"Error: Batch directory not found: {batch_dir}", file=sys.stderr)
        return 1

    output_dir = Path(args.output_dir) if args.output_dir else batch_dir / "output"

    start_time = time.time()

    try:
        options = options_from_args(args)
        processor = BatchConverter(
            include_air=options.include_air,
            encoding=options.encoding,
            naming=options.naming,
        )

        outputs = processor.process_directory(batch_dir, output_dir, fmt=args.out)

        elapsed = time.time() - start_time
        print(f"Converted {len(outputs)} files in {elapsed:.2f}s")
        print(f"Output directory: {output_dir}")

        return 0

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    if args.batch:
        return process_batch(args)
    return process_single(args)


if __name__ == "__main__":
    sys.exit(main())
