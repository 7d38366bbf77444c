#!/usr/bin/env python3
"""
Schematic Chunker Demo Script

This script demonstrates the full conversion pipeline by:
1. Creating synthetic schematics in every supported format (no files needed)
2. Saving them with nbtlib and loading them back
3. Converting with each naming policy and both column encodings
4. Printing statistics and exporting JSON/Lua

Run with: python examples/demo.py
"""

import sys
from pathlib import Path
import time

import nbtlib

# Add src to path for development
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from schematic_chunker import SchematicConverter
from schematic_chunker.builders import (
    demo_blocks,
    litematic_region,
    litematic_tree,
    sponge_v2_tree,
    sponge_v3_tree,
)
from schematic_chunker.encoding import ColumnEncoding
from schematic_chunker.naming import NamingPolicy


def create_demo_files(output_dir: Path) -> list:
    """
    Write one demo schematic per format.

    Returns:
        List of (name, path) tuples
    """
    files = []

    width, height, length, names = demo_blocks("House", 12)
    path = output_dir / "house_v2.schem"
    nbtlib.File(sponge_v2_tree(width, height, length, names)).save(path, gzipped=True)
    files.append(("house (Sponge v2)", path))

    width, height, length, names = demo_blocks("Tower", 10)
    path = output_dir / "tower_v3.schem"
    nbtlib.File(sponge_v3_tree(width, height, length, names)).save(path, gzipped=True)
    files.append(("tower (Sponge v3)", path))

    # Two regions, the second one placed across a chunk border
    width, height, length, names = demo_blocks("Tree", 9)
    regions = {
        "Tree": litematic_region((0, 0, 0), (width, height, length), names),
        "Copy": litematic_region((12, 0, 12), (-width, height, -length), names),
    }
    path = output_dir / "trees.litematic"
    nbtlib.File(litematic_tree(regions, name="Trees")).save(path, gzipped=True)
    files.append(("trees (Litematica)", path))

    return files


def run_demo():
    """Run the demonstration."""
    print("=" * 60)
    print("Schematic Chunker - Demo")
    print("=" * 60)
    print()

    # Create output directory
    output_dir = Path(__file__).parent / "output"
    output_dir.mkdir(exist_ok=True)

    total_start = time.time()

    for name, path in create_demo_files(output_dir):
        print(f"\n--- Processing: {name} ---")
        print(f"Input file: {path.name} ({path.stat().st_size} bytes)")

        print("\nNaming policies:")
        for policy in NamingPolicy:
            converter = SchematicConverter(naming=policy)
            converter.load(path)

            start = time.time()
            result = converter.convert()
            elapsed = time.time() - start

            print(f"  {policy.value}:")
            print(f"    Conversion: {elapsed*1000:.1f}ms")
            print(f"    Palette: {result.stats.palette_size} entries")
            print(f"    First entries: {result.palette[:3]}")

        print("\nColumn encodings:")
        for encoding in ColumnEncoding:
            converter = SchematicConverter(encoding=encoding, naming="compact")
            converter.load(path)
            result = converter.convert()
            entries = sum(
                len(payload)
                for columns in result.chunks.values()
                for payload in columns.values()
            )
            print(f"  {encoding.value}: {entries} column entries "
                  f"for {result.stats.stored_blocks} blocks")

        stats = result.stats
        print(f"\n  Size: {stats.size.width}x{stats.size.height}x{stats.size.length}")
        print(f"  Chunks: {stats.chunk_count}, Y range: {stats.min_y}-{stats.max_y}")

        print(f"\n  Exporting...")
        base_path = output_dir / path.stem
        for fmt in ("json", "lua"):
            try:
                written = converter.export(base_path.with_suffix(f".{fmt}"), fmt)
                print(f"    Saved: {written}")
            except Exception as e:
                print(f"    {fmt.upper()} export failed: {e}")

    total_time = time.time() - total_start

    print("\n" + "=" * 60)
    print(f"Demo complete! Total time: {total_time:.2f}s")
    print(f"Output files in: {output_dir}")
    print("=" * 60)

    return 0


if __name__ == "__main__":
    run_demo()
