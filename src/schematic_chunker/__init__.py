"""
Schematic Chunker
=================

Converts voxel build schematics into a chunked, palette-indexed,
run-length-compressed representation for reconstruction in a voxel engine.

Supported inputs:
- Classic .schematic (numeric block ids, AddBlocks extension)
- Sponge .schem versions 2 and 3 (name palette, varint stream)
- Litematica .litematic (multi-region, bit-packed palette indices)

Key Features:
- Lazy per-voxel decoding: raw samples are never buffered
- Deterministic palette, chunk and column ordering
- 16x256x16 chunks with per-column vertical RLE or sparse pairs
- Full, compact (abbreviated states) or stripped block naming
- Export to JSON and Lua

Example Usage:
    from schematic_chunker import SchematicConverter

    converter = SchematicConverter(naming="compact")
    converter.load("castle.schem")
    result = converter.convert()
    converter.export_lua("castle.lua")
"""

__version__ = "1.0.0"
__author__ = "Schematic Chunker Team"

from .converter import (
    BatchConverter,
    ConversionOptions,
    ConversionResult,
    SchematicConverter,
    convert_source,
    convert_tree,
)
from .aggregator import ConversionStats, Palette, VoxelAggregator, chunk_coords
from .encoding import ColumnEncoding, RunEncoder, encode_runs, expand_runs
from .naming import NamingPolicy, canonical_key, is_air
from .ingestion import SchematicLoader
from .sources import SchematicFormat, open_block_source, select_format
from .errors import (
    FormatError,
    MissingPaletteEntryError,
    RegionSkipWarning,
    VarintOverflowError,
)

__all__ = [
    "SchematicConverter",
    "BatchConverter",
    "ConversionOptions",
    "ConversionResult",
    "ConversionStats",
    "convert_source",
    "convert_tree",
    "Palette",
    "VoxelAggregator",
    "chunk_coords",
    "ColumnEncoding",
    "RunEncoder",
    "encode_runs",
    "expand_runs",
    "NamingPolicy",
    "canonical_key",
    "is_air",
    "SchematicLoader",
    "SchematicFormat",
    "open_block_source",
    "select_format",
    "FormatError",
    "MissingPaletteEntryError",
    "RegionSkipWarning",
    "VarintOverflowError",
]
