"""
Block sources for the supported schematic formats.

Supported formats:
- Classic (.schematic) - numeric ids with optional AddBlocks nibbles
- Sponge v2 / v3 (.schem) - name palette plus varint stream
- Litematica (.litematic) - multi-region, bit-packed palette indices

select_format() inspects the file extension and tree shape and
open_block_source() builds the matching source.
"""

from enum import Enum
from typing import Any

from ..errors import FormatError
from .base import (
    BlockSample,
    BlockSource,
    BoundingExtent,
    NamedIdentity,
    NumericIdentity,
    RawIdentity,
    SampleCursor,
)
from .base import get_compound, get_tag
from .classic import ClassicSource
from .sponge import PaletteStreamSource, decode_varint
from .litematic import LitematicSource, bits_per_entry, unpack_index


class SchematicFormat(Enum):
    """Recognized container layouts."""
    CLASSIC = "classic"
    SPONGE_V2 = "sponge_v2"
    SPONGE_V3 = "sponge_v3"
    LITEMATIC = "litematic"


REGION_SUFFIXES = (".litematic",)


def select_format(tree: Any, suffix: str = "") -> SchematicFormat:
    """
    Pick the schematic format for a decoded tree.

    Args:
        tree: Root compound
        suffix: File extension including the dot (case-insensitive)

    Returns:
        The detected SchematicFormat

    Raises:
        FormatError: If the tree matches no known layout
    """
    suffix = (suffix or "").lower()

    if suffix in REGION_SUFFIXES or get_tag(tree, "Regions") is not None:
        return SchematicFormat.LITEMATIC

    schematic = get_compound(tree, "Schematic")
    if schematic is not None and get_tag(schematic, "Blocks") is not None:
        return SchematicFormat.SPONGE_V3

    if get_tag(tree, "BlockData") is not None and get_tag(tree, "Palette") is not None:
        return SchematicFormat.SPONGE_V2

    if get_tag(tree, "Blocks") is not None and get_tag(tree, "Data") is not None:
        return SchematicFormat.CLASSIC

    raise FormatError("Unrecognized schematic format.")


def open_block_source(tree: Any, suffix: str = "") -> BlockSource:
    """
    Build the block source for a decoded tree.

    Args:
        tree: Root compound
        suffix: File extension including the dot

    Returns:
        A block source exposing dimensions() and samples()
    """
    fmt = select_format(tree, suffix)
    if fmt == SchematicFormat.LITEMATIC:
        return LitematicSource(tree)
    if fmt == SchematicFormat.SPONGE_V3:
        return PaletteStreamSource.from_v3(tree)
    if fmt == SchematicFormat.SPONGE_V2:
        return PaletteStreamSource.from_v2(tree)
    return ClassicSource(tree)


__all__ = [
    "BlockSample",
    "BlockSource",
    "BoundingExtent",
    "ClassicSource",
    "LitematicSource",
    "NamedIdentity",
    "NumericIdentity",
    "PaletteStreamSource",
    "RawIdentity",
    "SampleCursor",
    "SchematicFormat",
    "bits_per_entry",
    "decode_varint",
    "open_block_source",
    "select_format",
    "unpack_index",
]
