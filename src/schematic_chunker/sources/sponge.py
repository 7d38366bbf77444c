"""
Sponge Schematic Source (.schem versions 2 and 3)

Both versions store a name -> index palette compound and a byte stream of
variable-length integers, one per voxel in y -> z -> x order:

    Version 2 (root)            Version 3 (root.Schematic)
    Width/Height/Length         Width/Height/Length
    Palette                     Blocks.Palette
    BlockData                   Blocks.Data

Varints are little-endian groups of 7 bits with the top bit set on every
byte except the last. A block index never needs more than 5 bytes.
"""

import logging
from collections.abc import Mapping
from numbers import Integral
from typing import Any, Dict, Tuple

from ..errors import FormatError, MissingPaletteEntryError, VarintOverflowError
from .base import (
    BlockSample,
    BoundingExtent,
    NamedIdentity,
    SampleCursor,
    SinglePass,
    as_unsigned_bytes,
    get_compound,
    get_tag,
    is_array,
    read_extent,
)

logger = logging.getLogger(__name__)

VARINT_MAX_BYTES = 5


def decode_varint(buffer: bytes, offset: int) -> Tuple[int, int]:
    """
    Decode one varint.

    Args:
        buffer: Encoded byte stream
        offset: Position of the first byte

    Returns:
        Tuple of (value, bytes consumed)

    Raises:
        FormatError: If the stream ends inside the varint
        VarintOverflowError: If more than 5 bytes carry the continuation bit
    """
    value = 0
    size = 0
    while True:
        if offset + size >= len(buffer):
            raise FormatError("Truncated varint in block data.")
        byte = buffer[offset + size]
        value |= (byte & 0x7F) << (7 * size)
        size += 1
        if not byte & 0x80:
            return value, size
        if size >= VARINT_MAX_BYTES:
            raise VarintOverflowError(
                f"Varint at offset {offset} exceeds {VARINT_MAX_BYTES} bytes."
            )


def build_palette_index(palette_tag: Any) -> Dict[int, str]:
    """
    Invert a name -> index palette compound.

    Args:
        palette_tag: Compound mapping block names to integer indices

    Returns:
        Dictionary mapping index -> block name

    Raises:
        FormatError: If the palette is missing or holds non-integer indices
    """
    if not isinstance(palette_tag, Mapping):
        raise FormatError("Missing palette in schematic.")

    palette = {}
    for name, index in palette_tag.items():
        if isinstance(index, bool) or not isinstance(index, Integral):
            raise FormatError(f"Palette entry '{name}' has a non-integer index.")
        palette[int(index)] = str(name)
    return palette


class PaletteStreamCursor(SampleCursor):
    """Decodes one varint per voxel, resuming at the stored byte offset."""

    def __init__(self, extent: BoundingExtent, palette: Dict[int, str], stream: bytes):
        self._extent = extent
        self._palette = palette
        self._stream = stream
        self._offset = 0
        self._index = 0
        self._volume = extent.volume
        self._x = 0
        self._y = 0
        self._z = 0

    def has_more(self) -> bool:
        return self._index < self._volume

    def next_sample(self) -> BlockSample:
        if not self.has_more():
            raise StopIteration

        value, size = decode_varint(self._stream, self._offset)
        name = self._palette.get(value)
        if name is None:
            raise MissingPaletteEntryError(value)

        sample = BlockSample(self._x, self._y, self._z, NamedIdentity(name))

        self._offset += size
        self._index += 1
        self._x += 1
        if self._x == self._extent.width:
            self._x = 0
            self._z += 1
            if self._z == self._extent.length:
                self._z = 0
                self._y += 1
        return sample


class PaletteStreamSource:
    """
    Block source for Sponge schematics.

    Use the from_v2() / from_v3() constructors; they only differ in where
    the palette and stream tags live.
    """

    def __init__(
        self,
        extent: BoundingExtent,
        palette: Dict[int, str],
        stream: bytes,
        format_name: str = "sponge"
    ):
        self._extent = extent
        self._palette = palette
        self._stream = stream
        self._pass = SinglePass()
        self.format_name = format_name
        logger.debug(
            "%s schematic %dx%dx%d, %d palette entries",
            format_name, extent.width, extent.height, extent.length, len(palette)
        )

    @classmethod
    def from_v2(cls, tree: Any) -> "PaletteStreamSource":
        """Build a source from a version 2 root compound."""
        context = "Sponge v2 schematic"
        extent = read_extent(tree, context)
        palette_tag = get_tag(tree, "Palette")
        block_data = get_tag(tree, "BlockData")
        if palette_tag is None or not is_array(block_data):
            raise FormatError(f"Invalid {context}: missing required tags.")
        return cls(
            extent,
            build_palette_index(palette_tag),
            as_unsigned_bytes(block_data).tobytes(),
            "sponge_v2",
        )

    @classmethod
    def from_v3(cls, tree: Any) -> "PaletteStreamSource":
        """Build a source from a version 3 root compound (nested Schematic tag)."""
        context = "Sponge v3 schematic"
        schematic = get_compound(tree, "Schematic")
        if schematic is None:
            raise FormatError(f"Invalid {context}: missing Schematic tag.")

        extent = read_extent(schematic, context)
        blocks = get_compound(schematic, "Blocks")
        if blocks is None:
            raise FormatError(f"Invalid {context}: missing Blocks tag.")

        palette_tag = get_tag(blocks, "Palette")
        block_data = get_tag(blocks, "Data")
        if palette_tag is None or not is_array(block_data):
            raise FormatError(f"Invalid {context}: missing required tags.")
        return cls(
            extent,
            build_palette_index(palette_tag),
            as_unsigned_bytes(block_data).tobytes(),
            "sponge_v3",
        )

    @property
    def palette_size(self) -> int:
        return len(self._palette)

    def dimensions(self) -> BoundingExtent:
        return self._extent

    def samples(self) -> PaletteStreamCursor:
        self._pass.claim()
        return PaletteStreamCursor(self._extent, self._palette, self._stream)
