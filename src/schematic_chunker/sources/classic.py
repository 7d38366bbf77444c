"""
Classic Schematic Source (MCEdit / WorldEdit .schematic)

The legacy format stores numeric block ids:
- Blocks: one byte per voxel (low 8 bits of the id)
- Data: one byte per voxel (4-bit data value)
- AddBlocks (optional): half-length nibble array extending ids past 255

For linear index i the AddBlocks nibble lives in byte i // 2: the low
nibble for even i, the high nibble for odd i. It is shifted into bits
8-11 of the id.
"""

import logging
from typing import Any, Optional
import numpy as np

from ..errors import FormatError
from .base import (
    BlockSample,
    BoundingExtent,
    NumericIdentity,
    SampleCursor,
    SinglePass,
    as_unsigned_bytes,
    get_tag,
    is_array,
    read_extent,
)

logger = logging.getLogger(__name__)

CONTEXT = "classic schematic"


def block_id_for_index(
    blocks: np.ndarray,
    add_blocks: Optional[np.ndarray],
    index: int
) -> int:
    """
    Resolve the full numeric block id at a linear index.

    Args:
        blocks: Unsigned Blocks array
        add_blocks: Unsigned AddBlocks array, or None
        index: Linear voxel index

    Returns:
        Block id (up to 12 bits)
    """
    low = int(blocks[index])
    if add_blocks is None:
        return low

    packed = int(add_blocks[index >> 1])
    if index % 2 == 0:
        high = packed & 0x0F
    else:
        high = (packed >> 4) & 0x0F
    return low | (high << 8)


class ClassicCursor(SampleCursor):
    """Walks Blocks/Data in y -> z -> x order."""

    def __init__(
        self,
        extent: BoundingExtent,
        blocks: np.ndarray,
        data: np.ndarray,
        add_blocks: Optional[np.ndarray]
    ):
        self._extent = extent
        self._blocks = blocks
        self._data = data
        self._add_blocks = add_blocks
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

        i = self._index
        identity = NumericIdentity(
            block_id_for_index(self._blocks, self._add_blocks, i),
            int(self._data[i]),
        )
        sample = BlockSample(self._x, self._y, self._z, identity)

        self._index += 1
        self._x += 1
        if self._x == self._extent.width:
            self._x = 0
            self._z += 1
            if self._z == self._extent.length:
                self._z = 0
                self._y += 1
        return sample


class ClassicSource:
    """
    Block source for the legacy numeric-id format.

    Usage:
        source = ClassicSource(tree)
        for sample in source.samples():
            ...
    """

    format_name = "classic"

    def __init__(self, tree: Any):
        """
        Validate the tree and prepare the byte arrays.

        Args:
            tree: Root compound of the schematic

        Raises:
            FormatError: If required tags are missing or sizes disagree
        """
        extent = read_extent(tree, CONTEXT)
        blocks = get_tag(tree, "Blocks")
        data = get_tag(tree, "Data")
        if not is_array(blocks) or not is_array(data):
            raise FormatError(f"Invalid {CONTEXT}: missing required tags.")

        self._blocks = as_unsigned_bytes(blocks)
        self._data = as_unsigned_bytes(data)

        volume = extent.volume
        if len(self._blocks) != volume or len(self._data) != volume:
            raise FormatError(
                f"Block array size mismatch: expected {volume}, got "
                f"Blocks={len(self._blocks)} Data={len(self._data)}."
            )

        add_blocks = get_tag(tree, "AddBlocks")
        self._add_blocks: Optional[np.ndarray] = None
        if add_blocks is not None:
            if not is_array(add_blocks):
                raise FormatError(f"Invalid {CONTEXT}: AddBlocks is not an array.")
            self._add_blocks = as_unsigned_bytes(add_blocks)
            if len(self._add_blocks) < (volume + 1) // 2:
                raise FormatError(
                    f"AddBlocks too short: expected {(volume + 1) // 2}, "
                    f"got {len(self._add_blocks)}."
                )

        self._extent = extent
        self._pass = SinglePass()
        logger.debug("Classic schematic %dx%dx%d", *extent)

    def dimensions(self) -> BoundingExtent:
        return self._extent

    def samples(self) -> ClassicCursor:
        self._pass.claim()
        return ClassicCursor(self._extent, self._blocks, self._data, self._add_blocks)
