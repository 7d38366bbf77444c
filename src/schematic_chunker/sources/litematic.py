"""
Litematica Source (.litematic)

A litematic holds any number of independently placed regions. Each region
packs its palette indices into 64-bit words:

    bits_per_entry    = max(2, ceil(log2(palette_size)))
    entries_per_word  = 64 // bits_per_entry
    word_index        = i // entries_per_word
    bit_offset        = (i % entries_per_word) * bits_per_entry

Entries never straddle a word boundary; the unused top bits of each word
are padding. Words are stored as signed longs and read as unsigned.

Region sizes may be negative (the region extends backwards from its
origin); only the magnitude matters for iteration.
"""

import logging
import warnings
from collections.abc import Mapping
from dataclasses import dataclass
from numbers import Integral
from typing import Any, List, Optional, Tuple
import numpy as np

from ..errors import FormatError, RegionSkipWarning
from .base import (
    BlockSample,
    BoundingExtent,
    NamedIdentity,
    SampleCursor,
    SinglePass,
    as_unsigned_words,
    get_compound,
    get_tag,
    is_array,
    linear_to_local,
)

logger = logging.getLogger(__name__)

AIR_NAME = "minecraft:air"


def bits_per_entry(palette_size: int) -> int:
    """Bit width of one packed index: max(2, ceil(log2(palette_size)))."""
    return max(2, (palette_size - 1).bit_length())


def unpack_index(words: np.ndarray, index: int, bits: int) -> Optional[int]:
    """
    Read one packed palette index.

    Args:
        words: Unsigned 64-bit words
        index: Linear entry index within the region
        bits: Bits per entry

    Returns:
        The palette index, or None if the word array is too short
    """
    per_word = 64 // bits
    word_index, slot = divmod(index, per_word)
    if word_index >= len(words):
        return None
    return (int(words[word_index]) >> (slot * bits)) & ((1 << bits) - 1)


def palette_entry_name(entry: Any) -> str:
    """
    Render a BlockStatePalette entry as ``Name[key=value,...]``.

    Properties keep their stored order; an entry without Name is air.
    """
    if not isinstance(entry, Mapping):
        return AIR_NAME
    name = entry.get("Name")
    if not name:
        return AIR_NAME
    properties = entry.get("Properties")
    if not properties:
        return str(name)
    states = ",".join(f"{key}={value}" for key, value in properties.items())
    return f"{name}[{states}]"


def _vec3(tag: Any) -> Optional[Tuple[int, int, int]]:
    """Read an {x, y, z} compound; missing axes default to 0."""
    if not isinstance(tag, Mapping):
        return None
    axes = []
    for axis in ("x", "y", "z"):
        value = tag.get(axis, 0)
        if isinstance(value, bool) or not isinstance(value, Integral):
            return None
        axes.append(int(value))
    return axes[0], axes[1], axes[2]


@dataclass
class RegionLayout:
    """Decoded placement and packing parameters of one region."""
    name: str
    position: Tuple[int, int, int]
    size: Tuple[int, int, int]
    palette: List[str]
    words: np.ndarray

    @property
    def volume(self) -> int:
        return self.size[0] * self.size[1] * self.size[2]

    @property
    def bits(self) -> int:
        return bits_per_entry(len(self.palette))

    @property
    def far_corner(self) -> Tuple[int, int, int]:
        """Exclusive upper corner used for the overall extent."""
        return tuple(p + s for p, s in zip(self.position, self.size))


def read_region(name: str, region: Any) -> Optional[RegionLayout]:
    """
    Decode one region compound.

    Returns:
        RegionLayout, or None if the region is malformed
    """
    if not isinstance(region, Mapping):
        return None

    position = _vec3(region.get("Position"))
    size = _vec3(region.get("Size"))
    block_states = region.get("BlockStates")
    palette = region.get("BlockStatePalette")

    if position is None or size is None:
        return None
    if not is_array(block_states) or len(block_states) == 0:
        return None
    if not is_array(palette) or len(palette) == 0:
        return None

    return RegionLayout(
        name=str(name),
        position=position,
        size=(abs(size[0]), abs(size[1]), abs(size[2])),
        palette=[palette_entry_name(entry) for entry in palette],
        words=as_unsigned_words(block_states),
    )


class RegionCursor(SampleCursor):
    """Walks regions in document order, each in y -> z -> x order."""

    def __init__(self, regions: List[RegionLayout]):
        self._regions = regions
        self._region_index = 0
        self._entry = 0
        self._settle()

    def _settle(self):
        """Move past exhausted regions and regions whose words ran out."""
        while self._region_index < len(self._regions):
            region = self._regions[self._region_index]
            if self._entry < region.volume:
                if self._entry // (64 // region.bits) < len(region.words):
                    return
                warnings.warn(
                    f"Region '{region.name}' ends after {self._entry} of "
                    f"{region.volume} entries: BlockStates is truncated",
                    RegionSkipWarning,
                    stacklevel=2,
                )
            self._region_index += 1
            self._entry = 0

    def has_more(self) -> bool:
        return self._region_index < len(self._regions)

    def next_sample(self) -> BlockSample:
        if not self.has_more():
            raise StopIteration

        region = self._regions[self._region_index]
        palette_index = unpack_index(region.words, self._entry, region.bits)
        if palette_index is not None and palette_index < len(region.palette):
            name = region.palette[palette_index]
        else:
            name = AIR_NAME

        size_x, _, size_z = region.size
        x, y, z = linear_to_local(self._entry, size_x, size_z)
        px, py, pz = region.position
        sample = BlockSample(px + x, py + y, pz + z, NamedIdentity(name))

        self._entry += 1
        self._settle()
        return sample


class LitematicSource:
    """
    Block source for multi-region Litematica files.

    Malformed regions are skipped with a RegionSkipWarning when the
    source is constructed.
    """

    format_name = "litematic"

    def __init__(self, tree: Any):
        """
        Collect the region layouts and compute the overall extent.

        Args:
            tree: Root compound of the litematic

        Raises:
            FormatError: If the Regions compound is missing
        """
        regions = get_compound(tree, "Regions")
        if regions is None:
            raise FormatError("Invalid litematic: missing Regions tag.")

        metadata = get_compound(tree, "Metadata")
        enclosing = _vec3(get_tag(metadata, "EnclosingSize")) or (0, 0, 0)
        width, height, length = enclosing

        self._regions: List[RegionLayout] = []
        for name, region_tag in regions.items():
            layout = read_region(name, region_tag)
            if layout is None:
                warnings.warn(
                    f"Skipping malformed region: {name}",
                    RegionSkipWarning,
                    stacklevel=2,
                )
                continue

            self._regions.append(layout)
            far_x, far_y, far_z = layout.far_corner
            width = max(width, far_x)
            height = max(height, far_y)
            length = max(length, far_z)

        self._extent = BoundingExtent(width, height, length)
        self._pass = SinglePass()
        logger.debug(
            "Litematic %dx%dx%d with %d usable regions",
            width, height, length, len(self._regions)
        )

    @property
    def regions(self) -> List[RegionLayout]:
        return list(self._regions)

    def dimensions(self) -> BoundingExtent:
        return self._extent

    def samples(self) -> RegionCursor:
        self._pass.claim()
        return RegionCursor(self._regions)
