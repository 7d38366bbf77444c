"""
Block Source Contract and Shared Types

Every schematic format is decoded by a block source exposing two things:
- dimensions(): the BoundingExtent declared by (or computed from) the file
- samples(): a lazy, single-pass cursor of BlockSample values

Samples are produced one at a time in y -> z -> x order so that the
per-voxel stream is never materialized; only the aggregated chunk data
is held in memory by the consumer.

Tag helpers in this module accept both nbtlib tags (Compound is a dict,
array tags are numpy arrays, scalar tags subclass int) and plain Python
mappings/lists of the same shape.
"""

from collections.abc import Mapping
from numbers import Integral
from typing import Any, Iterator, NamedTuple, Optional, Protocol, Tuple, Union, runtime_checkable
import numpy as np

from ..errors import FormatError


class BoundingExtent(NamedTuple):
    """Axis-aligned size of a build (x, y, z)."""
    width: int
    height: int
    length: int

    @property
    def volume(self) -> int:
        return self.width * self.height * self.length


class NumericIdentity(NamedTuple):
    """Legacy block identity: numeric id plus 4-bit data value."""
    block_id: int
    data_value: int


class NamedIdentity(NamedTuple):
    """Block identity by name, e.g. ``minecraft:oak_stairs[facing=north]``."""
    name: str


RawIdentity = Union[NumericIdentity, NamedIdentity]


class BlockSample(NamedTuple):
    """One positioned voxel as read from the source file."""
    x: int
    y: int
    z: int
    identity: RawIdentity


class SampleCursor:
    """
    Explicit cursor over the samples of one block source.

    Subclasses hold the format-specific offset state and implement
    has_more() and next_sample(); the iterator protocol is built on top.
    """

    def has_more(self) -> bool:
        raise NotImplementedError

    def next_sample(self) -> BlockSample:
        raise NotImplementedError

    def __iter__(self) -> Iterator[BlockSample]:
        return self

    def __next__(self) -> BlockSample:
        if not self.has_more():
            raise StopIteration
        return self.next_sample()


@runtime_checkable
class BlockSource(Protocol):
    """Capability shared by all schematic formats."""

    def dimensions(self) -> BoundingExtent:
        ...

    def samples(self) -> SampleCursor:
        ...


class SinglePass:
    """Guard that lets samples() hand out exactly one cursor."""

    def __init__(self):
        self._consumed = False

    def claim(self):
        if self._consumed:
            raise RuntimeError(
                "Block samples were already consumed; reload the schematic "
                "to traverse it again"
            )
        self._consumed = True


def linear_to_local(index: int, size_x: int, size_z: int) -> Tuple[int, int, int]:
    """
    Convert a linear index into (x, y, z) for y-outer, z-middle, x-inner storage.

    Args:
        index: Linear voxel index
        size_x: Extent along X
        size_z: Extent along Z

    Returns:
        Tuple of (x, y, z)
    """
    layer = size_x * size_z
    y, remainder = divmod(index, layer)
    z, x = divmod(remainder, size_x)
    return x, y, z


def get_tag(tree: Any, name: str) -> Any:
    """Return a child tag or None if the tree has no such child."""
    if not isinstance(tree, Mapping):
        return None
    return tree.get(name)


def get_compound(tree: Any, name: str) -> Optional[Mapping]:
    """Return a child compound, or None if absent or not a compound."""
    value = get_tag(tree, name)
    return value if isinstance(value, Mapping) else None


def require_int(tree: Any, name: str, context: str) -> int:
    """
    Read a required integer tag.

    Raises:
        FormatError: If the tag is absent, non-integral or negative
    """
    value = get_tag(tree, name)
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise FormatError(f"Invalid {context}: missing required tag '{name}'.")
    value = int(value)
    if value < 0:
        raise FormatError(f"Invalid {context}: negative '{name}' ({value}).")
    return value


def read_extent(tree: Any, context: str) -> BoundingExtent:
    """Read Width/Height/Length tags into a BoundingExtent."""
    return BoundingExtent(
        require_int(tree, "Width", context),
        require_int(tree, "Height", context),
        require_int(tree, "Length", context),
    )


def is_array(value: Any) -> bool:
    """Check whether a tag holds array data (bytes, numpy array or list)."""
    if value is None or isinstance(value, (str, Mapping)):
        return False
    return isinstance(value, (bytes, bytearray, memoryview, np.ndarray, list, tuple))


def as_unsigned_bytes(values: Any) -> np.ndarray:
    """
    View byte array data as unsigned 8-bit values.

    NBT byte arrays are signed; every consumer here wants ``value & 0xFF``.

    Args:
        values: bytes-like object, numpy array or sequence of ints

    Returns:
        uint8 numpy array
    """
    if isinstance(values, (bytes, bytearray, memoryview)):
        return np.frombuffer(values, dtype=np.uint8)
    return (np.asarray(values, dtype=np.int64) & 0xFF).astype(np.uint8)


def as_unsigned_words(values: Any) -> np.ndarray:
    """
    Reinterpret 64-bit long array data as unsigned 64-bit words.

    NBT long arrays are signed two's complement; bit unpacking reads them
    as unsigned so that indices stored in the sign bit survive.
    """
    words = np.asarray(values, dtype=np.int64)
    return np.ascontiguousarray(words).view(np.uint64)
