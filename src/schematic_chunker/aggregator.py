"""
Chunked Voxel Aggregation

This module provides:
- Palette: insertion-ordered, deduplicated canonical block keys
- ConversionStats: counters collected during the pass
- VoxelAggregator: single-pass bucketing of block samples into
  16x256x16 chunks and their vertical columns

Memory: only stored voxels are kept, as (y, palette_index) pairs grouped
per column, plus the palette. The raw sample stream is never buffered.

Ordering: palette indices follow first-seen order of the source traversal;
chunks and columns are emitted sorted by their integer keys, so repeated
runs over the same input are identical.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple
import logging

from .naming import NamingPolicy, canonical_key, is_air
from .sources.base import BlockSample, BoundingExtent

logger = logging.getLogger(__name__)

# Chunk granularity
CHUNK_SIZE_X = 16
CHUNK_SIZE_Y = 256
CHUNK_SIZE_Z = 16

ChunkKey = Tuple[int, int]
ColumnKey = Tuple[int, int]


def chunk_coords(x: int, z: int) -> Tuple[ChunkKey, ColumnKey]:
    """
    Map a world column to its chunk and local column.

    Python's floor division and modulo give the floor semantics needed for
    negative coordinates.

    Args:
        x, z: World coordinates

    Returns:
        Tuple of ((chunk_x, chunk_z), (local_x, local_z))
    """
    chunk_x, local_x = divmod(x, CHUNK_SIZE_X)
    chunk_z, local_z = divmod(z, CHUNK_SIZE_Z)
    return (chunk_x, chunk_z), (local_x, local_z)


class Palette:
    """Insertion-ordered set of canonical keys with dense indices."""

    def __init__(self):
        self._index: Dict[str, int] = {}

    def index_of(self, key: str) -> int:
        """Return the index of a key, appending it on first sight."""
        index = self._index.get(key)
        if index is None:
            index = len(self._index)
            self._index[key] = index
        return index

    @property
    def entries(self) -> List[str]:
        return list(self._index)

    def __len__(self) -> int:
        return len(self._index)

    def __contains__(self, key: str) -> bool:
        return key in self._index


@dataclass
class ConversionStats:
    """Counters gathered while aggregating one schematic."""
    size: BoundingExtent = BoundingExtent(0, 0, 0)
    total_blocks: int = 0
    non_air_blocks: int = 0
    air_blocks: int = 0
    clamped_blocks: int = 0
    stored_blocks: int = 0
    palette_size: int = 0
    chunk_count: int = 0
    min_y: int = 0
    max_y: int = 0

    def to_dict(self) -> dict:
        return {
            "size": {
                "width": self.size.width,
                "height": self.size.height,
                "length": self.size.length,
            },
            "totalBlocks": self.total_blocks,
            "nonAirBlocks": self.non_air_blocks,
            "airBlocks": self.air_blocks,
            "clampedBlocks": self.clamped_blocks,
            "storedBlocks": self.stored_blocks,
            "paletteSize": self.palette_size,
            "chunkCount": self.chunk_count,
            "minY": self.min_y,
            "maxY": self.max_y,
        }


@dataclass
class VoxelAggregator:
    """
    Buckets block samples into chunk columns.

    The aggregator consumes exactly one sample stream. For each sample:
    1. Air is skipped unless include_air is set
    2. Samples outside 0 <= y < 256 are dropped
    3. The canonical key is resolved and given a palette index
    4. (y, palette_index) is appended to its chunk column
    """

    naming: NamingPolicy = NamingPolicy.FULL
    include_air: bool = False
    palette: Palette = field(default_factory=Palette)
    stats: ConversionStats = field(default_factory=ConversionStats)
    _chunks: Dict[ChunkKey, Dict[ColumnKey, List[Tuple[int, int]]]] = field(
        init=False, repr=False,
        default_factory=lambda: defaultdict(lambda: defaultdict(list))
    )
    _consumed: bool = field(init=False, repr=False, default=False)

    def consume(self, samples: Iterable[BlockSample]) -> "VoxelAggregator":
        """
        Run the aggregation pass.

        Args:
            samples: Lazy sample sequence from a block source

        Returns:
            self for method chaining
        """
        if self._consumed:
            raise RuntimeError("VoxelAggregator has already consumed a sample stream")
        self._consumed = True

        stats = self.stats
        min_y = None
        max_y = None
        # canonical keys are pure per identity; cache them for the pass
        keys: Dict[object, str] = {}

        for x, y, z, identity in samples:
            stats.total_blocks += 1

            air = is_air(identity)
            if air:
                stats.air_blocks += 1
                if not self.include_air:
                    continue

            if y < 0 or y >= CHUNK_SIZE_Y:
                stats.clamped_blocks += 1
                continue

            key = keys.get(identity)
            if key is None:
                key = canonical_key(identity, self.naming)
                keys[identity] = key
            palette_index = self.palette.index_of(key)

            chunk_key, column_key = chunk_coords(x, z)
            self._chunks[chunk_key][column_key].append((y, palette_index))

            stats.stored_blocks += 1
            min_y = y if min_y is None else min(min_y, y)
            max_y = y if max_y is None else max(max_y, y)

        stats.non_air_blocks = stats.total_blocks - stats.air_blocks
        stats.palette_size = len(self.palette)
        stats.chunk_count = len(self._chunks)
        stats.min_y = min_y if min_y is not None else 0
        stats.max_y = max_y if max_y is not None else 0

        logger.info(
            "Aggregated %d blocks into %d chunks (%d palette entries)",
            stats.stored_blocks, stats.chunk_count, stats.palette_size
        )
        return self

    def sorted_chunks(self) -> List[Tuple[ChunkKey, List[Tuple[ColumnKey, List[Tuple[int, int]]]]]]:
        """
        Chunks ascending by (chunk_x, chunk_z), columns by (local_x, local_z).

        Column pairs are still in traversal order; the run encoder sorts them.
        """
        return [
            (chunk_key, sorted(self._chunks[chunk_key].items()))
            for chunk_key in sorted(self._chunks)
        ]
