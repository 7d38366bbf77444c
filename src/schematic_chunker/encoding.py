"""
Column Run Encoding with Numba JIT Compilation

Each column of a chunk is a list of (y, palette_index) pairs. Before
output the pairs are sorted by y and emitted in one of two shapes:

- RLE:    (start_y, length, palette_index) triples; a run grows while the
          next voxel sits directly above it and shares its palette index
- Sparse: (y, palette_index) pairs, unchanged

Worst case for RLE (no two stacked voxels alike) is one run per voxel.
"""

from enum import Enum
from typing import List, Sequence, Tuple
import numpy as np
from numba import njit


class ColumnEncoding(Enum):
    """Column payload shapes."""
    RLE = "rle"
    SPARSE = "sparse"


Pair = Tuple[int, int]
Run = Tuple[int, int, int]


@njit(cache=True)
def _encode_runs_sorted(ys: np.ndarray, indices: np.ndarray) -> np.ndarray:
    """
    Scan y-sorted pairs into runs.

    Args:
        ys: (N,) int64 y values, ascending
        indices: (N,) int64 palette indices

    Returns:
        (M, 3) int64 array of (start_y, length, palette_index)
    """
    n = ys.shape[0]
    runs = np.empty((n, 3), dtype=np.int64)
    count = 0

    run_start = ys[0]
    run_index = indices[0]
    run_length = 1

    for i in range(1, n):
        if ys[i] == run_start + run_length and indices[i] == run_index:
            run_length += 1
        else:
            runs[count, 0] = run_start
            runs[count, 1] = run_length
            runs[count, 2] = run_index
            count += 1
            run_start = ys[i]
            run_index = indices[i]
            run_length = 1

    runs[count, 0] = run_start
    runs[count, 1] = run_length
    runs[count, 2] = run_index
    count += 1

    return runs[:count]


def sort_column(pairs: Sequence[Pair]) -> Tuple[np.ndarray, np.ndarray]:
    """
    Stable-sort a column by y.

    Returns:
        Tuple of (ys, indices) int64 arrays
    """
    column = np.asarray(pairs, dtype=np.int64).reshape(-1, 2)
    order = np.argsort(column[:, 0], kind="stable")
    column = column[order]
    return np.ascontiguousarray(column[:, 0]), np.ascontiguousarray(column[:, 1])


def encode_runs(pairs: Sequence[Pair]) -> List[Run]:
    """
    Run-length encode one column.

    Args:
        pairs: (y, palette_index) pairs in any order

    Returns:
        List of (start_y, length, palette_index) runs, ascending by y
    """
    if len(pairs) == 0:
        return []
    ys, indices = sort_column(pairs)
    return [tuple(run) for run in _encode_runs_sorted(ys, indices).tolist()]


def sparse_pairs(pairs: Sequence[Pair]) -> List[Pair]:
    """Sort one column without compressing it."""
    if len(pairs) == 0:
        return []
    ys, indices = sort_column(pairs)
    return list(zip(ys.tolist(), indices.tolist()))


def expand_runs(runs: Sequence[Run]) -> List[Pair]:
    """
    Expand RLE runs back into (y, palette_index) pairs.

    Args:
        runs: (start_y, length, palette_index) triples

    Returns:
        Pairs in run order
    """
    pairs = []
    for start_y, length, palette_index in runs:
        pairs.extend((y, palette_index) for y in range(start_y, start_y + length))
    return pairs


class RunEncoder:
    """
    Encodes columns in the configured payload shape.

    Usage:
        encoder = RunEncoder(ColumnEncoding.RLE)
        runs = encoder.encode([(0, 1), (1, 1), (5, 2)])
        # [(0, 2, 1), (5, 1, 2)]
    """

    def __init__(self, encoding: ColumnEncoding = ColumnEncoding.RLE):
        self.encoding = encoding

    def encode(self, pairs: Sequence[Pair]) -> List[tuple]:
        """Encode one column of (y, palette_index) pairs."""
        if self.encoding == ColumnEncoding.RLE:
            return encode_runs(pairs)
        return sparse_pairs(pairs)
