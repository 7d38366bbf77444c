"""
Schematic Ingestion Module

This module handles:
- Reading schematic bytes once from disk
- gzip detection by magic number
- NBT decoding into a tagged tree (nbtlib)
- One decompression retry for formats that may ship zlib-wrapped data

The decoded tree is an nbtlib.File: a Compound (dict) whose array tags are
numpy arrays and whose scalar tags subclass int.
"""

from pathlib import Path
from typing import Any, Optional, Union
import gzip
import io
import logging
import struct
import zlib

import nbtlib

from .errors import FormatError

logger = logging.getLogger(__name__)

GZIP_MAGIC = b"\x1f\x8b"

# Extensions whose files may need an explicit decompression retry
COMPRESSED_SUFFIXES = (".litematic",)

# Raised by nbtlib/struct/gzip on corrupt input
_DECODE_ERRORS = (
    ValueError, TypeError, KeyError, IndexError, EOFError, OSError,
    struct.error, zlib.error, UnicodeDecodeError,
)


def parse_nbt(data: bytes) -> nbtlib.File:
    """
    Decode NBT bytes, gunzipping first when the gzip magic is present.

    Args:
        data: Raw file contents

    Returns:
        Root compound
    """
    if data[:2] == GZIP_MAGIC:
        data = gzip.decompress(data)
    return nbtlib.File.parse(io.BytesIO(data))


def parse_tree(data: bytes, suffix: str = "") -> nbtlib.File:
    """
    Decode schematic bytes with a single decompression fallback.

    Args:
        data: Raw file contents
        suffix: File extension including the dot

    Returns:
        Root compound

    Raises:
        FormatError: If the data cannot be decoded
    """
    try:
        return parse_nbt(data)
    except _DECODE_ERRORS as exc:
        if (suffix or "").lower() not in COMPRESSED_SUFFIXES:
            raise FormatError(f"Failed to parse NBT data: {exc}") from exc
        logger.info("Primary NBT decode failed (%s); retrying decompressed", exc)

    try:
        # wbits | 32 accepts both gzip and zlib headers
        return nbtlib.File.parse(io.BytesIO(zlib.decompress(data, zlib.MAX_WBITS | 32)))
    except _DECODE_ERRORS as exc:
        raise FormatError(f"Failed to parse NBT data after decompression: {exc}") from exc


class SchematicLoader:
    """
    Schematic file loader.

    Key features:
    - Single eager read of the file
    - Transparent gzip handling
    - Keeps the extension for format selection
    """

    def __init__(self):
        self._tree: Optional[Any] = None
        self._suffix: str = ""
        self._path: Optional[Path] = None
        self._byte_size: int = 0

    def load(self, path: Union[str, Path]) -> "SchematicLoader":
        """
        Load and decode a schematic file.

        Args:
            path: Path to a .schematic, .schem or .litematic file

        Returns:
            self for method chaining
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Schematic not found: {path}")

        data = path.read_bytes()
        self._path = path
        return self.load_from_bytes(data, path.suffix)

    def load_from_bytes(self, data: bytes, suffix: str = "") -> "SchematicLoader":
        """
        Decode schematic bytes already in memory.

        Args:
            data: Raw (possibly gzipped) NBT bytes
            suffix: File extension used for format selection

        Returns:
            self for method chaining
        """
        self._tree = parse_tree(data, suffix)
        self._suffix = (suffix or "").lower()
        self._byte_size = len(data)
        logger.debug("Decoded %d bytes of NBT (%s)", len(data), self._suffix or "no extension")
        return self

    def load_from_tree(self, tree: Any, suffix: str = "") -> "SchematicLoader":
        """
        Use an already decoded tree (nbtlib Compound or plain mapping).

        Returns:
            self for method chaining
        """
        self._tree = tree
        self._suffix = (suffix or "").lower()
        return self

    @property
    def tree(self) -> Any:
        """Get the decoded root compound."""
        if self._tree is None:
            raise RuntimeError("No schematic loaded")
        return self._tree

    @property
    def suffix(self) -> str:
        """Get the lower-cased file extension."""
        return self._suffix

    @property
    def path(self) -> Optional[Path]:
        """Get the source path, if loaded from disk."""
        return self._path

    @property
    def byte_size(self) -> int:
        """Get the size of the raw input in bytes."""
        return self._byte_size
