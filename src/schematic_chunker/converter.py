"""
Main SchematicConverter Class

This is the primary interface for the conversion pipeline.
It orchestrates:
1. Schematic loading and NBT decoding
2. Format selection
3. Voxel aggregation into chunk columns
4. Column run encoding
5. Export to JSON or Lua

Example Usage:
    converter = SchematicConverter(naming="compact")
    converter.load("castle.schem")
    converter.convert()
    converter.export_json("castle.json")
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union
import logging

from .aggregator import ChunkKey, ColumnKey, ConversionStats, VoxelAggregator
from .encoding import ColumnEncoding, RunEncoder
from .ingestion import SchematicLoader
from .naming import NamingPolicy
from .sources import BlockSource, BoundingExtent, open_block_source
from .exporters import JSONExporter, LuaExporter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConversionOptions:
    """Configuration consumed by the conversion core."""
    include_air: bool = False
    encoding: ColumnEncoding = ColumnEncoding.RLE
    naming: NamingPolicy = NamingPolicy.FULL

    @classmethod
    def from_flags(
        cls,
        include_air: bool = False,
        use_rle: bool = True,
        compact: bool = False,
        strip_states: bool = False
    ) -> "ConversionOptions":
        """
        Build options from command-line style flags.

        strip_states takes precedence over compact.
        """
        if strip_states:
            naming = NamingPolicy.STRIPPED
        elif compact:
            naming = NamingPolicy.COMPACT
        else:
            naming = NamingPolicy.FULL
        return cls(
            include_air=include_air,
            encoding=ColumnEncoding.RLE if use_rle else ColumnEncoding.SPARSE,
            naming=naming,
        )


@dataclass
class ConversionResult:
    """
    Chunked, palette-indexed representation of one schematic.

    Attributes:
        palette: Canonical keys; position is the 0-based palette index
        chunks: (chunk_x, chunk_z) -> (local_x, local_z) -> runs or pairs,
                both levels in ascending key order
        encoding: Shape of the column payloads
        stats: Conversion counters
    """
    palette: List[str]
    chunks: Dict[ChunkKey, Dict[ColumnKey, List[tuple]]]
    encoding: ColumnEncoding
    stats: ConversionStats

    @property
    def size(self) -> BoundingExtent:
        return self.stats.size

    @property
    def use_rle(self) -> bool:
        return self.encoding == ColumnEncoding.RLE

    def referenced_indices(self) -> set:
        """Palette indices used by any column."""
        position = 2 if self.use_rle else 1
        return {
            entry[position]
            for columns in self.chunks.values()
            for payload in columns.values()
            for entry in payload
        }


def convert_source(
    source: BlockSource,
    options: Optional[ConversionOptions] = None
) -> ConversionResult:
    """
    Run aggregation and run encoding over one block source.

    Args:
        source: Block source (consumed)
        options: Conversion options (defaults if None)

    Returns:
        Complete ConversionResult
    """
    options = options or ConversionOptions()

    aggregator = VoxelAggregator(naming=options.naming, include_air=options.include_air)
    aggregator.stats.size = source.dimensions()
    aggregator.consume(source.samples())

    encoder = RunEncoder(options.encoding)
    chunks = {}
    for chunk_key, columns in aggregator.sorted_chunks():
        chunks[chunk_key] = {
            column_key: encoder.encode(pairs)
            for column_key, pairs in columns
        }

    return ConversionResult(
        palette=aggregator.palette.entries,
        chunks=chunks,
        encoding=options.encoding,
        stats=aggregator.stats,
    )


def convert_tree(
    tree: Any,
    suffix: str = "",
    options: Optional[ConversionOptions] = None
) -> ConversionResult:
    """Select the block source for a decoded tree and convert it."""
    return convert_source(open_block_source(tree, suffix), options)


class SchematicConverter:
    """
    High-level interface for schematic conversion.

    Attributes:
        options: The active ConversionOptions
        loader: The loaded schematic
        result: The last ConversionResult
    """

    def __init__(
        self,
        include_air: bool = False,
        encoding: Union[str, ColumnEncoding] = ColumnEncoding.RLE,
        naming: Union[str, NamingPolicy] = NamingPolicy.FULL
    ):
        """
        Initialize the converter.

        Args:
            include_air: Keep air blocks in the output
            encoding: "rle" or "sparse" column payloads
            naming: "full", "compact" or "stripped" palette keys
        """
        if isinstance(encoding, str):
            encoding = ColumnEncoding(encoding)
        if isinstance(naming, str):
            naming = NamingPolicy(naming)

        self.options = ConversionOptions(
            include_air=include_air, encoding=encoding, naming=naming
        )
        self._loader: Optional[SchematicLoader] = None
        self._result: Optional[ConversionResult] = None

    @classmethod
    def from_options(cls, options: ConversionOptions) -> "SchematicConverter":
        return cls(options.include_air, options.encoding, options.naming)

    def load(self, path: Union[str, Path]) -> "SchematicConverter":
        """
        Load a schematic file.

        Args:
            path: Path to a .schematic, .schem or .litematic file

        Returns:
            self for method chaining
        """
        self._loader = SchematicLoader().load(path)
        self._result = None
        return self

    def load_bytes(self, data: bytes, suffix: str = "") -> "SchematicConverter":
        """Load schematic bytes already in memory."""
        self._loader = SchematicLoader().load_from_bytes(data, suffix)
        self._result = None
        return self

    def load_tree(self, tree: Any, suffix: str = "") -> "SchematicConverter":
        """Load an already decoded NBT tree."""
        self._loader = SchematicLoader().load_from_tree(tree, suffix)
        self._result = None
        return self

    def open_source(self) -> BlockSource:
        """Build a fresh block source for the loaded tree."""
        if self._loader is None:
            raise RuntimeError("No schematic loaded. Call load() first.")
        return open_block_source(self._loader.tree, self._loader.suffix)

    def convert(self) -> ConversionResult:
        """
        Convert the loaded schematic.

        Each call re-acquires the block source, so converting twice
        yields identical results.

        Returns:
            ConversionResult
        """
        source = self.open_source()
        width, height, length = source.dimensions()
        logger.info("Parsed %s: %dx%dx%d", type(source).__name__, width, height, length)

        self._result = convert_source(source, self.options)
        return self._result

    def _require_result(self) -> ConversionResult:
        if self._result is None:
            self.convert()
        return self._result

    def export_json(self, output_path: Union[str, Path], indent: int = 2) -> Path:
        """
        Export to a JSON document (0-based palette indices).

        Args:
            output_path: Output file path
            indent: JSON indentation

        Returns:
            Path written
        """
        return JSONExporter(indent=indent).export(self._require_result(), output_path)

    def export_lua(self, output_path: Union[str, Path]) -> Path:
        """
        Export to a Lua table literal (1-based palette indices).

        Args:
            output_path: Output file path

        Returns:
            Path written
        """
        return LuaExporter().export(self._require_result(), output_path)

    def export(self, output_path: Union[str, Path], fmt: str = "lua") -> Path:
        """Export in the named format ("lua" or "json")."""
        if fmt == "json":
            return self.export_json(output_path)
        if fmt == "lua":
            return self.export_lua(output_path)
        raise ValueError(f"Unknown output format: {fmt}")

    @property
    def result(self) -> Optional[ConversionResult]:
        """Get the last conversion result."""
        return self._result

    @property
    def stats(self) -> Optional[ConversionStats]:
        """Get statistics of the last conversion."""
        return self._result.stats if self._result else None

    def preview(self) -> dict:
        """
        Get a preview of the current state.

        Returns:
            Dictionary with current state information
        """
        info = {
            "loaded": self._loader is not None,
            "converted": self._result is not None,
        }

        if self._loader is not None:
            info["suffix"] = self._loader.suffix
            info["byte_size"] = self._loader.byte_size

        if self._result is not None:
            info.update(self._result.stats.to_dict())
            info["encoding"] = self._result.encoding.value

        return info


class BatchConverter:
    """
    Batch conversion of every schematic in a directory.

    Use this for converting a folder of builds with consistent settings.
    """

    DEFAULT_PATTERNS = ("*.schematic", "*.schem", "*.litematic")

    def __init__(self, **converter_kwargs):
        """
        Initialize the batch converter.

        Args:
            **converter_kwargs: Arguments passed to SchematicConverter
        """
        self.converter_kwargs = converter_kwargs

    def process_directory(
        self,
        input_dir: Union[str, Path],
        output_dir: Union[str, Path],
        fmt: str = "lua",
        patterns: Optional[Tuple[str, ...]] = None
    ) -> List[Path]:
        """
        Convert all schematics in a directory.

        Args:
            input_dir: Input directory
            output_dir: Output directory
            fmt: Output format ("lua" or "json")
            patterns: Glob patterns for input files

        Returns:
            List of output file paths
        """
        input_dir = Path(input_dir)
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        inputs = set()
        for pattern in patterns or self.DEFAULT_PATTERNS:
            inputs.update(input_dir.glob(pattern))

        outputs = []
        for input_path in sorted(inputs):
            converter = SchematicConverter(**self.converter_kwargs)
            converter.load(input_path)
            converter.convert()
            output_path = output_dir / f"{input_path.stem}.{fmt}"
            outputs.append(converter.export(output_path, fmt))

        return outputs
