"""
JSON Exporter

Document layout:
    {
      "_meta":   {"generator", "encoding", "chunkSize": {"x", "y", "z"}},
      "size":    {"width", "height", "length"},
      "palette": ["minecraft:stone", ...],
      "encoding": "rle" | "sparse",
      "chunks":  {"cx,cz": {"lx,lz": [[start_y, length, index], ...]}}
    }

Sparse columns hold [y, index] pairs instead. Palette indices are 0-based.
"""

from pathlib import Path
from typing import Union
import json

from ..aggregator import CHUNK_SIZE_X, CHUNK_SIZE_Y, CHUNK_SIZE_Z

GENERATOR_NAME = "schematic-chunker"


def key_text(key) -> str:
    """Render an integer pair key as "a,b"."""
    return f"{key[0]},{key[1]}"


class JSONExporter:
    """
    Export a ConversionResult to JSON.

    Usage:
        exporter = JSONExporter()
        exporter.export(result, "output.json")
    """

    def __init__(self, indent: int = 2):
        """
        Initialize the exporter.

        Args:
            indent: Indentation passed to json.dumps (None for one line)
        """
        self.indent = indent

    def to_document(self, result) -> dict:
        """
        Build the JSON-ready document.

        Args:
            result: ConversionResult

        Returns:
            Plain dictionary of lists, strings and ints
        """
        size = result.stats.size
        encoding = result.encoding.value
        return {
            "_meta": {
                "generator": GENERATOR_NAME,
                "encoding": encoding,
                "chunkSize": {"x": CHUNK_SIZE_X, "y": CHUNK_SIZE_Y, "z": CHUNK_SIZE_Z},
            },
            "size": {"width": size.width, "height": size.height, "length": size.length},
            "palette": list(result.palette),
            "encoding": encoding,
            "chunks": {
                key_text(chunk_key): {
                    key_text(column_key): [list(entry) for entry in payload]
                    for column_key, payload in columns.items()
                }
                for chunk_key, columns in result.chunks.items()
            },
        }

    def dumps(self, result) -> str:
        """Render the result as JSON text."""
        return json.dumps(self.to_document(result), indent=self.indent)

    def export(
        self,
        result,  # ConversionResult
        output_path: Union[str, Path]
    ) -> Path:
        """
        Write the result to a JSON file.

        Args:
            result: ConversionResult
            output_path: Output file path

        Returns:
            Path written
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(self.dumps(result), encoding="utf-8")
        return output_path
