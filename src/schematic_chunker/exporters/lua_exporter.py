"""
Lua Table Exporter

Renders a ConversionResult as a module returning one table:

    return {
      size = { width = 4, height = 3, length = 4 },
      chunkSize = { x = 16, y = 256, z = 16 },
      palette = { "minecraft:stone", ... },
      encoding = "rle",
      chunks = {
        ["0,0"] = {
          ["1,2"] = { {0, 3, 1}, {5, 1, 2} },
        },
      },
    }

Lua arrays are 1-based, so every palette index is shifted by one here.
The in-memory result keeps 0-based indices.
"""

from pathlib import Path
from typing import List, Union

from ..aggregator import CHUNK_SIZE_X, CHUNK_SIZE_Y, CHUNK_SIZE_Z
from .json_exporter import GENERATOR_NAME, key_text


def escape_lua_string(text: str) -> str:
    """Escape backslashes, double quotes and newlines for a Lua string."""
    return text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


class LuaExporter:
    """
    Export a ConversionResult to a Lua table literal.

    Usage:
        exporter = LuaExporter()
        exporter.export(result, "output.lua")
    """

    def _format_entry(self, entry: tuple, use_rle: bool) -> str:
        if use_rle:
            start_y, length, index = entry
            return f"{{{start_y}, {length}, {index + 1}}}"
        y, index = entry
        return f"{{{y}, {index + 1}}}"

    def dumps(self, result) -> str:
        """
        Render the result as Lua source.

        Args:
            result: ConversionResult

        Returns:
            Lua source text
        """
        use_rle = result.use_rle
        stats = result.stats
        size = stats.size

        lines: List[str] = []
        lines.append("--[[")
        lines.append(f"  Generated by {GENERATOR_NAME}")
        lines.append(f"  Format: {'RLE per Y-column' if use_rle else 'Sparse'}")
        lines.append(
            f"  Chunks: {stats.chunk_count}, Palette: {stats.palette_size}, "
            f"Blocks: {stats.stored_blocks}"
        )
        lines.append("]]")
        lines.append("")
        lines.append("return {")
        lines.append(
            f"  size = {{ width = {size.width}, height = {size.height}, "
            f"length = {size.length} }},"
        )
        lines.append(
            f"  chunkSize = {{ x = {CHUNK_SIZE_X}, y = {CHUNK_SIZE_Y}, z = {CHUNK_SIZE_Z} }},"
        )

        lines.append("  palette = {")
        for entry in result.palette:
            lines.append(f'    "{escape_lua_string(entry)}",')
        lines.append("  },")

        lines.append(f'  encoding = "{result.encoding.value}",')

        lines.append("  chunks = {")
        for chunk_key, columns in result.chunks.items():
            lines.append(f'    ["{key_text(chunk_key)}"] = {{')
            for column_key, payload in columns.items():
                entries = ", ".join(self._format_entry(e, use_rle) for e in payload)
                lines.append(f'      ["{key_text(column_key)}"] = {{ {entries} }},')
            lines.append("    },")
        lines.append("  },")

        lines.append("}")
        return "\n".join(lines)

    def export(
        self,
        result,  # ConversionResult
        output_path: Union[str, Path]
    ) -> Path:
        """
        Write the result to a .lua file.

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
