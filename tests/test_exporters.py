"""
Unit tests for the exporters and the command-line interface.
"""

import sys
from pathlib import Path
import contextlib
import io
import json
import tempfile
import unittest

import nbtlib

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from schematic_chunker import BatchConverter, ConversionOptions, convert_tree
from schematic_chunker.cli import main
from schematic_chunker.encoding import ColumnEncoding
from schematic_chunker.exporters import JSONExporter, LuaExporter
from schematic_chunker.exporters.lua_exporter import escape_lua_string
from schematic_chunker.builders import (
    classic_tree,
    litematic_region,
    litematic_tree,
    sponge_v3_tree,
)


def corner_result(encoding=ColumnEncoding.RLE):
    """Two stacked stone blocks at (47, 80..81, 33)."""
    region = litematic_region((47, 80, 33), (1, 2, 1), ["minecraft:stone"] * 2)
    options = ConversionOptions(encoding=encoding)
    return convert_tree(litematic_tree({"R": region}), options=options)


class TestJSONExporter(unittest.TestCase):
    """Tests for JSON output."""

    def test_document(self):
        """Test keys, sizes and 0-based indices."""
        doc = JSONExporter().to_document(corner_result())

        assert doc["_meta"]["chunkSize"] == {"x": 16, "y": 256, "z": 16}
        assert doc["size"] == {"width": 48, "height": 82, "length": 34}
        assert doc["palette"] == ["minecraft:stone"]
        assert doc["encoding"] == "rle"
        assert doc["chunks"] == {"2,2": {"15,1": [[80, 2, 0]]}}

    def test_sparse(self):
        """Test [y, index] pairs."""
        doc = JSONExporter().to_document(corner_result(ColumnEncoding.SPARSE))
        assert doc["encoding"] == "sparse"
        assert doc["chunks"]["2,2"]["15,1"] == [[80, 0], [81, 0]]

    def test_export(self):
        """Test that the file is written and parses back."""
        with tempfile.TemporaryDirectory() as tmp:
            path = JSONExporter().export(corner_result(), Path(tmp) / "nested" / "out.json")
            assert path.exists()
            doc = json.loads(path.read_text(encoding="utf-8"))
            assert doc["chunks"]["2,2"]["15,1"] == [[80, 2, 0]]


class TestLuaExporter(unittest.TestCase):
    """Tests for Lua output."""

    def test_one_based_indices(self):
        """Test that palette indices are shifted by one."""
        text = LuaExporter().dumps(corner_result())

        assert text.startswith("--[[")
        assert "return {" in text
        assert '"minecraft:stone",' in text
        assert 'encoding = "rle",' in text
        assert '["2,2"] = {' in text
        assert '["15,1"] = { {80, 2, 1} },' in text

    def test_sparse(self):
        """Test sparse entries."""
        text = LuaExporter().dumps(corner_result(ColumnEncoding.SPARSE))
        assert '["15,1"] = { {80, 1}, {81, 1} },' in text

    def test_escape(self):
        """Test string escaping."""
        assert escape_lua_string('a"b\\c\nd') == 'a\\"b\\\\c\\nd'


class TestCLI(unittest.TestCase):
    """Tests for the command-line entry point."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self.tmp.name)

    def tearDown(self):
        self.tmp.cleanup()

    def _run(self, argv):
        out, err = io.StringIO(), io.StringIO()
        with contextlib.redirect_stdout(out), contextlib.redirect_stderr(err):
            code = main(argv)
        return code, out.getvalue(), err.getvalue()

    def test_single_json(self):
        """Test converting one file to JSON with stats."""
        names = ["minecraft:stone", "minecraft:oak_stairs[facing=north,half=top,waterlogged=false]"]
        input_path = self.dir / "build.schem"
        nbtlib.File(sponge_v3_tree(2, 1, 1, names)).save(str(input_path), gzipped=True)
        output_path = self.dir / "build.json"

        code, out, _ = self._run([str(input_path), str(output_path), "--out", "json", "--compact", "--stats"])

        assert code == 0
        assert "Conversion Statistics" in out
        doc = json.loads(output_path.read_text(encoding="utf-8"))
        assert doc["palette"] == ["stone", "oak_stairs[f=n,h=t]"]

    def test_single_lua(self):
        """Test the default Lua output."""
        input_path = self.dir / "old.schematic"
        nbtlib.File(classic_tree(1, 1, 1, [1])).save(str(input_path), gzipped=True)
        output_path = self.dir / "old.lua"

        code, _, _ = self._run([str(input_path), str(output_path)])

        assert code == 0
        assert '"1:0",' in output_path.read_text(encoding="utf-8")

    def test_missing_input(self):
        """Test the error path."""
        code, _, err = self._run([str(self.dir / "missing.schem"), str(self.dir / "out.lua")])
        assert code == 1
        assert err.startswith("Error:")

    def test_missing_arguments(self):
        """Test that input and output are required without --batch."""
        code, _, err = self._run([])
        assert code == 1
        assert "Error:" in err

    def test_batch(self):
        """Test converting a directory."""
        region = litematic_region((0, 0, 0), (1, 1, 1), ["minecraft:stone"])
        nbtlib.File(litematic_tree({"R": region})).save(str(self.dir / "a.litematic"), gzipped=True)
        nbtlib.File(classic_tree(1, 1, 1, [1])).save(str(self.dir / "b.schematic"), gzipped=True)
        output_dir = self.dir / "converted"

        code, out, _ = self._run(["--batch", str(self.dir), "--output-dir", str(output_dir), "--out", "json"])

        assert code == 0
        assert "Converted 2 files" in out
        assert sorted(p.name for p in output_dir.iterdir()) == ["a.json", "b.json"]


class TestBatchConverter(unittest.TestCase):
    """Tests for directory conversion."""

    def test_patterns(self):
        """Test restricting the glob patterns."""
        with tempfile.TemporaryDirectory() as tmp:
            tmp = Path(tmp)
            nbtlib.File(classic_tree(1, 1, 1, [1])).save(str(tmp / "a.schematic"), gzipped=True)
            nbtlib.File(classic_tree(1, 1, 1, [2])).save(str(tmp / "b.schem"), gzipped=True)

            outputs = BatchConverter(naming="full").process_directory(
                tmp, tmp / "out", fmt="lua", patterns=("*.schematic",)
            )

            assert [p.name for p in outputs] == ["a.lua"]


if __name__ == "__main__":
    unittest.main(verbosity=2)
