"""
Unit tests for naming, aggregation, run encoding and the converter.
"""

import sys
from pathlib import Path
import gzip
import tempfile
import unittest
import zlib

import nbtlib

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from schematic_chunker import (
    ConversionOptions,
    FormatError,
    RegionSkipWarning,
    SchematicConverter,
    SchematicLoader,
    convert_tree,
)
from schematic_chunker.aggregator import VoxelAggregator, chunk_coords
from schematic_chunker.encoding import (
    ColumnEncoding,
    RunEncoder,
    encode_runs,
    expand_runs,
    sparse_pairs,
)
from schematic_chunker.naming import (
    NamingPolicy,
    canonical_key,
    compact_block_name,
    is_air,
    parse_block_states,
    strip_block_states,
)
from schematic_chunker.sources import BlockSample, NamedIdentity, NumericIdentity
from schematic_chunker.builders import (
    classic_tree,
    demo_blocks,
    litematic_region,
    litematic_tree,
    sponge_v2_tree,
)

STAIRS = "minecraft:oak_stairs[facing=north,half=top,waterlogged=false]"


def small_build():
    """2x2x1 Sponge build: stone, stone / air, dirt."""
    names = ["minecraft:stone", "minecraft:stone", "minecraft:air", "minecraft:dirt"]
    return sponge_v2_tree(2, 2, 1, names)


class TestNaming(unittest.TestCase):
    """Tests for canonical key resolution."""

    def test_compact(self):
        """Test sorted, abbreviated states with false dropped."""
        assert compact_block_name(STAIRS) == "oak_stairs[f=n,h=t]"
        assert canonical_key(NamedIdentity(STAIRS), NamingPolicy.COMPACT) == "oak_stairs[f=n,h=t]"

    def test_compact_all_false(self):
        """Test that brackets vanish when no state survives."""
        assert compact_block_name("minecraft:lever[powered=false]") == "lever"

    def test_compact_passthrough(self):
        """Test unknown keys, values and namespaces."""
        assert compact_block_name("foo:bar[color=red,facing=east]") == "foo:bar[color=red,f=e]"
        assert compact_block_name("minecraft:stone") == "stone"

    def test_full_and_stripped(self):
        """Test the other two policies."""
        identity = NamedIdentity(STAIRS)
        assert canonical_key(identity, NamingPolicy.FULL) == STAIRS
        assert canonical_key(identity, NamingPolicy.STRIPPED) == "oak_stairs"
        assert strip_block_states("mod:pipe[axis=x]") == "mod:pipe"

    def test_numeric(self):
        """Test that numeric identities ignore the policy."""
        for policy in NamingPolicy:
            assert canonical_key(NumericIdentity(35, 14), policy) == "35:14"

    def test_parse_block_states(self):
        """Test state parsing."""
        assert parse_block_states("minecraft:stone") == ("minecraft:stone", {})
        base, states = parse_block_states(STAIRS)
        assert base == "minecraft:oak_stairs"
        assert list(states) == ["facing", "half", "waterlogged"]

    def test_air(self):
        """Test air classification."""
        assert is_air(NamedIdentity("minecraft:air"))
        assert is_air(NamedIdentity("minecraft:cave_air"))
        assert is_air(NamedIdentity("air"))
        assert is_air(NumericIdentity(0, 0))
        assert not is_air(NamedIdentity("minecraft:stone"))
        assert not is_air(NumericIdentity(1, 0))


class TestChunkCoords(unittest.TestCase):
    """Tests for world -> chunk mapping."""

    def test_positive(self):
        """Test (47, 33) -> chunk (2, 2), local (15, 1)."""
        assert chunk_coords(47, 33) == ((2, 2), (15, 1))

    def test_negative(self):
        """Test floor semantics below zero."""
        assert chunk_coords(-1, -17) == ((-1, -2), (15, 15))
        assert chunk_coords(-16, 0) == ((-1, 0), (0, 0))


class TestRunEncoding(unittest.TestCase):
    """Tests for the column encoder."""

    def test_runs(self):
        """Test run grouping after sorting by y."""
        pairs = [(5, 2), (0, 1), (1, 1)]
        assert encode_runs(pairs) == [(0, 2, 1), (5, 1, 2)]

    def test_gap_breaks_run(self):
        """Test that a vertical gap closes the run."""
        assert encode_runs([(0, 1), (2, 1)]) == [(0, 1, 1), (2, 1, 1)]

    def test_index_change_breaks_run(self):
        """Test that a different palette index closes the run."""
        assert encode_runs([(0, 1), (1, 2), (2, 2)]) == [(0, 1, 1), (1, 2, 2)]

    def test_sparse(self):
        """Test that sparse output is only sorted."""
        assert sparse_pairs([(3, 0), (1, 4)]) == [(1, 4), (3, 0)]
        assert RunEncoder(ColumnEncoding.SPARSE).encode([(3, 0), (1, 4)]) == [(1, 4), (3, 0)]

    def test_round_trip(self):
        """Test that expanded runs match the sorted pairs."""
        pairs = [(y, (y // 3) % 2) for y in range(30) if y % 7]
        assert expand_runs(encode_runs(pairs)) == sparse_pairs(pairs)

    def test_empty(self):
        """Test an empty column."""
        assert encode_runs([]) == []
        assert sparse_pairs([]) == []


class TestVoxelAggregator(unittest.TestCase):
    """Tests for chunk bucketing."""

    def test_bucketing(self):
        """Test palette order, chunk keys and column pairs."""
        samples = [
            BlockSample(47, 80, 33, NamedIdentity("minecraft:stone")),
            BlockSample(0, 0, 0, NamedIdentity("minecraft:dirt")),
            BlockSample(47, 81, 33, NamedIdentity("minecraft:stone")),
            BlockSample(1, 0, 0, NamedIdentity("minecraft:air")),
        ]
        aggregator = VoxelAggregator().consume(samples)

        assert aggregator.palette.entries == ["minecraft:stone", "minecraft:dirt"]
        assert aggregator.sorted_chunks() == [
            ((0, 0), [((0, 0), [(0, 1)])]),
            ((2, 2), [((15, 1), [(80, 0), (81, 0)])]),
        ]

    def test_clamp(self):
        """Test that samples outside 0-255 are dropped and counted."""
        samples = [
            BlockSample(0, y, 0, NamedIdentity("minecraft:stone"))
            for y in (-2, -1, 0, 255, 256)
        ]
        stats = VoxelAggregator().consume(samples).stats

        assert stats.clamped_blocks == 3
        assert stats.stored_blocks == 2
        assert (stats.min_y, stats.max_y) == (0, 255)

    def test_single_consume(self):
        """Test that an aggregator consumes one stream only."""
        aggregator = VoxelAggregator().consume([])
        with self.assertRaises(RuntimeError):
            aggregator.consume([])


class TestConversion(unittest.TestCase):
    """Tests for the end-to-end conversion."""

    def test_small_build(self):
        """Test the complete result for a tiny build."""
        result = convert_tree(small_build())

        assert result.palette == ["minecraft:stone", "minecraft:dirt"]
        assert result.chunks == {
            (0, 0): {
                (0, 0): [(0, 1, 0)],
                (1, 0): [(0, 1, 0), (1, 1, 1)],
            },
        }
        stats = result.stats
        assert stats.total_blocks == 4
        assert stats.air_blocks == 1
        assert stats.non_air_blocks == 3
        assert stats.stored_blocks == 3
        assert stats.chunk_count == 1
        assert (stats.min_y, stats.max_y) == (0, 1)

    def test_include_air(self):
        """Test that air becomes a palette entry when requested."""
        options = ConversionOptions(include_air=True)
        result = convert_tree(small_build(), options=options)

        assert result.palette == ["minecraft:stone", "minecraft:air", "minecraft:dirt"]
        stats = result.stats
        assert stats.stored_blocks == stats.total_blocks == 4
        assert stats.total_blocks - stats.non_air_blocks == stats.air_blocks

    def test_determinism(self):
        """Test identical output across repeated conversions."""
        width, height, length, names = demo_blocks("House", 20)
        tree = sponge_v2_tree(width, height, length, names)
        options = ConversionOptions(naming=NamingPolicy.COMPACT)

        first = convert_tree(tree, options=options)
        second = convert_tree(tree, options=options)

        assert first.palette == second.palette
        assert list(first.chunks) == list(second.chunks)
        for chunk_key, columns in first.chunks.items():
            assert list(columns.items()) == list(second.chunks[chunk_key].items())

    def test_sorted_chunk_keys(self):
        """Test ascending chunk and column order, negatives first."""
        region = litematic_region((-20, 0, 5), (40, 1, 1), ["minecraft:stone"] * 40)
        result = convert_tree(litematic_tree({"Row": region}))

        assert list(result.chunks) == [(-2, 0), (-1, 0), (0, 0), (1, 0)]
        for columns in result.chunks.values():
            assert list(columns) == sorted(columns)

    def test_palette_density(self):
        """Test that referenced indices are exactly 0..N-1."""
        for style in ("Tower", "House", "Tree"):
            width, height, length, names = demo_blocks(style, 12)
            result = convert_tree(sponge_v2_tree(width, height, length, names))
            assert result.referenced_indices() == set(range(len(result.palette)))

    def test_rle_round_trip(self):
        """Test that RLE columns expand to the sparse columns."""
        width, height, length, names = demo_blocks("Tower", 12)
        tree = sponge_v2_tree(width, height, length, names)

        rle = convert_tree(tree, options=ConversionOptions(encoding=ColumnEncoding.RLE))
        sparse = convert_tree(tree, options=ConversionOptions(encoding=ColumnEncoding.SPARSE))

        assert rle.palette == sparse.palette
        assert list(rle.chunks) == list(sparse.chunks)
        for chunk_key, columns in rle.chunks.items():
            for column_key, runs in columns.items():
                assert expand_runs(runs) == sparse.chunks[chunk_key][column_key]

    def test_chunk_mapping(self):
        """Test that (47, 80, 33) lands in chunk (2, 2), column (15, 1)."""
        region = litematic_region((47, 80, 33), (1, 1, 1), ["minecraft:stone"])
        result = convert_tree(litematic_tree({"R": region}))

        assert result.chunks == {(2, 2): {(15, 1): [(80, 1, 0)]}}

    def test_region_height_clamp(self):
        """Test that regions reaching past y=255 are clamped."""
        region = litematic_region((0, 250, 0), (1, 10, 1), ["minecraft:stone"] * 10)
        result = convert_tree(litematic_tree({"Tall": region}))

        assert result.stats.clamped_blocks == 4
        assert result.chunks[(0, 0)][(0, 0)] == [(250, 6, 0)]

    def test_classic_keys(self):
        """Test numeric keys for classic schematics."""
        tree = classic_tree(3, 1, 1, [0, 35, 0x105], [0, 14, 2])
        result = convert_tree(tree)
        assert result.palette == ["35:14", "261:2"]

    def test_skipped_region_still_converts(self):
        """Test that the remaining regions convert after a skip."""
        tree = litematic_tree({
            "Broken": nbtlib.Compound({"Size": nbtlib.Compound({"x": nbtlib.Int(1)})}),
            "Good": litematic_region((0, 0, 0), (1, 1, 1), ["minecraft:stone"]),
        })
        with self.assertWarns(RegionSkipWarning):
            result = convert_tree(tree)
        assert result.palette == ["minecraft:stone"]
        assert result.stats.stored_blocks == 1

    def test_all_air(self):
        """Test stats when nothing is stored."""
        result = convert_tree(sponge_v2_tree(2, 1, 1, ["minecraft:air"] * 2))
        assert result.palette == []
        assert result.chunks == {}
        assert (result.stats.min_y, result.stats.max_y) == (0, 0)


class TestConversionOptions(unittest.TestCase):
    """Tests for flag mapping."""

    def test_from_flags(self):
        """Test that strip_states wins over compact."""
        options = ConversionOptions.from_flags(compact=True, strip_states=True, use_rle=False)
        assert options.naming == NamingPolicy.STRIPPED
        assert options.encoding == ColumnEncoding.SPARSE

        options = ConversionOptions.from_flags(compact=True)
        assert options.naming == NamingPolicy.COMPACT
        assert options.encoding == ColumnEncoding.RLE


class TestSchematicLoader(unittest.TestCase):
    """Tests for file loading and decompression."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self.tmp.name)

    def tearDown(self):
        self.tmp.cleanup()

    def _raw_nbt(self, tree) -> bytes:
        path = self.dir / "raw.nbt"
        nbtlib.File(tree).save(str(path), gzipped=False)
        return path.read_bytes()

    def test_gzip_file(self):
        """Test that gzipped files are detected by magic."""
        path = self.dir / "build.schem"
        nbtlib.File(small_build()).save(str(path), gzipped=True)

        loader = SchematicLoader().load(path)
        assert loader.suffix == ".schem"
        assert loader.byte_size == path.stat().st_size
        assert convert_tree(loader.tree, loader.suffix).palette == ["minecraft:stone", "minecraft:dirt"]

    def test_uncompressed_bytes(self):
        """Test plain NBT and gzip bytes in memory."""
        raw = self._raw_nbt(small_build())
        for data in (raw, gzip.compress(raw)):
            tree = SchematicLoader().load_from_bytes(data, ".schem").tree
            assert convert_tree(tree).stats.stored_blocks == 3

    def test_zlib_litematic_retry(self):
        """Test that a zlib-wrapped litematic is recovered."""
        region = litematic_region((0, 0, 0), (1, 1, 1), ["minecraft:stone"])
        raw = self._raw_nbt(litematic_tree({"R": region}))
        path = self.dir / "build.litematic"
        path.write_bytes(zlib.compress(raw))

        converter = SchematicConverter().load(path)
        assert converter.convert().palette == ["minecraft:stone"]

    def test_zlib_schem_fails(self):
        """Test that only .litematic files get the retry."""
        raw = self._raw_nbt(small_build())
        with self.assertRaises(FormatError):
            SchematicLoader().load_from_bytes(zlib.compress(raw), ".schem")

    def test_garbage_litematic_fails(self):
        """Test that the retry failing is a FormatError."""
        with self.assertRaises(FormatError):
            SchematicLoader().load_from_bytes(b"not nbt at all", ".litematic")

    def test_missing_file(self):
        """Test loading a path that does not exist."""
        with self.assertRaises(FileNotFoundError):
            SchematicLoader().load(self.dir / "missing.schem")


class TestSchematicConverter(unittest.TestCase):
    """Tests for the converter facade."""

    def test_convert_twice(self):
        """Test that each convert() re-acquires the source."""
        converter = SchematicConverter(naming="compact").load_tree(small_build())
        first = converter.convert()
        second = converter.convert()

        assert first.palette == second.palette
        assert first.chunks == second.chunks

    def test_string_options(self):
        """Test string forms of the enums."""
        converter = SchematicConverter(encoding="sparse", naming="stripped")
        assert converter.options.encoding == ColumnEncoding.SPARSE
        assert converter.options.naming == NamingPolicy.STRIPPED

    def test_not_loaded(self):
        """Test converting before loading."""
        with self.assertRaises(RuntimeError):
            SchematicConverter().convert()

    def test_preview(self):
        """Test the state summary."""
        converter = SchematicConverter().load_tree(small_build(), ".schem")
        assert converter.preview() == {"loaded": True, "converted": False, "suffix": ".schem", "byte_size": 0}

        converter.convert()
        info = converter.preview()
        assert info["converted"]
        assert info["storedBlocks"] == 3
        assert info["encoding"] == "rle"


if __name__ == "__main__":
    unittest.main(verbosity=2)
