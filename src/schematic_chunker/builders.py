"""
Synthetic Schematic Builders

Creates nbtlib trees in each supported layout from plain block lists.
Used by the demo script, the web interface and the test suite; the
trees round-trip through nbtlib.File.save() like real schematic files.

Block lists are flat sequences in y -> z -> x order (the native order of
every format), so index i of a WxHxL build is at
    y = i // (W * L), z = (i // W) % L, x = i % W
"""

from typing import Callable, Dict, List, Optional, Sequence, Tuple
import numpy as np
import nbtlib

from .naming import parse_block_states
from .sources.litematic import bits_per_entry


def grid_blocks(
    width: int,
    height: int,
    length: int,
    block_at: Callable[[int, int, int], str]
) -> List[str]:
    """
    Sample a block function over a grid in y -> z -> x order.

    Args:
        width, height, length: Build size
        block_at: Function (x, y, z) -> block name

    Returns:
        Flat list of block names
    """
    return [
        block_at(x, y, z)
        for y in range(height)
        for z in range(length)
        for x in range(width)
    ]


def encode_varint(value: int) -> bytes:
    """Encode a non-negative int as a little-endian base-128 varint."""
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def _byte_array(values: Sequence[int]) -> nbtlib.ByteArray:
    unsigned = np.asarray(values, dtype=np.int64) & 0xFF
    return nbtlib.ByteArray(unsigned.astype(np.uint8).view(np.int8))


def _palette_of(names: Sequence[str]) -> Dict[str, int]:
    palette: Dict[str, int] = {}
    for name in names:
        if name not in palette:
            palette[name] = len(palette)
    return palette


def _extent_tags(width: int, height: int, length: int) -> dict:
    return {
        "Width": nbtlib.Short(width),
        "Height": nbtlib.Short(height),
        "Length": nbtlib.Short(length),
    }


def classic_tree(
    width: int,
    height: int,
    length: int,
    block_ids: Sequence[int],
    data_values: Optional[Sequence[int]] = None
) -> nbtlib.Compound:
    """
    Build a classic schematic tree.

    Ids above 255 get an AddBlocks array (low nibble for even indices,
    high nibble for odd indices).

    Args:
        width, height, length: Build size
        block_ids: Numeric ids in y -> z -> x order
        data_values: Data values (defaults to zeros)

    Returns:
        Root compound
    """
    ids = np.asarray(block_ids, dtype=np.int64)
    data = np.zeros(len(ids), dtype=np.int64) if data_values is None else np.asarray(data_values)

    tree = nbtlib.Compound({
        **_extent_tags(width, height, length),
        "Materials": nbtlib.String("Alpha"),
        "Blocks": _byte_array(ids & 0xFF),
        "Data": _byte_array(data),
        "Entities": nbtlib.List[nbtlib.Compound](),
        "TileEntities": nbtlib.List[nbtlib.Compound](),
    })

    if np.any(ids > 0xFF):
        high = (ids >> 8) & 0x0F
        add = np.zeros((len(ids) + 1) // 2, dtype=np.int64)
        add |= high[0::2]
        add[: len(high[1::2])] |= high[1::2] << 4
        tree["AddBlocks"] = _byte_array(add)

    return tree


def _sponge_payload(names: Sequence[str]) -> Tuple[nbtlib.Compound, nbtlib.ByteArray]:
    palette = _palette_of(names)
    stream = b"".join(encode_varint(palette[name]) for name in names)
    palette_tag = nbtlib.Compound({name: nbtlib.Int(i) for name, i in palette.items()})
    return palette_tag, _byte_array(list(stream))


def sponge_v2_tree(width: int, height: int, length: int, names: Sequence[str]) -> nbtlib.Compound:
    """
    Build a Sponge version 2 schematic tree.

    Args:
        width, height, length: Build size
        names: Block names in y -> z -> x order

    Returns:
        Root compound
    """
    palette_tag, block_data = _sponge_payload(names)
    return nbtlib.Compound({
        "Version": nbtlib.Int(2),
        "DataVersion": nbtlib.Int(2586),
        **_extent_tags(width, height, length),
        "PaletteMax": nbtlib.Int(len(palette_tag)),
        "Palette": palette_tag,
        "BlockData": block_data,
    })


def sponge_v3_tree(width: int, height: int, length: int, names: Sequence[str]) -> nbtlib.Compound:
    """Build a Sponge version 3 schematic tree (nested Schematic.Blocks)."""
    palette_tag, block_data = _sponge_payload(names)
    return nbtlib.Compound({
        "Schematic": nbtlib.Compound({
            "Version": nbtlib.Int(3),
            "DataVersion": nbtlib.Int(3465),
            **_extent_tags(width, height, length),
            "Blocks": nbtlib.Compound({
                "Palette": palette_tag,
                "Data": block_data,
            }),
        }),
    })


def pack_indices(indices: Sequence[int], palette_size: int) -> List[int]:
    """
    Pack palette indices into signed 64-bit words.

    Entries never straddle a word: each word holds 64 // bits entries.

    Args:
        indices: Palette indices in region order
        palette_size: Number of palette entries

    Returns:
        List of signed longs
    """
    bits = bits_per_entry(palette_size)
    per_word = 64 // bits
    words = []
    for start in range(0, len(indices), per_word):
        word = 0
        for slot, index in enumerate(indices[start:start + per_word]):
            word |= int(index) << (slot * bits)
        if word >= 1 << 63:
            word -= 1 << 64
        words.append(word)
    return words


def _palette_entry(name: str) -> nbtlib.Compound:
    base_name, states = parse_block_states(name)
    entry = nbtlib.Compound({"Name": nbtlib.String(base_name)})
    if states:
        entry["Properties"] = nbtlib.Compound(
            {key: nbtlib.String(value) for key, value in states.items()}
        )
    return entry


def _vec3_tag(x: int, y: int, z: int) -> nbtlib.Compound:
    return nbtlib.Compound({"x": nbtlib.Int(x), "y": nbtlib.Int(y), "z": nbtlib.Int(z)})


def litematic_region(
    position: Tuple[int, int, int],
    size: Tuple[int, int, int],
    names: Sequence[str]
) -> nbtlib.Compound:
    """
    Build one Litematica region compound.

    Args:
        position: Region origin (x, y, z)
        size: Region size; negative axes are allowed
        names: Block names in y -> z -> x order over |size|

    Returns:
        Region compound
    """
    palette = _palette_of(["minecraft:air", *names])
    indices = [palette[name] for name in names]
    return nbtlib.Compound({
        "Position": _vec3_tag(*position),
        "Size": _vec3_tag(*size),
        "BlockStatePalette": nbtlib.List[nbtlib.Compound](
            [_palette_entry(name) for name in palette]
        ),
        "BlockStates": nbtlib.LongArray(pack_indices(indices, len(palette))),
        "Entities": nbtlib.List[nbtlib.Compound](),
        "TileEntities": nbtlib.List[nbtlib.Compound](),
    })


def litematic_tree(
    regions: Dict[str, nbtlib.Compound],
    enclosing_size: Optional[Tuple[int, int, int]] = None,
    name: str = "Unnamed"
) -> nbtlib.Compound:
    """
    Build a Litematica tree from region compounds.

    Args:
        regions: Region name -> compound (see litematic_region)
        enclosing_size: Optional Metadata.EnclosingSize
        name: Metadata.Name

    Returns:
        Root compound
    """
    metadata = nbtlib.Compound({"Name": nbtlib.String(name)})
    if enclosing_size is not None:
        metadata["EnclosingSize"] = _vec3_tag(*enclosing_size)
    return nbtlib.Compound({
        "Version": nbtlib.Int(6),
        "Metadata": metadata,
        "Regions": nbtlib.Compound(regions),
    })


DEMO_STYLES = ("Tower", "House", "Tree")


def demo_blocks(style: str, size: int = 16) -> Tuple[int, int, int, List[str]]:
    """
    Create a small demo build.

    Args:
        style: One of DEMO_STYLES
        size: Footprint edge length

    Returns:
        Tuple of (width, height, length, names)
    """
    if style == "Tower":
        height = size * 2
        center = (size - 1) / 2
        radius = size / 2 - 1

        def block_at(x, y, z):
            dist = ((x - center) ** 2 + (z - center) ** 2) ** 0.5
            if dist > radius:
                return "minecraft:air"
            if dist > radius - 1.5:
                return "minecraft:stone_bricks" if y % 4 else "minecraft:chiseled_stone_bricks"
            return "minecraft:air" if y else "minecraft:oak_planks"

    elif style == "House":
        height = size // 2 + 2
        wall = size // 2

        def block_at(x, y, z):
            edge = x in (0, size - 1) or z in (0, size - 1)
            if y == 0:
                return "minecraft:cobblestone"
            if y < wall:
                if not edge:
                    return "minecraft:air"
                if z == 0 and x == size // 2 and y <= 2:
                    half = "lower" if y == 1 else "upper"
                    return f"minecraft:oak_door[facing=south,half={half},hinge=left,open=false,powered=false]"
                return "minecraft:oak_planks"
            if y == wall:
                if z == 0:
                    return "minecraft:oak_stairs[facing=south,half=bottom,shape=straight,waterlogged=false]"
                if z == size - 1:
                    return "minecraft:oak_stairs[facing=north,half=bottom,shape=straight,waterlogged=false]"
                return "minecraft:oak_slab[type=top,waterlogged=false]"
            return "minecraft:air"

    elif style == "Tree":
        height = size + 4
        center = size // 2

        def block_at(x, y, z):
            if x == center and z == center and y < size // 2:
                return "minecraft:oak_log[axis=y]"
            dist = abs(x - center) + abs(z - center) + abs(y - size // 2 - 2)
            if dist <= size // 3:
                return "minecraft:oak_leaves[distance=1,persistent=false]"
            return "minecraft:air"

    else:
        raise ValueError(f"Unknown demo style: {style}")

    return size, height, size, grid_blocks(size, height, size, block_at)
