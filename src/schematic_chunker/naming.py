"""
Canonical Block Keys

Block identities are normalized into text keys that drive palette
deduplication. Three naming policies are available:

- full:     the name exactly as stored
            minecraft:oak_stairs[facing=north,half=top,waterlogged=false]
- compact:  namespace dropped, states sorted and abbreviated, false omitted
            oak_stairs[f=n,h=t]
- stripped: namespace and every state dropped
            oak_stairs

Numeric (legacy) identities always render as "<id>:<data>".

Keys and values missing from the abbreviation tables pass through
unchanged, so unknown block states still produce stable keys.
"""

from enum import Enum
from types import MappingProxyType
from typing import Dict, Tuple

from .sources.base import NamedIdentity, NumericIdentity, RawIdentity


class NamingPolicy(Enum):
    """How block names are rendered into palette keys."""
    FULL = "full"           # Name as stored
    COMPACT = "compact"     # Abbreviated states
    STRIPPED = "stripped"   # Base name only


DEFAULT_NAMESPACE = "minecraft:"

AIR_BLOCKS = frozenset({
    "minecraft:air",
    "minecraft:cave_air",
    "minecraft:void_air",
    "air",
})

STATE_KEY_ABBREV = MappingProxyType({
    "facing": "f",
    "half": "h",
    "axis": "a",
    "shape": "s",
    "type": "t",
    "waterlogged": "w",
    "powered": "pw",
    "open": "o",
    "persistent": "ps",
    "distance": "d",
    "snowy": "sn",
    "lit": "l",
    "extended": "ex",
    "face": "fc",
    "part": "p",
    "hinge": "hi",
    "in_wall": "iw",
    "attached": "at",
    "hanging": "hg",
    "occupied": "oc",
    "rotation": "r",
    "layers": "ly",
    "level": "lv",
    "age": "ag",
    "moisture": "m",
    "bites": "b",
    "eggs": "eg",
    "pickles": "pk",
    "candles": "cn",
    "honey_level": "hl",
    "enabled": "en",
    "triggered": "tr",
    "inverted": "iv",
    "signal_fire": "sf",
    "has_bottle_0": "hb0",
    "has_bottle_1": "hb1",
    "has_bottle_2": "hb2",
    "eye": "ey",
    "mode": "md",
    "locked": "lk",
    "short": "sh",
    "unstable": "us",
    "disarmed": "da",
    "conditional": "cd",
    "drag": "dr",
    "bottom": "bt",
    "north": "n",
    "south": "so",
    "east": "e",
    "west": "wt",
    "up": "u",
    "down": "dn",
})

# None marks a value whose state is omitted entirely
STATE_VALUE_ABBREV = MappingProxyType({
    # Directions
    "north": "n",
    "south": "s",
    "east": "e",
    "west": "w",
    "up": "u",
    "down": "d",
    # Half
    "top": "t",
    "bottom": "b",
    "upper": "u",
    "lower": "l",
    # Stair shape
    "straight": "st",
    "inner_left": "il",
    "inner_right": "ir",
    "outer_left": "ol",
    "outer_right": "or",
    # Slab type
    "double": "db",
    # Booleans
    "true": "1",
    "false": None,
    # Button/lever face
    "floor": "fl",
    "wall": "wl",
    "ceiling": "cl",
    # Bed part
    "head": "hd",
    "foot": "ft",
    # Door hinge
    "left": "l",
    "right": "r",
    # Rail shape
    "north_south": "ns",
    "east_west": "ew",
    "ascending_north": "an",
    "ascending_south": "as",
    "ascending_east": "ae",
    "ascending_west": "aw",
    "north_east": "ne",
    "north_west": "nw",
    "south_east": "se",
    "south_west": "sw",
})


def parse_block_states(name: str) -> Tuple[str, Dict[str, str]]:
    """
    Split ``base[key=value,...]`` into the base name and its states.

    Pairs without '=' are ignored.

    Args:
        name: Block name, optionally with a bracketed state suffix

    Returns:
        Tuple of (base_name, states)
    """
    bracket = name.find("[")
    if bracket == -1:
        return name, {}

    base_name = name[:bracket]
    state_str = name[bracket + 1:-1] if name.endswith("]") else name[bracket + 1:]
    states = {}
    for pair in state_str.split(","):
        key, sep, value = pair.partition("=")
        if sep:
            states[key] = value
    return base_name, states


def _drop_namespace(name: str) -> str:
    if name.startswith(DEFAULT_NAMESPACE):
        return name[len(DEFAULT_NAMESPACE):]
    return name


def compact_block_name(name: str) -> str:
    """
    Abbreviate a block name.

    "minecraft:oak_stairs[facing=north,half=top,waterlogged=false]"
    becomes "oak_stairs[f=n,h=t]".
    """
    base_name, states = parse_block_states(_drop_namespace(name))
    if not states:
        return base_name

    parts = []
    for key in sorted(states):
        value = states[key]
        if value in STATE_VALUE_ABBREV and STATE_VALUE_ABBREV[value] is None:
            continue
        short_key = STATE_KEY_ABBREV.get(key) or key
        short_value = STATE_VALUE_ABBREV.get(value) or value
        parts.append(f"{short_key}={short_value}")

    if not parts:
        return base_name
    return f"{base_name}[{','.join(parts)}]"


def strip_block_states(name: str) -> str:
    """Drop the namespace and every block state."""
    return _drop_namespace(name).split("[", 1)[0]


def canonical_key(identity: RawIdentity, policy: NamingPolicy = NamingPolicy.FULL) -> str:
    """
    Resolve the palette key for a raw block identity.

    Args:
        identity: NamedIdentity or NumericIdentity
        policy: Naming policy for named blocks

    Returns:
        Canonical key string
    """
    if isinstance(identity, NumericIdentity):
        return f"{identity.block_id}:{identity.data_value}"

    name = identity.name
    if policy == NamingPolicy.STRIPPED:
        return strip_block_states(name)
    if policy == NamingPolicy.COMPACT:
        return compact_block_name(name)
    return name


def is_air(identity: RawIdentity) -> bool:
    """Check whether an identity is one of the air-equivalent blocks."""
    if isinstance(identity, NamedIdentity):
        name = identity.name
        return name in AIR_BLOCKS or name.split("[", 1)[0] in AIR_BLOCKS
    return identity.block_id == 0
