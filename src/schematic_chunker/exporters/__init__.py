"""
Export modules for converted schematics.

Supported formats:
- JSON (.json) - 0-based palette indices, generic tooling
- Lua (.lua) - table literal with 1-based palette indices
"""

from .json_exporter import JSONExporter
from .lua_exporter import LuaExporter

__all__ = ["JSONExporter", "LuaExporter"]
