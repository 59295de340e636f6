"""
Tile identifiers

=============================================================================
GLOBAL vs LOCAL TILE IDs
=============================================================================

Tiled numbers tiles in two different spaces:

GLOBAL (GID):  Unique across the whole level. Layer data and tile objects
               store these. Every tileset claims a contiguous block of them
               starting at its firstgid.

LOCAL:         Index of a tile inside ONE tileset (0-based). Tile
               properties, terrain corners and terrain icons use these.

    Tileset A: firstgid=1,   tilecount=100  -> GIDs 1..100
    Tileset B: firstgid=101, tilecount=50   -> GIDs 101..150

    GID 120 -> tileset B, local 19

Mixing the two up is an easy and silent bug, so they are distinct types
here. Both wrap an unsigned 32-bit integer and neither compares equal to
the other (or to a plain int).

GID 0 is special: "no tile".

=============================================================================
FLIP FLAGS
=============================================================================

Tiled stores flipping in the three highest bits of a GID:

    bit 31: horizontal flip
    bit 30: vertical flip
    bit 29: diagonal flip (anti-diagonal, used for 90 degree rotations)

GlobalTile keeps the raw stored value. Use without_flags() to get the
bare tile id before resolving a flipped tile.

=============================================================================
"""

from dataclasses import dataclass
from typing import ClassVar

U32_MAX = 0xFFFFFFFF

FLIPPED_HORIZONTALLY_FLAG = 0x80000000
FLIPPED_VERTICALLY_FLAG = 0x40000000
FLIPPED_DIAGONALLY_FLAG = 0x20000000
FLIP_FLAGS = FLIPPED_HORIZONTALLY_FLAG | FLIPPED_VERTICALLY_FLAG | FLIPPED_DIAGONALLY_FLAG


def _check_u32(name: str, value: int):
    # bool is an int subclass, but True is never a tile id
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} expects an int, got {type(value).__name__}")
    if not 0 <= value <= U32_MAX:
        raise ValueError(f"{name} out of range: {value}")


@dataclass(frozen=True, order=True)
class GlobalTile:
    """Tile id in the level-wide id space."""
    value: int

    EMPTY: ClassVar['GlobalTile']

    def __post_init__(self):
        _check_u32('GlobalTile', self.value)

    def __int__(self) -> int:
        return self.value

    def __repr__(self) -> str:
        return f"GlobalTile({self.value})"

    @property
    def is_empty(self) -> bool:
        return self.value == 0

    @property
    def flipped_horizontally(self) -> bool:
        return bool(self.value & FLIPPED_HORIZONTALLY_FLAG)

    @property
    def flipped_vertically(self) -> bool:
        return bool(self.value & FLIPPED_VERTICALLY_FLAG)

    @property
    def flipped_diagonally(self) -> bool:
        return bool(self.value & FLIPPED_DIAGONALLY_FLAG)

    def without_flags(self) -> 'GlobalTile':
        """Same tile with the flip bits cleared."""
        return GlobalTile(self.value & ~FLIP_FLAGS)


GlobalTile.EMPTY = GlobalTile(0)


@dataclass(frozen=True, order=True)
class LocalTile:
    """Tile id inside a single tileset."""
    value: int

    def __post_init__(self):
        _check_u32('LocalTile', self.value)

    def __int__(self) -> int:
        return self.value

    def __repr__(self) -> str:
        return f"LocalTile({self.value})"
