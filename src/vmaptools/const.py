"""Constants and flag enums shared by the vmap file formats."""
from typing import Any, Final, FrozenSet, MutableMapping
from enum import Flag
import functools
import operator
import sys


__all__ = [
    'add_unknown',
    'VMAP_MAGIC', 'TILE_MAGICS', 'MAP_MAGIC', 'MAP_VERSION', 'MAP_HEIGHT_MAGIC',
    'SpawnFlags', 'ModelFlags', 'HeightFlags',
]

#: World model files must start with exactly this.
VMAP_MAGIC: Final = 'VMAP_4.E'
#: Tile spawn and tile index files have shipped with several versions, all sharing one layout.
#: Add new equivalent versions here.
TILE_MAGICS: Final[FrozenSet[str]] = frozenset({
    'VMAP_4.D',
    VMAP_MAGIC,
})

MAP_MAGIC: Final = 'MAPS'
MAP_VERSION: Final = 10
MAP_HEIGHT_MAGIC: Final = 'MHGT'

# Size of the magic strings at the start of each file.
VMAP_MAGIC_SIZE: Final = 8
MAP_MAGIC_SIZE: Final = 4

# Chunk tags in world model files.
CHUNK_WMOD: Final = 'WMOD'
CHUNK_GMOD: Final = 'GMOD'
CHUNK_GBIH: Final = 'GBIH'
CHUNK_VERT: Final = 'VERT'
CHUNK_TRIM: Final = 'TRIM'
CHUNK_MBIH: Final = 'MBIH'
CHUNK_LIQU: Final = 'LIQU'

#: Number of height samples along each edge of a terrain tile, at the corners of each cell.
CORNER_RES: Final = 129
#: Number of cells along each edge, height samples at the cell centers.
CELL_RES: Final = 128
#: The hole bitmap is a 16x16 grid of 8-byte blocks, one bit per cell.
HOLE_BLOCKS: Final = 16
HOLES_SIZE: Final = HOLE_BLOCKS * HOLE_BLOCKS * 8
#: Height range reported when a terrain tile has no height section.
INVALID_HEIGHT: Final = -500.0


def add_unknown(ns: MutableMapping[str, Any], long: bool = False) -> None:
    """Add dummy members for :external:class:`enum.Flag` to allow all bits to be set.

    It should be called at the end of the class body. Files written by newer extractors may
    set bits we don't know about, this ensures those still parse.

    :param ns: The class namespace to add members to. This should be set to \
        :external:func:`locals()` or :external:func:`vars()`.
    :param long: If set, extend to 64 bits, not 32 bits.
    """
    used_bits = functools.reduce(
        operator.or_,
        # Skip dunder names etc added to the namespace.
        [
            value for name, value in ns.items()
            if isinstance(value, int) and not name.startswith('_')
        ],
        0,
    )
    for i in range(64 if long else 32):
        bit = 1 << i
        if not bit & used_bits:
            # Name it after the bit number. Intern so repeated calls share strings.
            ns[sys.intern(str(i))] = bit


class SpawnFlags(Flag):
    """The ``MOD_*`` flags stored in the first byte of each model spawn."""
    NONE = 0
    HAS_BOUND = 0x1
    """A bounding box follows the scale, before the name."""
    PARENT_SPAWN = 0x2
    """This spawn is the parent of others in the tile."""
    PATH_ONLY = 0x4
    """Only used for pathfinding, not line of sight."""

    add_unknown(locals())


class ModelFlags(Flag):
    """Flags in the ``WMOD`` header of a world model."""
    NONE = 0
    IS_M2 = 0x2
    """The model was converted from a doodad (M2), instead of a WMO."""

    add_unknown(locals())


class HeightFlags(Flag):
    """Flags in the ``MHGT`` section header, determining how heights are stored."""
    NONE = 0
    NO_HEIGHT = 0x1
    """The tile is flat, no height values follow the header."""
    AS_INT16 = 0x2
    """Heights are 16-bit fixed point, scaled between the grid heights."""
    AS_INT8 = 0x4
    """Heights are 8-bit fixed point, scaled between the grid heights."""
    HAS_FLIGHT_BOUNDS = 0x8
    """Flight bounds follow the height data. These are not read."""

    add_unknown(locals())
