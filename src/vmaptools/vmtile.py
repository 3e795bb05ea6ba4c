"""Parses tile spawn files (``.vmtile``), listing the models placed in a map tile.

Each spawn names a world model file (``.vmo``), which is parsed separately by
:py:mod:`vmaptools.vmo`.
"""
from typing import List, Optional, Tuple, Union

import attrs

from vmaptools import logger
from vmaptools.binformat import ByteReader
from vmaptools.const import TILE_MAGICS, VMAP_MAGIC_SIZE, SpawnFlags
from vmaptools.errors import BadMagic, DecodeError
from vmaptools.math import AABox, Vec3


__all__ = ['ModelSpawn', 'VmTile', 'check_tile_magic']
LOGGER = logger.get_logger(__name__)


def check_tile_magic(reader: ByteReader, kind: str) -> str:
    """Read the magic at the start of a tile or tile index file, and check it's a known version.

    :param kind: The file type, used in the error message.
    """
    magic = reader.read_fixed_string(VMAP_MAGIC_SIZE)
    if magic not in TILE_MAGICS:
        raise BadMagic(
            f'Invalid {kind} magic: expected one of '
            f'{", ".join(f"{value!r}" for value in sorted(TILE_MAGICS))}, got {magic!r}'
        )
    return magic


@attrs.frozen
class ModelSpawn:
    """A model placed in the world."""
    flags: SpawnFlags
    adt_id: int  #: The terrain tile the spawn was extracted from.
    id: int  #: The unique ID of the spawn.
    position: Vec3
    rotation: Vec3  #: Euler angles, in degrees.
    scale: float
    #: The world-space bounds, only present if :py:attr:`~SpawnFlags.HAS_BOUND` is set.
    bound: Optional[AABox]
    #: The filename of the world model this spawns.
    name: str

    @property
    def has_bound(self) -> bool:
        """Whether this spawn stores a bounding box."""
        return SpawnFlags.HAS_BOUND in self.flags

    @property
    def is_parent_spawn(self) -> bool:
        """Whether this is the parent of other spawns."""
        return SpawnFlags.PARENT_SPAWN in self.flags

    @property
    def is_path_only(self) -> bool:
        """Whether this is only used for pathfinding."""
        return SpawnFlags.PATH_ONLY in self.flags

    @classmethod
    def read(cls, reader: ByteReader) -> 'ModelSpawn':
        """Read a single spawn record from the reader."""
        flags = SpawnFlags(reader.read_u8())
        adt_id = reader.read_u8()
        spawn_id = reader.read_u32()
        position = reader.read_vec3()
        rotation = reader.read_vec3()
        scale = reader.read_f32()

        bound: Optional[AABox]
        if SpawnFlags.HAS_BOUND in flags:
            bound = reader.read_aabox()
        else:
            bound = None

        return cls(
            flags=flags,
            adt_id=adt_id,
            id=spawn_id,
            position=position,
            rotation=rotation,
            scale=scale,
            bound=bound,
            name=reader.read_len_string(),
        )


@attrs.frozen
class VmTile:
    """The contents of a tile spawn file."""
    magic: str
    #: Spawns in file order, this matches the order of the tile index file.
    spawns: Tuple[ModelSpawn, ...] = attrs.field(converter=tuple)

    @classmethod
    def parse(cls, data: Union[bytes, bytearray, memoryview]) -> 'VmTile':
        """Parse a tile spawn file.

        :raises DecodeError: If the file is invalid. Errors in a spawn are labelled with its index.
        """
        reader = ByteReader(data)
        magic = check_tile_magic(reader, 'vmtile')

        spawn_count = reader.read_u32()
        spawns: List[ModelSpawn] = []
        for i in range(spawn_count):
            with DecodeError.context(f'spawn {i}'):
                spawns.append(ModelSpawn.read(reader))

        LOGGER.debug('Read {} spawns ({})', len(spawns), magic)
        return cls(magic, spawns)
