"""Parses tile index files (``.vmtileidx``).

These hold the tree node index for each spawn in the matching ``.vmtile`` file, in the same
order.
"""
from typing import Tuple, Union

import attrs

from vmaptools import logger
from vmaptools.binformat import ByteReader
from vmaptools.vmtile import check_tile_magic


__all__ = ['VmTileIndex']
LOGGER = logger.get_logger(__name__)


@attrs.frozen
class VmTileIndex:
    """The contents of a tile index file."""
    magic: str
    node_indices: Tuple[int, ...] = attrs.field(converter=tuple)

    @classmethod
    def parse(cls, data: Union[bytes, bytearray, memoryview]) -> 'VmTileIndex':
        """Parse a tile index file.

        :raises DecodeError: If the magic is wrong or the file is truncated.
        """
        reader = ByteReader(data)
        magic = check_tile_magic(reader, 'vmtileidx')
        count = reader.read_u32()
        indices = reader.read_array('I', count)
        LOGGER.debug('Read {} node indices ({})', count, magic)
        return cls(magic, indices)
