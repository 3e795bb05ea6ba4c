"""Parses terrain map files (``.map``), containing the heightmap and holes for one tile.

The header lists the offset and size of each section. The area and liquid sections are not
decoded, but their locations are available in :py:class:`MapFileHeader`.
"""
from typing import List, Optional, Tuple, Union
from struct import Struct

import attrs

from vmaptools import logger
from vmaptools.binformat import ByteReader
from vmaptools.const import (
    CELL_RES, CORNER_RES, HOLE_BLOCKS, HOLES_SIZE, INVALID_HEIGHT,
    MAP_HEIGHT_MAGIC, MAP_MAGIC, MAP_MAGIC_SIZE, MAP_VERSION, HeightFlags,
)
from vmaptools.errors import BadMagic, BadVersion, DecodeError


__all__ = ['MapFileHeader', 'HeightHeader', 'TerrainGrid', 'is_hole']
LOGGER = logger.get_logger(__name__)

# The header after the magic and version.
ST_MAP_HEADER = Struct('<9I')
ST_HEIGHT_HEADER = Struct('<Iff')


def is_hole(holes: bytes, row: int, col: int) -> bool:
    """Check if the specified cell is a hole.

    The bitmap is a 16x16 grid of blocks, each 8 bytes covering 8x8 cells with one bit per cell.
    Both ``row`` and ``col`` must be in the range ``0-127``, this is not checked.
    """
    block_row, hole_row = divmod(row, 8)
    block_col, hole_col = divmod(col, 8)
    return (holes[block_row * HOLE_BLOCKS * 8 + block_col * 8 + hole_row] & (1 << hole_col)) != 0


@attrs.frozen
class MapFileHeader:
    """The header at the start of the file."""
    magic: str
    version: int
    build: int
    area_offset: int
    area_size: int
    height_offset: int
    height_size: int
    liquid_offset: int
    liquid_size: int
    holes_offset: int
    holes_size: int

    @property
    def has_height(self) -> bool:
        """Whether the file includes a height section."""
        return self.height_offset > 0 and self.height_size > 0

    @property
    def has_holes(self) -> bool:
        """Whether the file includes a hole bitmap."""
        return self.holes_offset > 0 and self.holes_size > 0


@attrs.frozen
class HeightHeader:
    """The header of the ``MHGT`` section."""
    flags: HeightFlags
    grid_height: float
    grid_max_height: float


def _rescale(raw: List[int], multiplier: float, base: float) -> List[float]:
    """Convert fixed point heights into absolute heights."""
    return [value * multiplier + base for value in raw]


@attrs.frozen
class TerrainGrid:
    """The decoded contents of a terrain map file.

    Heights are stored row-major, so ``corner_heights[row * 129 + col]``.
    """
    header: MapFileHeader
    height_header: Optional[HeightHeader] = None
    #: The 129x129 samples at the corners of each cell.
    corner_heights: Optional[Tuple[float, ...]] = attrs.field(
        default=None, converter=attrs.converters.optional(tuple),
    )
    #: The 128x128 samples at the center of each cell.
    cell_heights: Optional[Tuple[float, ...]] = attrs.field(
        default=None, converter=attrs.converters.optional(tuple),
    )
    grid_height: float = INVALID_HEIGHT
    grid_max_height: float = INVALID_HEIGHT
    #: The raw 2048 byte hole bitmap, see :py:func:`is_hole`.
    holes: Optional[bytes] = None

    @property
    def has_height_data(self) -> bool:
        """Whether height samples were present, instead of a flat tile."""
        return self.corner_heights is not None

    @property
    def has_holes(self) -> bool:
        """Whether a hole bitmap was present."""
        return self.holes is not None

    def corner_height(self, row: int, col: int) -> float:
        """Return the height at the top-left corner of a cell, ``row`` and ``col`` in ``0-128``.

        For flat tiles, this returns the grid height.
        """
        if self.corner_heights is None:
            return self.grid_height
        return self.corner_heights[row * CORNER_RES + col]

    def cell_height(self, row: int, col: int) -> float:
        """Return the height at the center of a cell, ``row`` and ``col`` in ``0-127``.

        For flat tiles, this returns the grid height.
        """
        if self.cell_heights is None:
            return self.grid_height
        return self.cell_heights[row * CELL_RES + col]

    def is_hole(self, row: int, col: int) -> bool:
        """Check if the specified cell is a hole. If no bitmap is present, there are no holes."""
        if self.holes is None:
            return False
        return is_hole(self.holes, row, col)

    @classmethod
    def parse(cls, data: Union[bytes, bytearray, memoryview]) -> 'TerrainGrid':
        """Parse a terrain map file.

        :raises DecodeError: If the file or one of its sections is invalid.
        """
        reader = ByteReader(data)

        magic = reader.read_fixed_string(MAP_MAGIC_SIZE)
        if magic != MAP_MAGIC:
            raise BadMagic(f'Invalid map magic: expected {MAP_MAGIC!r}, got {magic!r}')
        version = reader.read_u32()
        if version != MAP_VERSION:
            raise BadVersion(f'Invalid map version: expected {MAP_VERSION}, got {version}')

        header = MapFileHeader(magic, version, *reader.read_struct(ST_MAP_HEADER))

        height_header: Optional[HeightHeader] = None
        corners: Optional[List[float]] = None
        cells: Optional[List[float]] = None
        holes: Optional[bytes] = None
        grid_height = grid_max_height = INVALID_HEIGHT

        if header.has_height:
            with DecodeError.context('height section'):
                reader.seek(header.height_offset)
                height_header, corners, cells = cls._read_heights(reader)
            grid_height = height_header.grid_height
            grid_max_height = height_header.grid_max_height

        if header.has_holes:
            with DecodeError.context('holes section'):
                reader.seek(header.holes_offset)
                holes = reader.read_bytes(HOLES_SIZE)

        LOGGER.debug(
            'Read map: heights={}, holes={}, range={}-{}',
            corners is not None, holes is not None, grid_height, grid_max_height,
        )
        return cls(
            header,
            height_header,
            corners,
            cells,
            grid_height,
            grid_max_height,
            holes,
        )

    @staticmethod
    def _read_heights(
        reader: ByteReader,
    ) -> Tuple[HeightHeader, Optional[List[float]], Optional[List[float]]]:
        """Read the height section, at the current position."""
        magic = reader.read_fixed_string(MAP_MAGIC_SIZE)
        if magic != MAP_HEIGHT_MAGIC:
            raise BadMagic(f'Invalid height magic: expected {MAP_HEIGHT_MAGIC!r}, got {magic!r}')
        raw_flags, grid_height, grid_max_height = reader.read_struct(ST_HEIGHT_HEADER)
        flags = HeightFlags(raw_flags)
        height_header = HeightHeader(flags, grid_height, grid_max_height)

        if HeightFlags.NO_HEIGHT in flags:
            return height_header, None, None

        corner_count = CORNER_RES * CORNER_RES
        cell_count = CELL_RES * CELL_RES
        # Int8 takes priority, if both are set.
        if HeightFlags.AS_INT8 in flags:
            fmt, max_raw = 'B', 255
        elif HeightFlags.AS_INT16 in flags:
            fmt, max_raw = 'H', 65535
        else:
            fmt, max_raw = 'f', 0

        corners = reader.read_array(fmt, corner_count)
        cells = reader.read_array(fmt, cell_count)
        if max_raw:
            multiplier = (grid_max_height - grid_height) / max_raw
            corners = _rescale(corners, multiplier, grid_height)
            cells = _rescale(cells, multiplier, grid_height)
        return height_header, corners, cells
