"""Parses world model files (``.vmo``), holding the collision mesh for each model group.

The file is a sequence of chunks, each starting with a 4-character tag::

    "VMAP_4.E"
    WMOD <size> <flags> <root id>
    GMOD <group count>              (optional)
        <group>...
    GBIH <bih>                      (optional)

Each group is::

    <bounds> <flags> <group id>
    VERT <size> <count> <vertices>  (if count is zero, the group ends here)
    TRIM <size> <count> <triangles>
    MBIH <bih>
    LIQU <size> <liquid data>

The BIH trees are spatial indexes used for collision queries. We don't need those,
but they have no size field, so they have to be walked to find where the next chunk starts.
"""
from typing import List, Tuple, TypeVar, Union

import attrs

from vmaptools import logger
from vmaptools.binformat import SIZE_FLOAT, SIZE_INT, ByteReader
from vmaptools.const import (
    CHUNK_GBIH, CHUNK_GMOD, CHUNK_LIQU, CHUNK_MBIH, CHUNK_TRIM, CHUNK_VERT, CHUNK_WMOD,
    VMAP_MAGIC, VMAP_MAGIC_SIZE, ModelFlags,
)
from vmaptools.errors import (
    BadMagic, ChunkSizeMismatch, ChunkTooSmall, DecodeError, UnexpectedChunk,
)
from vmaptools.math import AABox


__all__ = ['GroupModel', 'WorldModel', 'skip_bih']
LOGGER = logger.get_logger(__name__)

T = TypeVar('T')
Vertex = Tuple[float, float, float]
Triangle = Tuple[int, int, int]
# Minimum size of the WMOD payload: flags and root ID.
WMOD_MIN_SIZE = 8


def expect_chunk(reader: ByteReader, tag: str) -> None:
    """Read the next chunk tag, and check it is the one required here."""
    actual = reader.read_chunk_tag()
    if actual != tag:
        raise UnexpectedChunk(tag, actual)


def skip_bih(reader: ByteReader) -> int:
    """Skip over a bounding interval hierarchy, returning the number of bytes consumed.

    The layout is the bounds (2 vectors), then a count of tree nodes, the nodes themselves, then
    a count of object indices and the indices. Everything is 4 bytes wide.
    """
    start = reader.position
    reader.skip(6 * SIZE_FLOAT)
    tree_count = reader.read_u32()
    reader.skip(tree_count * SIZE_INT)
    object_count = reader.read_u32()
    reader.skip(object_count * SIZE_INT)
    return reader.position - start


def _group_triples(values: List[T]) -> List[Tuple[T, T, T]]:
    """Split a flat list into consecutive triples."""
    it = iter(values)
    return list(zip(it, it, it))


def _check_size(tag: str, declared: int, count: int, strict: bool) -> None:
    """In strict mode, check the declared chunk size matches the count and 12-byte items."""
    if strict:
        expected = SIZE_INT + count * 3 * SIZE_INT
        if declared != expected:
            raise ChunkSizeMismatch(
                f'{tag} chunk declares {declared} bytes, but {count} items require {expected}'
            )


@attrs.frozen
class GroupModel:
    """A single group of a world model, with its own mesh."""
    bound: AABox
    group_flags: int
    group_id: int
    vertices: Tuple[Vertex, ...] = attrs.field(default=(), converter=tuple)
    #: Triangles, as indexes into the vertex list. These are not checked to be in range.
    indices: Tuple[Triangle, ...] = attrs.field(default=(), converter=tuple)

    @property
    def triangle_count(self) -> int:
        """The number of triangles in the mesh."""
        return len(self.indices)

    @classmethod
    def read(cls, reader: ByteReader, strict: bool = False) -> 'GroupModel':
        """Read a group from the reader.

        :param strict: If set, check the declared chunk sizes agree with the counts.
        """
        bound = reader.read_aabox()
        group_flags = reader.read_u32()
        group_id = reader.read_u32()

        expect_chunk(reader, CHUNK_VERT)
        vert_size = reader.read_u32()
        vert_count = reader.read_u32()
        _check_size(CHUNK_VERT, vert_size, vert_count, strict)
        if vert_count == 0:
            # Models without geometry end here, the writer doesn't write the other chunks.
            return cls(bound, group_flags, group_id)
        vertices = _group_triples(reader.read_array('f', 3 * vert_count))

        expect_chunk(reader, CHUNK_TRIM)
        tri_size = reader.read_u32()
        tri_count = reader.read_u32()
        _check_size(CHUNK_TRIM, tri_size, tri_count, strict)
        indices = _group_triples(reader.read_array('I', 3 * tri_count))

        # No size for this, it has to be walked.
        expect_chunk(reader, CHUNK_MBIH)
        skip_bih(reader)

        expect_chunk(reader, CHUNK_LIQU)
        liquid_size = reader.read_u32()
        if liquid_size > 0:
            reader.skip(liquid_size)

        return cls(bound, group_flags, group_id, vertices, indices)


@attrs.frozen
class WorldModel:
    """The contents of a world model file."""
    flags: ModelFlags
    root_id: int
    groups: Tuple[GroupModel, ...] = attrs.field(default=(), converter=tuple)

    @property
    def is_m2(self) -> bool:
        """Whether this was converted from a doodad, not a WMO."""
        return ModelFlags.IS_M2 in self.flags

    @property
    def vertex_count(self) -> int:
        """The total number of vertices in all groups."""
        return sum(len(group.vertices) for group in self.groups)

    @property
    def triangle_count(self) -> int:
        """The total number of triangles in all groups."""
        return sum(len(group.indices) for group in self.groups)

    @classmethod
    def parse(cls, data: Union[bytes, bytearray, memoryview], *, strict: bool = False) -> 'WorldModel':
        """Parse a world model file.

        :param strict: If set, the sizes declared by the ``VERT`` and ``TRIM`` chunks must match
            the vertex and triangle counts. Normally the counts are trusted.
        :raises DecodeError: If the file is invalid. Errors in a group are labelled with its index.
        """
        reader = ByteReader(data)
        magic = reader.read_fixed_string(VMAP_MAGIC_SIZE)
        if magic != VMAP_MAGIC:
            raise BadMagic(f'Invalid vmo magic: expected {VMAP_MAGIC!r}, got {magic!r}')

        expect_chunk(reader, CHUNK_WMOD)
        wmod_size = reader.read_u32()
        if wmod_size < WMOD_MIN_SIZE:
            raise ChunkTooSmall(f'WMOD chunk too small: {wmod_size}')
        flags = ModelFlags(reader.read_u32())
        root_id = reader.read_u32()

        if not reader.has_remaining(4):
            # Only the header, no groups.
            LOGGER.debug('Model {} has no groups', root_id)
            return cls(flags, root_id)

        expect_chunk(reader, CHUNK_GMOD)
        group_count = reader.read_u32()
        groups: List[GroupModel] = []
        for i in range(group_count):
            with DecodeError.context(f'group {i}'):
                groups.append(GroupModel.read(reader, strict))

        if reader.has_remaining(4) and reader.read_chunk_tag() == CHUNK_GBIH:
            skipped = skip_bih(reader)
            LOGGER.debug('Skipped {} byte group BIH', skipped)

        LOGGER.debug('Read model {} with {} groups', root_id, len(groups))
        return cls(flags, root_id, groups)
