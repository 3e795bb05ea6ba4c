"""
The binformat module :mod:`binformat` contains the reader all the decoders are built on, \
essentially expanding on :external:mod:`struct`'s functionality with bounds checking.

All values are little-endian, floats are IEEE-754 single precision.
"""
from typing import Any, Final, List, Mapping, Tuple, Union
from struct import Struct
import functools

from vmaptools.errors import UnexpectedEndOfData
from vmaptools.math import AABox, Vec3


__all__ = [
    'SIZES',
    'SIZE_CHAR', 'SIZE_SHORT', 'SIZE_INT', 'SIZE_FLOAT',
    'ST_VEC', 'ST_AABOX',
    'ByteReader',
]

ST_U8: Final = Struct('<B')
ST_U16: Final = Struct('<H')
ST_U32: Final = Struct('<I')
ST_I32: Final = Struct('<i')
ST_F32: Final = Struct('<f')
ST_VEC: Final = Struct('<3f')
ST_AABOX: Final = Struct('<6f')

SIZES: Final[Mapping[str, int]] = {
    fmt: Struct('<' + fmt).size
    for fmt in 'bBhHiIf'
}
SIZE_CHAR: Final = 1
SIZE_SHORT: Final = 2
SIZE_INT: Final = 4
SIZE_FLOAT: Final = 4

assert SIZE_CHAR == SIZES['b']
assert SIZE_SHORT == SIZES['h']
assert SIZE_INT == SIZES['i']
assert SIZE_FLOAT == SIZES['f']

_cached_struct = functools.lru_cache()(Struct)


class ByteReader:
    """Reads values sequentially from an in-memory buffer.

    Every read checks the remaining length first, raising
    :py:class:`~vmaptools.errors.UnexpectedEndOfData` instead of returning short data.
    The position is only advanced if the read succeeds.
    """
    __slots__ = ('_data', '_pos')

    def __init__(self, data: Union[bytes, bytearray, memoryview]) -> None:
        # Copy mutable buffers, so the caller can't change data under us.
        self._data = bytes(data)
        self._pos = 0

    def __repr__(self) -> str:
        return f'<ByteReader at {self._pos}/{len(self._data)}>'

    def __len__(self) -> int:
        return len(self._data)

    @property
    def position(self) -> int:
        """The offset of the next byte that will be read."""
        return self._pos

    def tell(self) -> int:
        """Return the current position, like a file."""
        return self._pos

    @property
    def remaining(self) -> int:
        """The number of bytes left after the current position."""
        return len(self._data) - self._pos

    def has_remaining(self, count: int = 1) -> bool:
        """Check if at least this many bytes are left to read."""
        return self.remaining >= count

    def _take(self, size: int) -> int:
        """Check that the given number of bytes are available, then advance past them.

        The starting position is returned.
        """
        pos = self._pos
        if size < 0 or pos + size > len(self._data):
            raise UnexpectedEndOfData(pos, size, len(self._data) - pos)
        self._pos = pos + size
        return pos

    def seek(self, offset: int) -> None:
        """Move to an absolute position. Seeking to the very end is allowed."""
        if offset < 0:
            raise ValueError(f'Cannot seek to negative offset {offset}!')
        if offset > len(self._data):
            raise UnexpectedEndOfData(self._pos, offset - self._pos, self.remaining)
        self._pos = offset

    def skip(self, count: int) -> None:
        """Advance past this many bytes without reading them."""
        self._take(count)

    def read_bytes(self, count: int) -> bytes:
        """Read this many raw bytes."""
        pos = self._take(count)
        return self._data[pos:pos + count]

    def read_struct(self, fmt: Union[Struct, str]) -> Tuple[Any, ...]:
        """Read a structure, automatically computing the required number of bytes."""
        if not isinstance(fmt, Struct):
            fmt = _cached_struct(fmt)
        pos = self._take(fmt.size)
        return fmt.unpack_from(self._data, pos)

    def read_array(self, fmt: str, count: int) -> List[Any]:
        """Read ``count`` consecutive values of a single format character."""
        if count == 0:
            return []
        try:
            item_size = SIZES[fmt]
        except KeyError:
            raise ValueError(f'Unknown format character {fmt!r}!') from None
        pos = self._take(item_size * count)
        return list(_cached_struct(f'<{count}{fmt}').unpack_from(self._data, pos))

    def read_u8(self) -> int:
        """Read an unsigned byte."""
        return ST_U8.unpack_from(self._data, self._take(1))[0]

    def read_u16(self) -> int:
        """Read an unsigned 16-bit integer."""
        return ST_U16.unpack_from(self._data, self._take(2))[0]

    def read_u32(self) -> int:
        """Read an unsigned 32-bit integer."""
        return ST_U32.unpack_from(self._data, self._take(4))[0]

    def read_i32(self) -> int:
        """Read a signed 32-bit integer."""
        return ST_I32.unpack_from(self._data, self._take(4))[0]

    def read_f32(self) -> float:
        """Read a single-precision float."""
        return ST_F32.unpack_from(self._data, self._take(4))[0]

    def read_vec3(self) -> Vec3:
        """Shortcut to read a 3-float vector."""
        return Vec3.from_tuple(ST_VEC.unpack_from(self._data, self._take(ST_VEC.size)))

    def read_aabox(self) -> AABox:
        """Read a bounding box, as the low then high vectors."""
        lx, ly, lz, hx, hy, hz = ST_AABOX.unpack_from(self._data, self._take(ST_AABOX.size))
        return AABox(Vec3(lx, ly, lz), Vec3(hx, hy, hz))

    def read_fixed_string(self, length: int) -> str:
        """Read a string padded with null bytes to a fixed width.

        Only the trailing nulls are removed, any embedded in the middle are kept.
        """
        return self.read_bytes(length).decode('utf8', 'replace').rstrip('\0')

    def read_len_string(self) -> str:
        """Read a string prefixed by its length in bytes, as a 32-bit integer.

        If the string is truncated, the position is left before the length.
        """
        start = self._pos
        length = self.read_u32()
        try:
            data = self.read_bytes(length)
        except UnexpectedEndOfData:
            self._pos = start
            raise
        return data.decode('utf8', 'replace')

    def read_chunk_tag(self) -> str:
        """Read the 4-character tag identifying the next chunk.

        This is not stripped, so tags containing nulls won't match the expected tag.
        """
        return self.read_bytes(4).decode('ascii', 'backslashreplace')
