"""Small value types for positions and bounding boxes read from the files."""
from typing import Iterator, Tuple

import attrs


__all__ = ['format_float', 'Vec3', 'AABox']


def format_float(x: float, places: int = 6) -> str:
    """Convert the specified float to a string, stripping off a .0 if it ends with that."""
    result = f'{x:.{places}f}'
    if '.' in result:
        result = result.rstrip('0')
    return result.rstrip('.')


@attrs.frozen
class Vec3:
    """An immutable 3D vector, as stored in the files (3 single-precision floats)."""
    x: float
    y: float
    z: float

    @classmethod
    def from_tuple(cls, values: Tuple[float, float, float]) -> 'Vec3':
        """Build from an unpacked ``xyz`` triple."""
        x, y, z = values
        return cls(x, y, z)

    def __iter__(self) -> Iterator[float]:
        """Iterating through the vector yields each axis in order."""
        yield self.x
        yield self.y
        yield self.z

    def __str__(self) -> str:
        """Return the values, separated by spaces.

        This strips off the .0 if no decimal portion exists.
        """
        return f'{format_float(self.x)} {format_float(self.y)} {format_float(self.z)}'


@attrs.frozen
class AABox:
    """An axis-aligned bounding box.

    The values are passed through exactly as stored, so ``low`` is not guaranteed to be less
    than ``high``.
    """
    low: Vec3
    high: Vec3

    def is_valid(self) -> bool:
        """Check that ``low`` is less than or equal to ``high`` on all axes."""
        return all(lo <= hi for lo, hi in zip(self.low, self.high))

    def __str__(self) -> str:
        return f'({self.low}) - ({self.high})'
