"""Exceptions raised when a file fails to decode, and a result wrapper for callers which
prefer a value over an exception.

All errors derive from :py:class:`DecodeError`. Decoding is all-or-nothing, so a failure
anywhere in a file aborts the whole parse. As the exception propagates out of nested records,
a context label (``spawn 3``, ``group 12`` etc) is added so the message identifies where the
failure occurred.
"""
from typing import Callable, Generic, Iterator, List, Optional, TypeVar
import contextlib

import attrs

from vmaptools import StringPath


__all__ = [
    'DecodeError', 'BadMagic', 'BadVersion',
    'ChunkTooSmall', 'ChunkSizeMismatch', 'UnexpectedChunk',
    'UnexpectedEndOfData', 'InvalidEncoding',
    'DecodeResult', 'attempt',
]
T = TypeVar('T')


class DecodeError(ValueError):
    """Base class for errors that occurred when decoding a file.

    The string representation includes the context path and filename, if present.
    """
    mess: str
    """The error message that occurred."""
    file: Optional[StringPath]
    """The filename of the file being parsed, or ``None`` if not known."""
    path: List[str]
    """Labels for the records being decoded when the error occurred, outermost first."""

    def __init__(self, message: str, file: Optional[StringPath] = None) -> None:
        super().__init__(message)
        self.mess = message
        self.file = file
        self.path = []

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.mess!r}, {self.file!r}, path={self.path!r})'

    def __str__(self) -> str:
        """Generate the complete error message."""
        if self.path:
            msg = f'{", ".join(self.path)}: {self.mess}'
        else:
            msg = self.mess
        if self.file is not None:
            return f'{msg}\nError occurred with file "{self.file}".'
        return msg

    @staticmethod
    @contextlib.contextmanager
    def context(label: str) -> Iterator[str]:
        """Add a context label to any :py:class:`DecodeError` raised inside this block.

        Blocks closer to the error source run first, so each label is inserted at the front.
        """
        try:
            yield label
        except DecodeError as exc:
            exc.path.insert(0, label)
            raise

    @staticmethod
    @contextlib.contextmanager
    def apply_filename(filename: StringPath) -> Iterator[StringPath]:
        """Applies a filename to any :py:class:`DecodeError` raised inside this scope.

        This has no effect if the filename was already set, by another call closer to the
        exception source.
        """
        try:
            yield filename
        except DecodeError as exc:
            if exc.file is None:
                exc.file = filename
            raise


class BadMagic(DecodeError):
    """The file (or a section of it) does not begin with an accepted signature."""


class BadVersion(DecodeError):
    """The terrain map version number is not the one we can read."""


class ChunkTooSmall(DecodeError):
    """A chunk declared a size too small to contain its required fields."""


class ChunkSizeMismatch(ChunkTooSmall):
    """In strict mode, a chunk's declared size disagrees with the data that was read."""


class UnexpectedChunk(DecodeError):
    """A different chunk tag was found than the one required at this position."""
    expected: str
    actual: str

    def __init__(self, expected: str, actual: str, file: Optional[StringPath] = None) -> None:
        super().__init__(f'Expected chunk "{expected}", got "{actual}"', file)
        self.expected = expected
        self.actual = actual


class UnexpectedEndOfData(DecodeError):
    """A read, skip or seek went past the end of the buffer."""
    offset: int
    requested: int
    available: int

    def __init__(
        self,
        offset: int, requested: int, available: int,
        file: Optional[StringPath] = None,
    ) -> None:
        super().__init__(
            f'Unexpected end of data at offset {offset}: '
            f'needed {requested} bytes, only {available} remain',
            file,
        )
        self.offset = offset
        self.requested = requested
        self.available = available


class InvalidEncoding(DecodeError):
    """The height section flags describe an encoding we do not know how to read."""


@attrs.frozen
class DecodeResult(Generic[T]):
    """The outcome of decoding a file, either the data or an error message."""
    data: Optional[T] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        """Whether decoding succeeded."""
        return self.error is None

    def unwrap(self) -> T:
        """Return the data, or raise a :py:class:`DecodeError` with the stored message."""
        if self.error is not None:
            raise DecodeError(self.error)
        assert self.data is not None
        return self.data


def attempt(
    parser: Callable[[bytes], T],
    data: bytes,
    filename: Optional[StringPath] = None,
) -> DecodeResult[T]:
    """Run a parser, converting any :py:class:`DecodeError` into a failed result.

    Other exceptions are not caught, those indicate bugs rather than bad files.
    """
    try:
        if filename is not None:
            with DecodeError.apply_filename(filename):
                return DecodeResult(parser(data))
        return DecodeResult(parser(data))
    except DecodeError as exc:
        return DecodeResult(error=str(exc))
