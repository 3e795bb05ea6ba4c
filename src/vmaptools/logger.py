"""
Wrapper around logging to provide our own functionality.

Messages are formatted with str.format() instead of %, and a context stack can be used to
show which file a message relates to.
"""
from typing import (
    TYPE_CHECKING, Any, Dict, Generator, List, Mapping, Optional, Tuple, Type, Union, cast,
)
from pathlib import Path
from types import TracebackType
import contextlib
import contextvars
import logging
import os
import sys

from vmaptools import StringPath


__all__ = ['LoggerAdapter', 'get_handler', 'get_logger', 'init_logging', 'context']
# Only generic in stubs!
CTX_STACK: 'contextvars.ContextVar[List[str]]' = contextvars.ContextVar('vmaptools_logger')
DEBUG_ENV: str = 'VMAPTOOLS_DEBUG'


class LogMessage:
    """Allow using str.format() in logging messages.

    The __str__() method performs the joining.
    """
    fmt: str
    args: Tuple[object, ...]
    kwargs: Dict[str, object]
    has_args: bool

    def __init__(
        self,
        fmt: str,
        args: Tuple[object, ...],
        kwargs: Dict[str, object],
    ) -> None:
        self.fmt = fmt
        self.args = args
        self.kwargs = kwargs
        self.has_args = bool(kwargs or args)

    def format_msg(self) -> str:
        """Format using str.format."""
        # Only format if we have arguments, so { or } can be used in regular messages.
        if self.has_args:
            f = self.fmt = str(self.fmt).format(*self.args, **self.kwargs)
            # Don't repeat the formatting, and don't keep refs to the args.
            del self.args, self.kwargs
            self.has_args = False
            return f
        else:
            return str(self.fmt)

    def __str__(self) -> str:
        """Format the string, indenting continuation lines."""
        msg = self.format_msg()
        if '\n' not in msg:
            return msg
        lines = msg.split('\n')
        if lines[-1].isspace():
            del lines[-1]
        return '\n | '.join(lines) + '\n |___\n'


_SysExcInfoType = Union[
    Tuple[Type[BaseException], BaseException, Optional[TracebackType]],
    Tuple[None, None, None]
]
if TYPE_CHECKING:  # Only generic in stubs.
    _AdapterBase = logging.LoggerAdapter[logging.Logger]
else:
    _AdapterBase = logging.LoggerAdapter


class LoggerAdapter(_AdapterBase):
    """Fix loggers to use str.format()."""
    logger: logging.Logger
    alias: Optional[str]

    def __init__(self, logger: logging.Logger, alias: Optional[str] = None) -> None:
        # Alias is a replacement module name for log messages.
        self.alias = alias
        self.logger = logger
        logging.LoggerAdapter.__init__(self, logger, extra={})

    def log(
        self,
        level: int,
        msg: Any,
        *args: Any,
        exc_info: Union[None, bool, _SysExcInfoType, BaseException] = None,
        stack_info: bool = False,
        extra: Optional[Mapping[str, object]] = None,
        stacklevel: int = 0,
        **kwargs: Any,
    ) -> None:
        """This version of :external:py:meth:`~logging.Logger.log()` uses :external:py:meth:`str.format()`.

        The message is wrapped in a :py:class:`LogMessage` object, which is given the
        ``args`` and ``kwargs``.
        """
        if self.isEnabledFor(level):
            try:
                ctx = ', '.join(CTX_STACK.get())
            except LookupError:
                ctx = ''

            new_extra = {} if extra is None else dict(extra)
            new_extra['_vmaptools_alias'] = self.alias
            new_extra['vmaptools_context'] = f' ({ctx})' if ctx else ''

            # Skip over the adapter frames, so funcName is the caller.
            stacklevel += 2

            # noinspection PyProtectedMember
            self.logger._log(
                level,
                LogMessage(str(msg), args, kwargs),
                (),  # No positional arguments, we do the formatting through LogMessage.
                extra=new_extra,
                exc_info=exc_info,
                stack_info=stack_info,
                stacklevel=stacklevel,
            )

    def __getattr__(self, attr: str) -> Any:
        """Delegate unknown methods to the logger."""
        return getattr(self.logger, attr)


class Formatter(logging.Formatter):
    """Ensure our extra record attributes always exist."""
    def format(self, record: logging.LogRecord) -> str:
        """Ensure a default context is set in the record."""
        record.__dict__.setdefault('vmaptools_context', '')
        return super().format(record)


class NewLogRecord(logging.LogRecord):
    """Allow passing an alias and context for log modules."""
    _vmaptools_alias: Optional[str] = None
    # Can be used by formatters.
    vmaptools_context: str = ''
    module: str

    def getMessage(self) -> str:
        """We have to hook here to change the value of .module.

        It's called just before the formatting call is made.
        """
        if self._vmaptools_alias is not None:
            self.module = self._vmaptools_alias
        return super().getMessage()


def get_handler(filename: StringPath) -> logging.FileHandler:
    """Cycle log files, then give the required file handler.

    The previous log is kept with a ``.1`` suffix, and so on up to ``.5``.
    """
    path = Path(filename)
    ext = ''.join(path.suffixes)
    suffixes = ('.5', '.4', '.3', '.2', '.1', '')

    path.with_suffix(suffixes[0] + ext).unlink(missing_ok=True)
    for frm, to in zip(suffixes[1:], suffixes):
        try:
            path.with_suffix(frm + ext).rename(path.with_suffix(to + ext))
        except FileNotFoundError:
            pass
    return logging.FileHandler(path, mode='w', encoding='utf8')


def init_logging(
    filename: Optional[StringPath] = None,
    main_logger: str = '',
) -> logging.Logger:
    """Set up the logger and logging handlers, for use by scripts.

    :param filename: If this is set, all logs will be written to this file as well.
    :param main_logger: Specify the name of the logger to produce under the `vmaptools` hierachy.
    """
    if logging.getLogRecordFactory() is not NewLogRecord:
        if logging.getLogRecordFactory() is not logging.LogRecord:
            raise ValueError('Unknown record factory: ', logging.getLogRecordFactory())
        logging.setLogRecordFactory(NewLogRecord)

    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG)

    # Put more info in the log file, since it's not onscreen.
    long_log_format = Formatter(
        '[{levelname}]{vmaptools_context} {module}.{funcName}(): {message}',
        style='{',
    )
    # One letter for the level name on the console.
    short_log_format = Formatter(
        '[{levelname[0]}]{vmaptools_context} {module}.{funcName}(): {message}',
        style='{',
    )

    if filename is not None:
        os.makedirs(os.path.dirname(os.path.abspath(filename)), exist_ok=True)
        log_handler = get_handler(filename)
        log_handler.setLevel(logging.DEBUG)
        log_handler.setFormatter(long_log_format)
        logger.addHandler(log_handler)

    stdout_loghandler = logging.StreamHandler(sys.stdout)
    stdout_loghandler.setLevel(
        logging.DEBUG
        if os.environ.get(DEBUG_ENV, '0') == '1' else
        logging.INFO
    )
    stdout_loghandler.setFormatter(short_log_format)

    def ignore_warnings(record: logging.LogRecord) -> bool:
        """Warnings and above go to stderr, don't duplicate them."""
        return record.levelno < logging.WARNING
    stdout_loghandler.addFilter(ignore_warnings)
    logger.addHandler(stdout_loghandler)

    stderr_loghandler = logging.StreamHandler(sys.stderr)
    stderr_loghandler.setLevel(logging.WARNING)
    stderr_loghandler.setFormatter(short_log_format)
    logger.addHandler(stderr_loghandler)

    if main_logger:
        return get_logger(main_logger)
    else:
        return cast(logging.Logger, LoggerAdapter(logger))


def get_logger(name: str = '', alias: Optional[str] = None) -> logging.Logger:
    """Get the named logger object.

    This puts the logger into the ``vmaptools`` namespace, and wraps it to
    use :external:py:meth:`str.format()` instead of ``%`` formatting.
    If set, ``alias`` is the name to show for the module.
    """
    if name.startswith('vmaptools.') or name == 'vmaptools':
        log = logging.getLogger(name)
    elif name:
        log = logging.getLogger('vmaptools.' + name)
    else:  # Allow retrieving the main logger.
        log = logging.getLogger('vmaptools')
    return cast(logging.Logger, LoggerAdapter(log, alias))


@contextlib.contextmanager
def context(name: str) -> Generator[str, None, None]:
    """Context manager to allow specifying additional information for any logs contained in this block.

    The specified string gets included in the log messages.
    """
    try:
        stack = CTX_STACK.get()
    except LookupError:
        stack = []
        CTX_STACK.set(stack)
    stack.append(name)
    try:
        yield name
    finally:
        popped = stack.pop()
        assert popped is name, f'Popped incorrect value: pop({popped!r}) != ctx({name!r})!'
