"""
Logging utilities for the execution core.

Every component accepts an optional logger. This module turns whatever the
caller injected (nothing, a ``logging.Logger``, or a console-style sink with
``log``/``warn`` methods) into something with the standard logging methods,
and provides the handler setup used by the CLI and the API server.
"""

import logging
import sys
import traceback
from logging.handlers import RotatingFileHandler
from typing import Any, Optional

from .log_filters import RoutineCycleFilter

LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s: %(message)s'


class SinkLogger:
    """
    Adapts a console-style sink (``log`` and ``warn`` callables) to the
    ``logging.Logger`` call surface used across tickpy.

    A sink missing one of the methods silently drops that level; a sink that
    raises while writing is ignored. Logging must never take a cycle down.
    """

    def __init__(self, sink: Any):
        self.sink = sink

    def _emit(self, method_names, msg: Any, args, exc_info: Any = None) -> None:
        text = str(msg)
        if args:
            try:
                text = text % args
            except (TypeError, ValueError):
                text = f"{text} {args!r}"
        if exc_info and sys.exc_info()[0] is not None:
            text = f"{text}\n{traceback.format_exc().rstrip()}"
        for name in method_names:
            method = getattr(self.sink, name, None)
            if callable(method):
                try:
                    method(text)
                except Exception:
                    pass
                return

    def debug(self, msg: Any, *args, **kwargs) -> None:
        self._emit(('debug', 'log'), msg, args)

    def info(self, msg: Any, *args, **kwargs) -> None:
        self._emit(('log',), msg, args)

    def warning(self, msg: Any, *args, **kwargs) -> None:
        self._emit(('warn',), msg, args)

    def error(self, msg: Any, *args, **kwargs) -> None:
        self._emit(('error', 'warn'), msg, args, kwargs.get('exc_info'))

    def exception(self, msg: Any, *args, **kwargs) -> None:
        self._emit(('error', 'warn'), msg, args, True)

    def critical(self, msg: Any, *args, **kwargs) -> None:
        self.error(msg, *args)

    def isEnabledFor(self, level: int) -> bool:
        return True


def resolve_logger(sink: Any = None, default_name: str = 'tickpy') -> Any:
    """
    Return a logger-like object for the given injected sink.

    Args:
        sink: None, a ``logging.Logger``/``LoggerAdapter``, or any object with
            ``log``/``warn`` methods
        default_name: logger name used when no sink is injected

    Returns:
        An object exposing debug/info/warning/error/exception
    """
    if sink is None:
        return logging.getLogger(default_name)
    if isinstance(sink, (logging.Logger, logging.LoggerAdapter, SinkLogger)):
        return sink
    return SinkLogger(sink)


def safe_repr(obj: Any, max_length: int = 200) -> str:
    """
    Create a length-limited repr for log lines.

    Store documents can be large or even cyclic; ``repr`` copes with cycles
    but this also guards against objects whose ``__repr__`` raises.
    """
    try:
        text = repr(obj)
    except Exception as e:
        text = f"<unrepresentable {type(obj).__name__}: {e}>"

    if len(text) > max_length:
        text = text[:max_length] + '...(truncated)'

    return text


def configure_logging(level: str = 'INFO', log_file: Optional[str] = None,
                      max_bytes: int = 10485760, backup_count: int = 5,
                      routine_interval: int = 100) -> logging.Logger:
    """
    Configure the ``tickpy`` logger hierarchy.

    Args:
        level: log level name
        log_file: optional path for a rotating log file
        max_bytes: size before rotation (default: 10MB)
        backup_count: rotated files to keep (default: 5)
        routine_interval: keep one routine cycle summary every N ticks

    Returns:
        The configured ``tickpy`` root logger
    """
    root = logging.getLogger('tickpy')
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    for handler in list(root.handlers):
        root.removeHandler(handler)

    formatter = logging.Formatter(LOG_FORMAT)
    cycle_filter = RoutineCycleFilter(interval=routine_interval)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    console.addFilter(cycle_filter)
    root.addHandler(console)

    if log_file:
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setFormatter(formatter)
        file_handler.addFilter(cycle_filter)
        root.addHandler(file_handler)

    root.propagate = False
    return root
