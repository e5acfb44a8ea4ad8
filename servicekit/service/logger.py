"""Console and syslog loggers handed to hosted programs."""

import logging
import os
import sys
from logging.handlers import SysLogHandler
from typing import Callable

from loguru import logger

from servicekit.service.base import FilesystemError

SYSLOG_ADDRESS = "/dev/log"


def is_interactive() -> bool:
    """True unless running under an init system (systemd or PID 1 parent)."""
    if os.environ.get("INVOCATION_ID"):
        return False
    return os.getppid() != 1


class ServiceLogger:
    """Logger bound to a service name."""

    def __init__(self, name: str):
        self.name = name
        self._logger = logger.bind(service=name)

    def error(self, message: str) -> None:
        self._logger.opt(depth=1).error(message)

    def warning(self, message: str) -> None:
        self._logger.opt(depth=1).warning(message)

    def info(self, message: str) -> None:
        self._logger.opt(depth=1).info(message)

    def close(self) -> None:
        pass


class ConsoleLogger(ServiceLogger):
    """Writes through loguru's configured sinks (stderr by default)."""


class _SyslogHandler(SysLogHandler):
    def __init__(self, ident: str, errs: Callable[[Exception], None] | None, address: str):
        super().__init__(address=address, facility=SysLogHandler.LOG_DAEMON)
        self.ident = f"{ident}: "
        self._errs = errs

    def handleError(self, record: logging.LogRecord) -> None:
        if self._errs is None:
            super().handleError(record)
            return
        exc = sys.exc_info()[1]
        if exc is not None:
            self._errs(exc)


class SystemLogger(ServiceLogger):
    """Adds a syslog sink that only receives records from this instance.

    Delivery failures go to *errs* when given, otherwise to stderr. The
    sink holds a socket until :meth:`close`.
    """

    def __init__(
        self,
        name: str,
        errs: Callable[[Exception], None] | None = None,
        address: str = SYSLOG_ADDRESS,
    ):
        super().__init__(name)
        try:
            handler = _SyslogHandler(name, errs, address)
        except OSError as e:
            raise FilesystemError(address, e) from e
        self._handler = handler
        token = object()
        self._logger = self._logger.bind(syslog_sink=token)
        self._sink_id = logger.add(
            handler,
            level="INFO",
            format="{message}",
            filter=lambda record: record["extra"].get("syslog_sink") is token,
        )

    @property
    def closed(self) -> bool:
        return self._sink_id is None

    def close(self) -> None:
        if self._sink_id is None:
            return
        logger.remove(self._sink_id)
        self._sink_id = None
        self._handler.close()
