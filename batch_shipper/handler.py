"""Logging handler that feeds records into a LogDispatcher."""

import asyncio
import logging
from typing import Callable, Optional

from batch_shipper.dispatcher import LogDispatcher
from batch_shipper.formatter import format_record

# Records from these loggers are never shipped. Every delivery makes this
# package and the HTTP stack log about it, and queueing those records would
# trigger another delivery.
_IGNORED_LOGGERS = ("batch_shipper", "httpx", "httpcore")
_IGNORED_PREFIXES = tuple(name + "." for name in _IGNORED_LOGGERS)


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class DispatchHandler(logging.Handler):
    """Formats each record as an NDJSON line and appends it to *dispatcher*.

    ``emit`` may run on any thread. Calls made on the dispatcher's loop thread
    append directly; calls from other threads are handed to the loop with
    ``call_soon_threadsafe``, so the producer is never blocked.
    """

    def __init__(
        self,
        dispatcher: LogDispatcher,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        level: int = logging.NOTSET,
        serializer: Callable[[logging.LogRecord], str] = format_record,
    ) -> None:
        super().__init__(level)
        self._dispatcher = dispatcher
        self._loop = loop or asyncio.get_running_loop()
        self._serializer = serializer

    def emit(self, record: logging.LogRecord) -> None:
        if record.name in _IGNORED_LOGGERS or record.name.startswith(_IGNORED_PREFIXES):
            return
        try:
            entry = self._serializer(record)
        except Exception:
            self.handleError(record)
            return

        if _running_loop() is self._loop:
            self._dispatcher.append(entry)
        else:
            try:
                self._loop.call_soon_threadsafe(self._dispatcher.append, entry)
            except RuntimeError:
                # loop already closed
                self.handleError(record)
