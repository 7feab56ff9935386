"""Flush scheduler: races a size trigger against a quiescence timer."""

import asyncio
import logging
from typing import Callable, Optional

from batch_shipper.batch_buffer import BatchBuffer

logger = logging.getLogger(__name__)


class FlushScheduler:
    """Decides when the next flush is requested.

    Every :meth:`reschedule` call first cancels the armed timer. If the buffer
    holds at least ``batch_size`` entries a flush is requested right away
    (trigger ``"size"``); otherwise a fresh timer is armed for
    ``time_threshold`` seconds and requests a flush when it expires
    (trigger ``"timer"``). The timer window restarts on every call, so a
    steady trickle of entries below the batch size keeps postponing it.

    ``on_flush`` is called with the trigger name and must not suspend.
    """

    def __init__(
        self,
        buffer: BatchBuffer,
        batch_size: int,
        time_threshold: float,
        on_flush: Callable[[str], object],
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        self._buffer = buffer
        self._batch_size = batch_size
        self._time_threshold = time_threshold
        self._on_flush = on_flush
        self._loop = loop or asyncio.get_running_loop()
        self._timer: Optional[asyncio.TimerHandle] = None
        self._closed = False

    @property
    def timer_armed(self) -> bool:
        return self._timer is not None

    @property
    def closed(self) -> bool:
        return self._closed

    def reschedule(self) -> None:
        """Cancel the pending timer, then flush now or arm a new timer."""
        if self._closed:
            return
        self.cancel()
        if self._buffer.size() >= self._batch_size:
            self._on_flush("size")
        else:
            self._timer = self._loop.call_later(self._time_threshold, self._fire)

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def close(self) -> None:
        """Cancel the timer and ignore every later reschedule request."""
        self._closed = True
        self.cancel()

    def _fire(self) -> None:
        self._timer = None
        logger.debug(
            "Quiescence timer fired with %d pending entries", self._buffer.size()
        )
        self._on_flush("timer")
