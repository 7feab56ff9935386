"""Log dispatcher: single-flight batch delivery to the ingestion endpoint.

Entries are appended by the producer, grouped into batches by the
:class:`~batch_shipper.scheduler.FlushScheduler` and posted one batch at a
time. Delivery is at-most-once: a batch taken from the buffer is consumed
whether or not the endpoint accepts it, and nothing is retried except by the
next scheduled cycle picking up entries that are still buffered.
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Optional

from batch_shipper.batch_buffer import BatchBuffer, Entry
from batch_shipper.config import ShipperConfig
from batch_shipper.delivery import DeliveryClient, DeliveryOutcome, HttpDeliveryClient
from batch_shipper.endpoint import build_api_url, build_headers
from batch_shipper.metrics import MetricsCollector
from batch_shipper.scheduler import FlushScheduler

logger = logging.getLogger(__name__)

LOG_PREFIX = "[batch-shipper]"


class DispatchState(Enum):
    IDLE = "idle"
    IN_FLIGHT = "in_flight"


def _join(batch: list[Entry]) -> bytes:
    return b"".join(
        entry.encode("utf-8") if isinstance(entry, str) else entry for entry in batch
    )


class LogDispatcher:
    """Accepts serialized entries and ships them in batches over HTTP.

    Must be created inside a running event loop; all methods except
    :meth:`shutdown` and :meth:`aclose` are plain functions that never
    suspend, so they are safe to call from loop callbacks. Producers on other
    threads should go through :class:`~batch_shipper.handler.DispatchHandler`.

    Usage::

        async with LogDispatcher(config) as dispatcher:
            dispatcher.append('{"message":"hello"}\\n')
    """

    def __init__(
        self,
        config: ShipperConfig,
        client: Optional[DeliveryClient] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        self._config = config
        self._loop = loop or asyncio.get_running_loop()
        self._api_url = build_api_url(config.url, config.organization, config.stream_name)
        self._headers = build_headers(config.auth.username, config.auth.password)
        self._client = client if client is not None else HttpDeliveryClient(
            timeout=config.request_timeout
        )
        self._buffer = BatchBuffer()
        self._scheduler = FlushScheduler(
            self._buffer,
            config.batch_size,
            config.time_threshold,
            self.flush,
            loop=self._loop,
        )
        self._state = DispatchState.IDLE
        self._in_flight: Optional[asyncio.Task] = None
        self._metrics = MetricsCollector()

    # ------------------------------------------------------------------
    # Producer API
    # ------------------------------------------------------------------

    def append(self, entry: Entry) -> None:
        """Buffer one serialized entry and let the scheduler react to it."""
        self._buffer.append(entry)
        self._scheduler.reschedule()

    def reschedule(self) -> None:
        self._scheduler.reschedule()

    def flush(self, trigger: str = "manual") -> Optional[asyncio.Task]:
        """Start delivering the next batch if idle and there is work.

        Returns the delivery task, or ``None`` when a delivery is already in
        flight or the buffer is empty. The state check and the transition to
        in-flight happen without suspending, so two triggers racing each other
        can never start two deliveries.
        """
        if self._state is DispatchState.IN_FLIGHT or not self._buffer.size():
            return None

        self._state = DispatchState.IN_FLIGHT
        batch = self._buffer.take_batch(self._config.batch_size)
        self._in_flight = self._loop.create_task(self._deliver(batch, trigger))
        return self._in_flight

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def shutdown(self) -> None:
        """Attempt one final flush before the host application exits.

        Stops all scheduling first. If idle with buffered entries, exactly one
        more batch is delivered and awaited. If a delivery is already in
        flight, it is awaited but no further attempt is made, and whatever is
        still buffered is lost.
        """
        self._scheduler.close()

        if self._state is DispatchState.IN_FLIGHT:
            if self._buffer.size():
                logger.warning(
                    "%s Shutdown during delivery, %d buffered entries will not be sent",
                    LOG_PREFIX,
                    self._buffer.size(),
                )
            await self._in_flight
            return

        task = self.flush("shutdown")
        if task is not None:
            await task

    async def aclose(self) -> None:
        """Shut down, then release the delivery client."""
        await self.shutdown()
        close = getattr(self._client, "aclose", None)
        if close is not None:
            await close()

    async def __aenter__(self) -> "LogDispatcher":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def state(self) -> DispatchState:
        return self._state

    @property
    def pending_count(self) -> int:
        """Number of entries waiting in the buffer."""
        return self._buffer.size()

    @property
    def api_url(self) -> str:
        return self._api_url

    @property
    def metrics(self) -> MetricsCollector:
        return self._metrics

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    async def _deliver(self, batch: list[Entry], trigger: str) -> None:
        body = _join(batch)
        ok = False
        start = time.monotonic()
        try:
            outcome = await self._client.send(self._api_url, dict(self._headers), body)
            ok = outcome.ok
            self._report(outcome, len(batch))
        except Exception:
            if not self._config.silent_error:
                logger.exception(
                    "%s Error: delivery of %d entries raised", LOG_PREFIX, len(batch)
                )
        finally:
            elapsed_ms = (time.monotonic() - start) * 1000
            self._metrics.record_batch(
                entries=len(batch),
                bytes_sent=len(body),
                send_time_ms=elapsed_ms,
                trigger=trigger,
                ok=ok,
            )
            self._state = DispatchState.IDLE
            self._in_flight = None
            self._scheduler.reschedule()

    def _report(self, outcome: DeliveryOutcome, count: int) -> None:
        if outcome.ok:
            if not self._config.silent_success:
                logger.info(
                    "%s Logs sent successfully (%d entries, HTTP %s)",
                    LOG_PREFIX,
                    count,
                    outcome.status_code,
                )
        elif not self._config.silent_error:
            if outcome.unreachable:
                logger.error("%s Error: %s", LOG_PREFIX, outcome.error)
            else:
                logger.error(
                    "%s Failed: %s %s", LOG_PREFIX, outcome.status_code, outcome.reason
                )
