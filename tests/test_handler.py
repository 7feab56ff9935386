"""Tests for the DispatchHandler logging integration."""

import asyncio
import json
import logging
import threading

import httpx
import pytest

from batch_shipper.config import AuthConfig, ShipperConfig
from batch_shipper.dispatcher import LogDispatcher
from batch_shipper.delivery import DeliveryOutcome, HttpDeliveryClient
from batch_shipper.handler import DispatchHandler


class RecordingClient:
    def __init__(self):
        self.bodies: list[str] = []

    async def send(self, url, headers, body):
        self.bodies.append(body.decode("utf-8"))
        return DeliveryOutcome(ok=True, status_code=200, reason="OK")


async def _settle(rounds: int = 20):
    for _ in range(rounds):
        await asyncio.sleep(0)


def _make_dispatcher(client, batch_size=100, time_threshold_ms=300000):
    config = ShipperConfig(
        url="https://o2.example.com",
        organization="default",
        stream_name="app",
        auth=AuthConfig(username="u", password="p"),
        batch_size=batch_size,
        time_threshold_ms=time_threshold_ms,
    )
    return LogDispatcher(config, client=client)


def _make_logger(name: str, handler: logging.Handler) -> logging.Logger:
    log = logging.getLogger(name)
    log.handlers = [handler]
    log.setLevel(logging.DEBUG)
    log.propagate = False
    return log


@pytest.mark.asyncio
async def test_records_are_appended_as_ndjson():
    client = RecordingClient()
    dispatcher = _make_dispatcher(client, batch_size=2)
    log = _make_logger("test.handler.ndjson", DispatchHandler(dispatcher))

    log.info("first %d", 1)
    log.warning("second")
    await _settle()

    lines = client.bodies[0].splitlines()
    assert [json.loads(line)["message"] for line in lines] == ["first 1", "second"]
    assert json.loads(lines[1])["level"] == "WARNING"


@pytest.mark.asyncio
async def test_own_package_records_are_ignored():
    client = RecordingClient()
    dispatcher = _make_dispatcher(client)
    handler = DispatchHandler(dispatcher)

    for name in (
        "batch_shipper",
        "batch_shipper.dispatcher",
        "httpx",
        "httpcore.connection",
        "batch_shipper_other",
    ):
        handler.handle(
            logging.LogRecord(name, logging.INFO, __file__, 1, "report", (), None)
        )

    assert dispatcher.pending_count == 1


@pytest.mark.asyncio
async def test_handler_level_filters_records():
    dispatcher = _make_dispatcher(RecordingClient())
    log = _make_logger(
        "test.handler.level", DispatchHandler(dispatcher, level=logging.WARNING)
    )

    log.info("dropped")
    log.error("kept")

    assert dispatcher.pending_count == 1


@pytest.mark.asyncio
async def test_emit_from_another_thread_hops_onto_the_loop():
    client = RecordingClient()
    dispatcher = _make_dispatcher(client)
    log = _make_logger("test.handler.thread", DispatchHandler(dispatcher))

    thread = threading.Thread(target=lambda: log.info("from worker"))
    thread.start()
    thread.join()

    # the append is queued with call_soon_threadsafe, not applied inline
    await asyncio.sleep(0.01)
    assert dispatcher.pending_count == 1

    await dispatcher.shutdown()
    assert json.loads(client.bodies[0])["message"] == "from worker"


@pytest.mark.asyncio
async def test_serializer_errors_do_not_reach_the_producer(monkeypatch):
    dispatcher = _make_dispatcher(RecordingClient())

    def broken(record):
        raise TypeError("cannot serialize")

    handler = DispatchHandler(dispatcher, serializer=broken)
    errors = []
    monkeypatch.setattr(handler, "handleError", errors.append)
    log = _make_logger("test.handler.broken", handler)

    log.info("hello")

    assert len(errors) == 1
    assert dispatcher.pending_count == 0


@pytest.mark.asyncio
async def test_root_handler_does_not_ship_http_client_logs():
    """httpx logs every request at INFO; those records must not start new batches."""
    requests = []

    def transport(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"code": 200})

    http = httpx.AsyncClient(transport=httpx.MockTransport(transport))
    dispatcher = _make_dispatcher(HttpDeliveryClient(client=http), time_threshold_ms=30)
    handler = DispatchHandler(dispatcher)

    root = logging.getLogger()
    saved_level = root.level
    root.addHandler(handler)
    root.setLevel(logging.INFO)
    try:
        logging.getLogger("test.handler.root").info("one line")
        await asyncio.sleep(0.5)
    finally:
        root.removeHandler(handler)
        root.setLevel(saved_level)
        await dispatcher.aclose()
        await http.aclose()

    assert len(requests) == 1
    assert json.loads(requests[0].content)["message"] == "one line"
