"""Tests for the demo entry point."""

import asyncio
import logging

import pytest

from batch_shipper.main import generate_sample_logs, run


class _Collector(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record):
        self.records.append(record)


def _collecting_logger(name: str):
    collector = _Collector()
    log = logging.getLogger(name)
    log.handlers = [collector]
    log.setLevel(logging.DEBUG)
    log.propagate = False
    return log, collector


@pytest.mark.asyncio
async def test_generate_stops_when_shutdown_is_set():
    log, collector = _collecting_logger("test.main.stopped")
    shutdown = asyncio.Event()
    shutdown.set()

    emitted = await generate_sample_logs(log, logs_per_second=100, run_time=5, shutdown=shutdown)

    assert emitted == 0
    assert collector.records == []


@pytest.mark.asyncio
async def test_generate_emits_until_shutdown():
    log, collector = _collecting_logger("test.main.running")
    shutdown = asyncio.Event()
    asyncio.get_running_loop().call_later(0.1, shutdown.set)

    emitted = await generate_sample_logs(log, logs_per_second=100, run_time=5, shutdown=shutdown)

    assert emitted >= 1
    assert emitted == len(collector.records)
    assert all(r.metadata == {"service": "batch-shipper"} for r in collector.records)


@pytest.mark.asyncio
async def test_run_rejects_incomplete_config(monkeypatch):
    for var in (
        "OPENOBSERVE_URL",
        "OPENOBSERVE_ORGANIZATION",
        "OPENOBSERVE_STREAM",
        "OPENOBSERVE_USERNAME",
        "OPENOBSERVE_PASSWORD",
    ):
        monkeypatch.delenv(var, raising=False)

    assert await run([]) == 2


@pytest.mark.asyncio
async def test_run_rejects_non_numeric_batch_size(monkeypatch):
    monkeypatch.setenv("OPENOBSERVE_URL", "http://localhost:5080")
    monkeypatch.setenv("OPENOBSERVE_ORGANIZATION", "default")
    monkeypatch.setenv("OPENOBSERVE_STREAM", "app")
    monkeypatch.setenv("OPENOBSERVE_USERNAME", "root@example.com")
    monkeypatch.setenv("OPENOBSERVE_PASSWORD", "secret")
    monkeypatch.setenv("BATCH_SIZE", "abc")

    assert await run([]) == 2
