"""Concurrency tests for lifecycle operations and the call ledger."""

import threading
import time

import pytest

from mcp_dock.config import DockSettings
from mcp_dock.domain.value_objects import ServerStatus


@pytest.fixture
def patient_runtime(make_runtime):
    return make_runtime(settings=DockSettings(connect_timeout_s=5.0, health_check_interval_s=0, prune_interval_s=0))


@pytest.mark.slow
def test_concurrent_starts_of_one_server_connect_once(patient_runtime, connector):
    """Only one of several simultaneous starts performs the handshake."""
    connector.release.clear()
    results = []
    lock = threading.Lock()

    def start():
        result = patient_runtime.controller.start("alpha")
        with lock:
            results.append(result)

    threads = [threading.Thread(target=start) for _ in range(5)]
    for t in threads:
        t.start()

    deadline = time.time() + 3
    while time.time() < deadline:
        with lock:
            if len(results) == 4:
                break
        time.sleep(0.01)

    connector.release.set()
    for t in threads:
        t.join(timeout=5)

    assert len(results) == 5
    assert sum(1 for r in results if r.success) == 1
    assert len(connector.connect_calls) == 1
    assert all("connecting" in r.message for r in results if not r.success)
    assert patient_runtime.tracker.get("alpha").status == ServerStatus.ACTIVE


@pytest.mark.slow
def test_different_servers_start_in_parallel(patient_runtime, connector):
    """A slow handshake on one server does not serialize the others."""
    connector.delay_s = 0.3

    threads = [
        threading.Thread(target=patient_runtime.controller.start, args=(server_id,))
        for server_id in ("alpha", "beta", "keyed")
    ]
    started = time.perf_counter()
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5)
    elapsed = time.perf_counter() - started

    assert elapsed < 0.8, f"starts were serialized: {elapsed:.2f}s"
    assert patient_runtime.stats.compute_server_stats().active_servers == 3


@pytest.mark.slow
def test_concurrent_tool_calls_are_all_recorded(patient_runtime):
    """Every call made from many threads lands in the ledger."""
    patient_runtime.controller.start("beta")

    def call_many():
        for _ in range(50):
            patient_runtime.controller.call_tool("beta", "query")

    threads = [threading.Thread(target=call_many) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    stats = patient_runtime.stats.compute_server_stats()
    assert stats.total_calls == 400
    assert stats.success_rate == 100.0
    assert patient_runtime.ledger.tool_usage("beta", "query") == 400
