"""Tests for background workers."""

import pytest

from mcp_dock.config import DockSettings
from mcp_dock.domain.model import CallRecord
from mcp_dock.domain.value_objects import RetentionPolicy, ServerStatus
from mcp_dock.workers import BackgroundWorker, start_workers


class TestBackgroundWorker:
    """Tests for BackgroundWorker cycles."""

    def test_unknown_task_rejected(self, runtime):
        with pytest.raises(ValueError):
            BackgroundWorker(runtime, task="gc")

    def test_health_check_cycle_moves_unhealthy_servers_to_error(self, runtime, connector):
        runtime.controller.start("alpha")
        connector.healthy = False

        BackgroundWorker(runtime, task="health_check").run_once()

        assert runtime.tracker.get("alpha").status == ServerStatus.ERROR

    def test_prune_cycle_applies_retention(self, make_runtime):
        runtime = make_runtime(
            settings=DockSettings(
                retention=RetentionPolicy(max_age_s=60),
                health_check_interval_s=0,
                prune_interval_s=0,
            )
        )
        runtime.ledger.append(
            CallRecord(server_id="alpha", tool_name="ping", response_time_ms=1.0, success=True, timestamp=0.0)
        )

        BackgroundWorker(runtime, task="prune").run_once()

        assert runtime.ledger.retained_count("alpha") == 0
        assert runtime.ledger.total_calls("alpha") == 1

    def test_start_and_stop(self, runtime):
        worker = BackgroundWorker(runtime, interval_s=30, task="prune")

        worker.start()
        worker.start()
        worker.stop()
        worker.thread.join(timeout=2)

        assert worker.running is False
        assert not worker.thread.is_alive()


class TestStartWorkers:
    """Tests for start_workers."""

    def test_disabled_intervals_start_nothing(self, runtime):
        assert start_workers(runtime) == []

    def test_enabled_intervals(self, make_runtime):
        runtime = make_runtime(settings=DockSettings(health_check_interval_s=30, prune_interval_s=60))

        workers = start_workers(runtime)
        try:
            assert sorted(w.task for w in workers) == ["health_check", "prune"]
        finally:
            for worker in workers:
                worker.stop()
