"""Background workers for health checks and ledger pruning."""

import threading
import time
from typing import Literal

from .bootstrap.runtime import Runtime
from .logging_config import get_logger

logger = get_logger(__name__)


class BackgroundWorker:
    """Generic background worker driving periodic runtime maintenance.

    Tasks:
    - ``health_check``: check every active server, moving failures to ERROR
    - ``prune``: evict ledger records outside the retention policy
    """

    def __init__(
        self,
        runtime: Runtime,
        interval_s: float = 60,
        task: Literal["health_check", "prune"] = "health_check",
    ):
        """
        Initialize background worker.

        Args:
            runtime: Runtime whose controller and ledger the task works on.
            interval_s: Interval between runs in seconds.
            task: Task type - either "health_check" or "prune".
        """
        if task not in ("health_check", "prune"):
            raise ValueError(f"Unknown worker task: {task}")
        self.runtime = runtime
        self.interval_s = interval_s
        self.task = task
        self.thread = threading.Thread(target=self._loop, daemon=True, name=f"worker-{task}")
        self.running = False
        self._stop_event = threading.Event()

    def start(self):
        """Start the background worker thread."""
        if self.running:
            logger.warning("background_worker_already_running", task=self.task)
            return

        self.running = True
        self.thread.start()
        logger.info("background_worker_started", task=self.task, interval_s=self.interval_s)

    def stop(self):
        """Stop the background worker thread."""
        self.running = False
        self._stop_event.set()
        logger.info("background_worker_stopped", task=self.task)

    def run_once(self) -> None:
        """Execute a single cycle of the task."""
        start_time = time.perf_counter()

        if self.task == "health_check":
            results = self.runtime.controller.health_check_all()
            unhealthy = [server_id for server_id, healthy in results.items() if not healthy]
            if unhealthy:
                logger.warning("health_check_unhealthy_servers", servers=unhealthy)
        else:
            evicted = self.runtime.ledger.prune()
            if evicted:
                logger.info("ledger_pruned", evicted=evicted)

        self.runtime.refresh_gauges()
        logger.debug(
            "background_task_completed",
            task=self.task,
            duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
        )

    def _loop(self):
        """Main worker loop."""
        while self.running:
            if self._stop_event.wait(self.interval_s):
                break
            try:
                self.run_once()
            except Exception as e:
                logger.exception("background_task_failed", task=self.task, error=str(e))


def start_workers(runtime: Runtime) -> list[BackgroundWorker]:
    """Start the workers enabled by the runtime settings."""
    settings = runtime.settings
    workers = []
    if settings.health_check_interval_s > 0:
        workers.append(BackgroundWorker(runtime, interval_s=settings.health_check_interval_s, task="health_check"))
    if settings.prune_interval_s > 0:
        workers.append(BackgroundWorker(runtime, interval_s=settings.prune_interval_s, task="prune"))
    for worker in workers:
        worker.start()
    return workers
