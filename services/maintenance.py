"""
Background sweeps: forget idle failed-login windows and purge old activity logs.

Each sweep runs in its own daemon thread. A failing run is logged and the
thread keeps its schedule.
"""

import threading
from typing import Callable, List

from utils.audit import purge_activity_logs
from utils.logger import get_logger

log = get_logger(__name__)


class PeriodicTask:
    def __init__(self, name: str, interval_seconds: float, fn: Callable[[], object]) -> None:
        self.name = name
        self.interval_seconds = interval_seconds
        self.fn = fn
        self._stop = threading.Event()
        self._thread = None

    def run_once(self):
        try:
            return self.fn()
        except Exception:
            log.exception("periodic_task_failed", task=self.name)
            return None

    def _loop(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            self.run_once()

    def start(self) -> "PeriodicTask":
        if self._thread is None:
            self._thread = threading.Thread(target=self._loop, name=f"sweep-{self.name}", daemon=True)
            self._thread.start()
            log.info("periodic_task_started", task=self.name, interval_seconds=self.interval_seconds)
        return self

    def stop(self) -> None:
        self._stop.set()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop.is_set()


def start_background_sweeps(app, core) -> List[PeriodicTask]:
    def purge_logs():
        with app.app_context():
            return purge_activity_logs(app.config.get("LOG_RETENTION_DAYS", 30))

    tasks = [
        PeriodicTask(
            "failed-login-windows",
            app.config.get("ANOMALY_SWEEP_INTERVAL_SECONDS", 3600),
            core.detector.sweep,
        ),
        PeriodicTask(
            "activity-log-retention",
            app.config.get("LOG_RETENTION_SWEEP_INTERVAL_SECONDS", 86400),
            purge_logs,
        ),
    ]
    return [task.start() for task in tasks]
