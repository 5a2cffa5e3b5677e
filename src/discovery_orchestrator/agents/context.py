"""Per-execution context carrying progress reporting and the cancellation signal."""

from __future__ import annotations

import logging
import threading
from typing import Callable

from discovery_orchestrator.errors import TaskCancelledError

logger = logging.getLogger(__name__)

ProgressReporter = Callable[[int, str], None]
CancelProbe = Callable[[], bool]


class ExecutionContext:
    """Passed down the call chain of one agent execution.

    Cancellation is cooperative: agents call `checkpoint()` at boundaries they
    choose (the review pipeline checks once per document). The signal is set
    either in-process through `cancel()` or observed through `cancel_probe`,
    which reads the persisted task status so a cancel issued by another
    process is still seen at the next checkpoint.
    """

    def __init__(
        self,
        *,
        task_id: str,
        execution_id: str | None = None,
        progress_reporter: ProgressReporter | None = None,
        cancel_probe: CancelProbe | None = None,
    ) -> None:
        self.task_id = task_id
        self.execution_id = execution_id
        self._progress_reporter = progress_reporter
        self._cancel_probe = cancel_probe
        self._cancel_event = threading.Event()
        self._progress_lock = threading.Lock()
        self._last_progress = 0
        self.progress_history: list[tuple[int, str]] = []

    @classmethod
    def detached(cls, task_id: str = "detached") -> ExecutionContext:
        """Context with no reporter or probe, for running an agent directly."""
        return cls(task_id=task_id)

    def cancel(self) -> None:
        self._cancel_event.set()

    def is_cancelled(self) -> bool:
        if self._cancel_event.is_set():
            return True
        if self._cancel_probe is not None and self._cancel_probe():
            self._cancel_event.set()
            return True
        return False

    def checkpoint(self) -> None:
        if self.is_cancelled():
            raise TaskCancelledError(f"Task {self.task_id} was cancelled")

    @property
    def progress(self) -> int:
        return self._last_progress

    def report(self, progress: int, step: str) -> None:
        """Forward a progress event; values lower than the last one are dropped."""
        value = max(0, min(int(progress), 100))
        with self._progress_lock:
            if value < self._last_progress:
                logger.debug(
                    "progress event=out_of_order task_id=%s progress=%d last=%d",
                    self.task_id,
                    value,
                    self._last_progress,
                )
                return
            self._last_progress = value
            self.progress_history.append((value, step))
        if self._progress_reporter is not None:
            self._progress_reporter(value, step)
