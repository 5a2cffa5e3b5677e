"""Task lifecycle manager: the single writer of task and execution status."""

from __future__ import annotations

import logging
import threading
from datetime import UTC, datetime, timedelta
from typing import Any

from discovery_orchestrator.agents.context import ExecutionContext
from discovery_orchestrator.errors import InvalidTransitionError, TaskNotFoundError
from discovery_orchestrator.storage.base import TaskStorage
from discovery_orchestrator.storage.models import (
    TRANSITIONS,
    ExecutionRecord,
    TaskInput,
    TaskRecord,
    TaskStatus,
    is_terminal,
)

logger = logging.getLogger(__name__)

AGENT_LABELS: dict[str, str] = {
    "research": "Legal Research",
    "drafting": "Brief Writing",
    "discovery": "Discovery Review",
    "contract": "Contract Analysis",
    "timeline": "Timeline",
    "document-analysis": "Document Analysis",
}
NAME_QUERY_CHARS = 50


def generate_task_name(agent_type: str, query: str) -> str:
    label = AGENT_LABELS.get(agent_type, agent_type)
    text = " ".join(query.split())
    if len(text) > NAME_QUERY_CHARS:
        text = text[:NAME_QUERY_CHARS] + "..."
    return f"{label}: {text}"


class TaskManager:
    """Create, transition, cancel and read tasks and their execution ledger.

    Status changes go through `update_task_status`, which enforces
    `pending -> running -> {completed | failed | cancelled}` plus
    `pending -> {failed | cancelled}`. Writes addressed to a task that is
    already terminal are ignored and the stored record is returned.

    Contexts of executions running in this process are tracked per manager
    instance so `cancel_task` can signal them immediately; executions owned by
    another process observe the persisted `cancelled` status at their next
    checkpoint instead.
    """

    def __init__(self, storage: TaskStorage, *, heartbeat_stale_after_s: float = 900.0) -> None:
        self.storage = storage
        self.heartbeat_stale_after_s = heartbeat_stale_after_s
        self._write_lock = threading.RLock()
        self._owned_lock = threading.Lock()
        self._owned_contexts: dict[str, ExecutionContext] = {}

    def create_task(
        self,
        matter_id: str | None,
        agent_type: str,
        task_input: TaskInput | dict[str, Any],
        name: str | None = None,
    ) -> TaskRecord:
        payload = (
            task_input
            if isinstance(task_input, TaskInput)
            else TaskInput.model_validate(task_input)
        )
        task_name = name or generate_task_name(agent_type, payload.query)
        record = self.storage.create_task(
            matter_id=matter_id,
            agent_type=agent_type,
            name=task_name,
            task_input=payload,
        )
        logger.info(
            "task_lifecycle event=created task_id=%s agent_type=%s matter_id=%s",
            record.task_id,
            agent_type,
            matter_id,
        )
        return record

    def update_task_status(
        self,
        task_id: str,
        status: TaskStatus,
        progress: int | None = None,
        output: dict[str, Any] | None = None,
        error: str | None = None,
        current_step: str | None = None,
    ) -> TaskRecord:
        with self._write_lock:
            current = self._require_task(task_id)
            if is_terminal(current.status):
                logger.warning(
                    "task_lifecycle event=write_ignored task_id=%s status=%s requested=%s",
                    task_id,
                    current.status,
                    status,
                )
                return current
            if status not in TRANSITIONS[current.status]:
                raise InvalidTransitionError(task_id, current.status, status)

            now = datetime.now(UTC)
            changes: dict[str, Any] = {"status": status}
            if status == "running" and current.status != "running":
                changes["started_at"] = now
            if is_terminal(status):
                changes["completed_at"] = now
            if progress is not None:
                value = max(0, min(int(progress), 100))
                if current.status == "running":
                    value = max(value, current.progress)
                changes["progress"] = value
            elif status == "completed":
                changes["progress"] = 100
            if output is not None:
                changes["output"] = output
            if error is not None:
                changes["error"] = error
            if current_step is not None:
                changes["current_step"] = current_step

            updated = self.storage.update_task(
                task_id,
                changes,
                expected_status=current.status,
            )
            if updated is None:
                # Another writer moved the task first; report what is stored now.
                logger.warning(
                    "task_lifecycle event=write_conflict task_id=%s requested=%s",
                    task_id,
                    status,
                )
                return self._require_task(task_id)

        if status != current.status:
            logger.info(
                "task_lifecycle event=transition task_id=%s from=%s to=%s",
                task_id,
                current.status,
                status,
            )
        return updated

    def claim_task(self, task_id: str) -> TaskRecord | None:
        """Move a pending task to running for one runner.

        Returns None when the task is no longer pending, including when
        another runner claimed it between the caller's read and this write.
        """
        with self._write_lock:
            current = self._require_task(task_id)
            if current.status != "pending":
                return None
            claimed = self.storage.update_task(
                task_id,
                {
                    "status": "running",
                    "progress": 0,
                    "current_step": "Starting",
                    "started_at": datetime.now(UTC),
                },
                expected_status="pending",
            )
        if claimed is None:
            logger.info("task_lifecycle event=claim_lost task_id=%s", task_id)
            return None
        logger.info(
            "task_lifecycle event=transition task_id=%s from=pending to=running",
            task_id,
        )
        return claimed

    def cancel_task(self, task_id: str) -> TaskRecord:
        with self._owned_lock:
            context = self._owned_contexts.get(task_id)
        if context is not None:
            context.cancel()

        record = self.update_task_status(task_id, "cancelled", current_step="Cancelled")
        if record.status != "cancelled":
            return record

        now = datetime.now(UTC)
        for execution in self.storage.list_executions(task_id=task_id, status="running"):
            self.storage.update_execution(
                execution.execution_id,
                {
                    "status": "cancelled",
                    "error": "Task cancelled by user",
                    "current_step": "Cancelled",
                    "completed_at": now,
                },
            )
        logger.info(
            "task_lifecycle event=cancelled task_id=%s signalled_in_process=%s",
            task_id,
            context is not None,
        )
        return record

    def get_task(self, task_id: str) -> TaskRecord | None:
        return self.storage.get_task(task_id)

    def list_tasks(
        self,
        *,
        matter_id: str | None = None,
        status: str | None = None,
    ) -> list[TaskRecord]:
        return self.storage.list_tasks(matter_id=matter_id, status=status, descending=True)

    def get_matter_tasks(self, matter_id: str) -> list[TaskRecord]:
        return self.storage.list_tasks(matter_id=matter_id, descending=True)

    def get_pending_tasks(self) -> list[TaskRecord]:
        return self.storage.list_tasks(status="pending", order_by="created_at")

    def get_running_tasks(self) -> list[TaskRecord]:
        return self.storage.list_tasks(status="running", order_by="started_at")

    def get_task_executions(self, task_id: str) -> list[ExecutionRecord]:
        return self.storage.list_executions(task_id=task_id)

    def start_execution(self, task: TaskRecord, input_data: dict[str, Any]) -> ExecutionRecord:
        return self.storage.create_execution(
            task_id=task.task_id,
            agent_type=task.agent_type,
            input_data=input_data,
        )

    def report_progress(
        self,
        task_id: str,
        execution_id: str,
        progress: int,
        step: str,
    ) -> None:
        """Record a progress event on both the task row and the execution entry."""
        task = self.update_task_status(task_id, "running", progress=progress, current_step=step)
        if task.status != "running":
            return
        self.storage.update_execution(
            execution_id,
            {
                "progress": task.progress,
                "current_step": step,
                "heartbeat_at": datetime.now(UTC),
            },
        )

    def finish_execution(
        self,
        execution_id: str,
        status: TaskStatus,
        *,
        output: dict[str, Any] | None = None,
        error: str | None = None,
    ) -> ExecutionRecord | None:
        execution = self.storage.get_execution(execution_id)
        if execution is None:
            return None
        if is_terminal(execution.status):
            return execution
        changes: dict[str, Any] = {
            "status": status,
            "completed_at": datetime.now(UTC),
            "current_step": status.capitalize(),
        }
        if status == "completed":
            changes["progress"] = 100
        if output is not None:
            changes["output"] = output
        if error is not None:
            changes["error"] = error
        return self.storage.update_execution(execution_id, changes)

    def register_context(self, context: ExecutionContext) -> None:
        with self._owned_lock:
            self._owned_contexts[context.task_id] = context

    def release_context(self, context: ExecutionContext) -> None:
        with self._owned_lock:
            if self._owned_contexts.get(context.task_id) is context:
                del self._owned_contexts[context.task_id]

    def is_cancel_requested(self, task_id: str) -> bool:
        record = self.storage.get_task(task_id)
        return record is not None and record.status == "cancelled"

    def find_orphaned_executions(self, *, now: datetime | None = None) -> list[ExecutionRecord]:
        """Running executions whose heartbeat is stale and that this process does not own."""
        cutoff = (now or datetime.now(UTC)) - timedelta(seconds=self.heartbeat_stale_after_s)
        with self._owned_lock:
            owned = {
                context.execution_id
                for context in self._owned_contexts.values()
                if context.execution_id
            }
        orphaned: list[ExecutionRecord] = []
        for execution in self.storage.list_executions(status="running"):
            if execution.execution_id in owned:
                continue
            last_seen = execution.heartbeat_at or execution.started_at
            if last_seen < cutoff:
                orphaned.append(execution)
        return orphaned

    def reap_orphaned_executions(self, *, now: datetime | None = None) -> list[ExecutionRecord]:
        reaped: list[ExecutionRecord] = []
        for execution in self.find_orphaned_executions(now=now):
            message = "Execution heartbeat lost; runner presumed dead"
            updated = self.finish_execution(execution.execution_id, "failed", error=message)
            task = self.storage.get_task(execution.task_id)
            if task is not None and task.status == "running":
                self.update_task_status(task.task_id, "failed", error=message)
            logger.warning(
                "task_lifecycle event=orphan_reaped task_id=%s execution_id=%s",
                execution.task_id,
                execution.execution_id,
            )
            if updated is not None:
                reaped.append(updated)
        return reaped

    def _require_task(self, task_id: str) -> TaskRecord:
        record = self.storage.get_task(task_id)
        if record is None:
            raise TaskNotFoundError(task_id)
        return record
