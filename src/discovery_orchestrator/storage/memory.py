"""In-memory storage backends for tests and local runs."""

from __future__ import annotations

import threading
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from discovery_orchestrator.errors import TaskNotFoundError
from discovery_orchestrator.storage.base import OrderField
from discovery_orchestrator.storage.models import (
    DocumentRecord,
    ExecutionRecord,
    MatterRecord,
    TaskInput,
    TaskRecord,
)

_EPOCH = datetime.min.replace(tzinfo=UTC)


class InMemoryTaskStorage:
    """Thread-safe dictionary-backed task and execution store."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tasks: dict[str, TaskRecord] = {}
        self._executions: dict[str, ExecutionRecord] = {}

    def migrate(self) -> None:
        return None

    def create_task(
        self,
        *,
        matter_id: str | None,
        agent_type: str,
        name: str,
        task_input: TaskInput,
    ) -> TaskRecord:
        record = TaskRecord(
            task_id=str(uuid4()),
            matter_id=matter_id,
            agent_type=agent_type,
            name=name,
            status="pending",
            progress=0,
            input=task_input,
            created_at=datetime.now(UTC),
        )
        with self._lock:
            self._tasks[record.task_id] = record
        return record.model_copy(deep=True)

    def get_task(self, task_id: str) -> TaskRecord | None:
        with self._lock:
            record = self._tasks.get(task_id)
        return record.model_copy(deep=True) if record else None

    def update_task(
        self,
        task_id: str,
        changes: dict[str, Any],
        *,
        expected_status: str | None = None,
    ) -> TaskRecord | None:
        with self._lock:
            current = self._tasks.get(task_id)
            if current is None:
                raise TaskNotFoundError(task_id)
            if expected_status is not None and current.status != expected_status:
                return None
            updated = current.model_copy(update=changes, deep=True)
            self._tasks[task_id] = updated
        return updated.model_copy(deep=True)

    def list_tasks(
        self,
        *,
        matter_id: str | None = None,
        status: str | None = None,
        order_by: OrderField = "created_at",
        descending: bool = False,
    ) -> list[TaskRecord]:
        with self._lock:
            rows = list(self._tasks.values())
        if matter_id is not None:
            rows = [row for row in rows if row.matter_id == matter_id]
        if status is not None:
            rows = [row for row in rows if row.status == status]
        rows.sort(key=lambda row: getattr(row, order_by) or _EPOCH, reverse=descending)
        return [row.model_copy(deep=True) for row in rows]

    def create_execution(
        self,
        *,
        task_id: str,
        agent_type: str,
        input_data: dict[str, Any],
    ) -> ExecutionRecord:
        now = datetime.now(UTC)
        record = ExecutionRecord(
            execution_id=str(uuid4()),
            task_id=task_id,
            agent_type=agent_type,
            status="running",
            input=input_data,
            started_at=now,
            heartbeat_at=now,
        )
        with self._lock:
            if task_id not in self._tasks:
                raise TaskNotFoundError(task_id)
            self._executions[record.execution_id] = record
        return record.model_copy(deep=True)

    def get_execution(self, execution_id: str) -> ExecutionRecord | None:
        with self._lock:
            record = self._executions.get(execution_id)
        return record.model_copy(deep=True) if record else None

    def update_execution(self, execution_id: str, changes: dict[str, Any]) -> ExecutionRecord:
        with self._lock:
            current = self._executions.get(execution_id)
            if current is None:
                raise KeyError(f"Execution {execution_id} does not exist")
            updated = current.model_copy(update=changes, deep=True)
            self._executions[execution_id] = updated
        return updated.model_copy(deep=True)

    def list_executions(
        self,
        *,
        task_id: str | None = None,
        status: str | None = None,
    ) -> list[ExecutionRecord]:
        with self._lock:
            rows = list(self._executions.values())
        if task_id is not None:
            rows = [row for row in rows if row.task_id == task_id]
        if status is not None:
            rows = [row for row in rows if row.status == status]
        rows.sort(key=lambda row: row.started_at)
        return [row.model_copy(deep=True) for row in rows]


class InMemoryDocumentStore:
    """Document source seeded up front; used by tests and demos."""

    def __init__(
        self,
        documents: list[DocumentRecord] | None = None,
        matters: list[MatterRecord] | None = None,
    ) -> None:
        self._documents: dict[str, DocumentRecord] = {doc.id: doc for doc in documents or []}
        self._matters: dict[str, MatterRecord] = {
            matter.id: matter for matter in matters or [] if matter.id is not None
        }

    def add_document(self, document: DocumentRecord) -> None:
        self._documents[document.id] = document

    def add_matter(self, matter: MatterRecord) -> None:
        if matter.id is None:
            raise ValueError("matter id is required")
        self._matters[matter.id] = matter

    def get_documents(self, document_ids: list[str]) -> list[DocumentRecord]:
        wanted = set(document_ids)
        return [doc for doc_id, doc in self._documents.items() if doc_id in wanted]

    def get_matter_documents(self, matter_id: str) -> list[DocumentRecord]:
        return [doc for doc in self._documents.values() if doc.matter_id == matter_id]

    def get_matter(self, matter_id: str) -> MatterRecord | None:
        return self._matters.get(matter_id)
