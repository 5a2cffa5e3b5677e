"""Storage interfaces for task lifecycle and document access."""

from __future__ import annotations

from typing import Any, Literal, Protocol

from discovery_orchestrator.storage.models import (
    DocumentRecord,
    ExecutionRecord,
    MatterRecord,
    TaskInput,
    TaskRecord,
)

OrderField = Literal["created_at", "started_at"]


class TaskStorage(Protocol):
    """Task table plus the append-only execution ledger.

    `update_task` with `expected_status` is a compare-and-set: it returns
    None without writing when the stored status no longer matches.
    """

    def migrate(self) -> None: ...

    def create_task(
        self,
        *,
        matter_id: str | None,
        agent_type: str,
        name: str,
        task_input: TaskInput,
    ) -> TaskRecord: ...

    def get_task(self, task_id: str) -> TaskRecord | None: ...

    def update_task(
        self,
        task_id: str,
        changes: dict[str, Any],
        *,
        expected_status: str | None = None,
    ) -> TaskRecord | None: ...

    def list_tasks(
        self,
        *,
        matter_id: str | None = None,
        status: str | None = None,
        order_by: OrderField = "created_at",
        descending: bool = False,
    ) -> list[TaskRecord]: ...

    def create_execution(
        self,
        *,
        task_id: str,
        agent_type: str,
        input_data: dict[str, Any],
    ) -> ExecutionRecord: ...

    def get_execution(self, execution_id: str) -> ExecutionRecord | None: ...

    def update_execution(self, execution_id: str, changes: dict[str, Any]) -> ExecutionRecord: ...

    def list_executions(
        self,
        *,
        task_id: str | None = None,
        status: str | None = None,
    ) -> list[ExecutionRecord]: ...


class DocumentStore(Protocol):
    def get_documents(self, document_ids: list[str]) -> list[DocumentRecord]: ...

    def get_matter_documents(self, matter_id: str) -> list[DocumentRecord]: ...

    def get_matter(self, matter_id: str) -> MatterRecord | None: ...
