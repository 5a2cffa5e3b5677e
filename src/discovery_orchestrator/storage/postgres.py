"""PostgreSQL-backed storage with automatic table migration."""

from __future__ import annotations

import json
import threading
import uuid
from datetime import UTC, datetime
from typing import Any

from discovery_orchestrator.errors import TaskNotFoundError
from discovery_orchestrator.storage.base import OrderField
from discovery_orchestrator.storage.models import (
    DocumentRecord,
    ExecutionRecord,
    MatterRecord,
    TaskInput,
    TaskRecord,
)

# Record field -> column name. Only these fields may be written by update calls.
_TASK_COLUMNS: dict[str, str] = {
    "status": "status",
    "progress": "progress",
    "current_step": "current_step",
    "output": "output_data",
    "error": "error_message",
    "started_at": "started_at",
    "completed_at": "completed_at",
}
_EXECUTION_COLUMNS: dict[str, str] = {
    "status": "status",
    "progress": "progress",
    "current_step": "current_step",
    "output": "output_data",
    "error": "error_message",
    "completed_at": "completed_at",
    "heartbeat_at": "heartbeat_at",
}
_JSON_COLUMNS = frozenset({"output_data", "input_config", "input_data"})


class PostgresTaskStorage:
    """Persist tasks and their execution ledger in PostgreSQL."""

    def __init__(self, database_url: str) -> None:
        if not database_url:
            raise ValueError("DISCOVERY_ORCHESTRATOR_DATABASE_URL is required")
        self.database_url = database_url
        self._lock = threading.Lock()
        self._psycopg, self._dict_row, self._json_wrapper = _load_psycopg()

    def migrate(self) -> None:
        with self._lock, self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS agent_tasks (
                    id UUID PRIMARY KEY,
                    matter_id TEXT,
                    task_type TEXT NOT NULL,
                    task_name TEXT NOT NULL,
                    status TEXT NOT NULL,
                    progress INTEGER NOT NULL DEFAULT 0,
                    current_step TEXT,
                    input_config JSONB NOT NULL DEFAULT '{}'::jsonb,
                    output_data JSONB,
                    error_message TEXT,
                    created_at TIMESTAMPTZ NOT NULL,
                    started_at TIMESTAMPTZ,
                    completed_at TIMESTAMPTZ
                )
                """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_agent_tasks_matter_id
                ON agent_tasks(matter_id, created_at DESC)
                """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_agent_tasks_status
                ON agent_tasks(status, created_at)
                """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS agent_executions (
                    id UUID PRIMARY KEY,
                    task_id UUID NOT NULL REFERENCES agent_tasks(id),
                    agent_type TEXT NOT NULL,
                    status TEXT NOT NULL,
                    input_data JSONB NOT NULL DEFAULT '{}'::jsonb,
                    output_data JSONB,
                    error_message TEXT,
                    progress INTEGER NOT NULL DEFAULT 0,
                    current_step TEXT NOT NULL DEFAULT '',
                    started_at TIMESTAMPTZ NOT NULL,
                    completed_at TIMESTAMPTZ,
                    heartbeat_at TIMESTAMPTZ
                )
                """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_agent_executions_task_id
                ON agent_executions(task_id, started_at)
                """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_agent_executions_status
                ON agent_executions(status)
                """)
            conn.commit()

    def create_task(
        self,
        *,
        matter_id: str | None,
        agent_type: str,
        name: str,
        task_input: TaskInput,
    ) -> TaskRecord:
        task_id = uuid.uuid4()
        now = datetime.now(tz=UTC)
        with self._lock, self._connect() as conn:
            conn.execute(
                """
                INSERT INTO agent_tasks (
                    id,
                    matter_id,
                    task_type,
                    task_name,
                    status,
                    progress,
                    input_config,
                    created_at
                ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                """,
                (
                    task_id,
                    matter_id,
                    agent_type,
                    name,
                    "pending",
                    0,
                    self._json_wrapper(task_input.model_dump(mode="json")),
                    now,
                ),
            )
            conn.commit()
        created = self.get_task(str(task_id))
        if created is None:
            raise RuntimeError("Failed to load created task")
        return created

    def get_task(self, task_id: str) -> TaskRecord | None:
        with self._lock, self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM agent_tasks WHERE id::text = %s",
                (task_id,),
            ).fetchone()
        if row is None:
            return None
        return _row_to_task(row)

    def update_task(
        self,
        task_id: str,
        changes: dict[str, Any],
        *,
        expected_status: str | None = None,
    ) -> TaskRecord | None:
        assignments, values = self._assignments(changes, _TASK_COLUMNS)
        if assignments:
            query = f"UPDATE agent_tasks SET {assignments} WHERE id::text = %s"
            params: list[Any] = [*values, task_id]
            if expected_status is not None:
                query += " AND status = %s"
                params.append(expected_status)
            with self._lock, self._connect() as conn:
                cursor = conn.execute(query, tuple(params))
                conn.commit()
                updated_rows = cursor.rowcount
            if updated_rows == 0:
                if self.get_task(task_id) is None:
                    raise TaskNotFoundError(task_id)
                return None
        refreshed = self.get_task(task_id)
        if refreshed is None:
            raise TaskNotFoundError(task_id)
        return refreshed

    def list_tasks(
        self,
        *,
        matter_id: str | None = None,
        status: str | None = None,
        order_by: OrderField = "created_at",
        descending: bool = False,
    ) -> list[TaskRecord]:
        if order_by not in ("created_at", "started_at"):
            raise ValueError(f"Unsupported order field: {order_by}")
        clauses: list[str] = []
        params: list[Any] = []
        if matter_id is not None:
            clauses.append("matter_id = %s")
            params.append(matter_id)
        if status is not None:
            clauses.append("status = %s")
            params.append(status)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        direction = "DESC" if descending else "ASC"
        with self._lock, self._connect() as conn:
            rows = conn.execute(
                f"SELECT * FROM agent_tasks {where} ORDER BY {order_by} {direction} NULLS LAST",
                tuple(params),
            ).fetchall()
        return [_row_to_task(row) for row in rows]

    def create_execution(
        self,
        *,
        task_id: str,
        agent_type: str,
        input_data: dict[str, Any],
    ) -> ExecutionRecord:
        execution_id = uuid.uuid4()
        now = datetime.now(tz=UTC)
        with self._lock, self._connect() as conn:
            row = conn.execute(
                """
                INSERT INTO agent_executions (
                    id,
                    task_id,
                    agent_type,
                    status,
                    input_data,
                    progress,
                    current_step,
                    started_at,
                    heartbeat_at
                ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING *
                """,
                (
                    execution_id,
                    task_id,
                    agent_type,
                    "running",
                    self._json_wrapper(input_data),
                    0,
                    "",
                    now,
                    now,
                ),
            ).fetchone()
            conn.commit()
        if row is None:
            raise RuntimeError("Failed to persist execution")
        return _row_to_execution(row)

    def get_execution(self, execution_id: str) -> ExecutionRecord | None:
        with self._lock, self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM agent_executions WHERE id::text = %s",
                (execution_id,),
            ).fetchone()
        if row is None:
            return None
        return _row_to_execution(row)

    def update_execution(self, execution_id: str, changes: dict[str, Any]) -> ExecutionRecord:
        assignments, values = self._assignments(changes, _EXECUTION_COLUMNS)
        with self._lock, self._connect() as conn:
            if assignments:
                conn.execute(
                    f"UPDATE agent_executions SET {assignments} WHERE id::text = %s",
                    (*values, execution_id),
                )
                conn.commit()
            row = conn.execute(
                "SELECT * FROM agent_executions WHERE id::text = %s",
                (execution_id,),
            ).fetchone()
        if row is None:
            raise KeyError(f"Execution {execution_id} does not exist")
        return _row_to_execution(row)

    def list_executions(
        self,
        *,
        task_id: str | None = None,
        status: str | None = None,
    ) -> list[ExecutionRecord]:
        clauses: list[str] = []
        params: list[Any] = []
        if task_id is not None:
            clauses.append("task_id::text = %s")
            params.append(task_id)
        if status is not None:
            clauses.append("status = %s")
            params.append(status)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        with self._lock, self._connect() as conn:
            rows = conn.execute(
                f"SELECT * FROM agent_executions {where} ORDER BY started_at ASC",
                tuple(params),
            ).fetchall()
        return [_row_to_execution(row) for row in rows]

    def _assignments(
        self,
        changes: dict[str, Any],
        columns: dict[str, str],
    ) -> tuple[str, list[Any]]:
        parts: list[str] = []
        values: list[Any] = []
        for field, value in changes.items():
            column = columns.get(field)
            if column is None:
                raise ValueError(f"Field '{field}' cannot be updated")
            parts.append(f"{column} = %s")
            if column in _JSON_COLUMNS and value is not None:
                values.append(self._json_wrapper(value))
            else:
                values.append(value)
        return ", ".join(parts), values

    def _connect(self) -> Any:
        return self._psycopg.connect(self.database_url, row_factory=self._dict_row)


class PostgresDocumentStore:
    """Read documents and matters from the application's relational store."""

    def __init__(self, database_url: str) -> None:
        if not database_url:
            raise ValueError("DISCOVERY_ORCHESTRATOR_DATABASE_URL is required")
        self.database_url = database_url
        self._psycopg, self._dict_row, _ = _load_psycopg()

    def get_documents(self, document_ids: list[str]) -> list[DocumentRecord]:
        if not document_ids:
            return []
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM documents WHERE id::text = ANY(%s) ORDER BY created_at ASC",
                (list(document_ids),),
            ).fetchall()
        return [_row_to_document(row) for row in rows]

    def get_matter_documents(self, matter_id: str) -> list[DocumentRecord]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM documents WHERE matter_id::text = %s ORDER BY created_at ASC",
                (matter_id,),
            ).fetchall()
        return [_row_to_document(row) for row in rows]

    def get_matter(self, matter_id: str) -> MatterRecord | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM matters WHERE id::text = %s",
                (matter_id,),
            ).fetchone()
        if row is None:
            return None
        return MatterRecord(
            id=str(row["id"]),
            name=str(row.get("name") or "Unnamed Matter"),
            client_name=row.get("client_name"),
            description=row.get("description"),
        )

    def _connect(self) -> Any:
        return self._psycopg.connect(self.database_url, row_factory=self._dict_row)


def _load_psycopg() -> tuple[Any, Any, Any]:
    try:
        import psycopg
        from psycopg.rows import dict_row
        from psycopg.types.json import Json
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError(
            "PostgreSQL storage requires psycopg. "
            'Install with: python -m pip install "psycopg[binary]>=3.2,<4.0"'
        ) from exc
    return psycopg, dict_row, Json


def _parse_json_optional(raw: Any) -> dict[str, Any] | None:
    if raw is None:
        return None
    if isinstance(raw, str):
        parsed = json.loads(raw)
    else:
        parsed = raw
    if isinstance(parsed, dict):
        return parsed
    return None


def _parse_datetime_optional(raw: Any) -> datetime | None:
    if raw is None:
        return None
    if isinstance(raw, datetime):
        return raw
    if isinstance(raw, str):
        return datetime.fromisoformat(raw)
    raise TypeError(f"Unsupported datetime value: {type(raw)!r}")


def _row_to_task(row: Any) -> TaskRecord:
    return TaskRecord(
        task_id=str(row["id"]),
        matter_id=row["matter_id"],
        agent_type=row["task_type"],
        name=row["task_name"],
        status=row["status"],
        progress=int(row["progress"] or 0),
        current_step=row["current_step"],
        input=TaskInput.model_validate(_parse_json_optional(row["input_config"]) or {"query": ""}),
        output=_parse_json_optional(row["output_data"]),
        error=row["error_message"],
        created_at=_parse_datetime_optional(row["created_at"]),
        started_at=_parse_datetime_optional(row["started_at"]),
        completed_at=_parse_datetime_optional(row["completed_at"]),
    )


def _row_to_execution(row: Any) -> ExecutionRecord:
    return ExecutionRecord(
        execution_id=str(row["id"]),
        task_id=str(row["task_id"]),
        agent_type=row["agent_type"],
        status=row["status"],
        input=_parse_json_optional(row["input_data"]) or {},
        output=_parse_json_optional(row["output_data"]),
        error=row["error_message"],
        progress=int(row["progress"] or 0),
        current_step=row["current_step"] or "",
        started_at=_parse_datetime_optional(row["started_at"]),
        completed_at=_parse_datetime_optional(row["completed_at"]),
        heartbeat_at=_parse_datetime_optional(row["heartbeat_at"]),
    )


def _row_to_document(row: Any) -> DocumentRecord:
    return DocumentRecord(
        id=str(row["id"]),
        matter_id=str(row["matter_id"]) if row.get("matter_id") is not None else None,
        filename=row.get("filename") or "",
        extracted_text=row.get("extracted_text") or "",
        created_at=_parse_datetime_optional(row.get("created_at")),
        file_type=row.get("file_type") or "document",
    )
