from __future__ import annotations

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from discovery_orchestrator.errors import InvalidTransitionError
from discovery_orchestrator.storage.models import TaskInput
from discovery_orchestrator.storage.postgres import PostgresTaskStorage
from discovery_orchestrator.tasks.manager import TaskManager

pytestmark = pytest.mark.integration


def test_task_round_trip_and_transitions(postgres_storage: PostgresTaskStorage) -> None:
    manager = TaskManager(postgres_storage)
    matter_id = f"matter-{uuid4()}"
    task = manager.create_task(
        matter_id,
        "discovery",
        TaskInput(query="Review", parameters={"discovery_requests": ["contracts"]}),
    )

    stored = manager.get_task(task.task_id)
    assert stored is not None
    assert stored.status == "pending"
    assert stored.input.parameters == {"discovery_requests": ["contracts"]}

    running = manager.update_task_status(task.task_id, "running", progress=5, current_step="Go")
    assert running.started_at is not None

    completed = manager.update_task_status(task.task_id, "completed", output={"ok": True})
    assert completed.progress == 100
    assert completed.output == {"ok": True}

    ignored = manager.update_task_status(task.task_id, "failed", error="late")
    assert ignored.status == "completed"
    assert ignored.error is None
    assert [item.task_id for item in manager.get_matter_tasks(matter_id)] == [task.task_id]


def test_invalid_transition_is_rejected(postgres_storage: PostgresTaskStorage) -> None:
    manager = TaskManager(postgres_storage)
    task = manager.create_task(None, "discovery", TaskInput(query="Review"))

    with pytest.raises(InvalidTransitionError):
        manager.update_task_status(task.task_id, "completed")


def test_cancel_marks_running_executions(postgres_storage: PostgresTaskStorage) -> None:
    manager = TaskManager(postgres_storage)
    task = manager.create_task(None, "discovery", TaskInput(query="Review"))
    running = manager.update_task_status(task.task_id, "running", progress=0)
    execution = manager.start_execution(running, {"query": "Review"})

    manager.cancel_task(task.task_id)

    executions = manager.get_task_executions(task.task_id)
    assert [item.execution_id for item in executions] == [execution.execution_id]
    assert executions[0].status == "cancelled"
    assert manager.is_cancel_requested(task.task_id) is True


def test_stale_execution_is_reaped(postgres_storage: PostgresTaskStorage) -> None:
    manager = TaskManager(postgres_storage, heartbeat_stale_after_s=60)
    task = manager.create_task(None, "discovery", TaskInput(query="Review"))
    running = manager.update_task_status(task.task_id, "running", progress=0)
    execution = manager.start_execution(running, {})

    reaped = manager.reap_orphaned_executions(now=datetime.now(UTC) + timedelta(minutes=5))

    assert execution.execution_id in {item.execution_id for item in reaped}
    assert manager.get_task(task.task_id).status == "failed"
