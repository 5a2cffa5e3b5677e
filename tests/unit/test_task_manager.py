from datetime import UTC, datetime, timedelta

import pytest

from discovery_orchestrator.agents.context import ExecutionContext
from discovery_orchestrator.errors import InvalidTransitionError, TaskNotFoundError
from discovery_orchestrator.storage.memory import InMemoryTaskStorage
from discovery_orchestrator.storage.models import TaskInput
from discovery_orchestrator.tasks.manager import TaskManager, generate_task_name


def _manager() -> TaskManager:
    return TaskManager(InMemoryTaskStorage(), heartbeat_stale_after_s=900)


def _pending(manager: TaskManager, query: str = "Review Q3 production"):
    return manager.create_task("matter-1", "discovery", TaskInput(query=query))


def test_generate_task_name_truncates_long_queries() -> None:
    assert generate_task_name("discovery", "Review docs") == "Discovery Review: Review docs"
    long_name = generate_task_name("research", "x" * 80)
    assert long_name == "Legal Research: " + "x" * 50 + "..."


def test_create_task_starts_pending_with_generated_name() -> None:
    manager = _manager()

    task = manager.create_task(
        "matter-1",
        "discovery",
        {"query": "Review Q3 production", "parameters": {"review_type": "targeted"}},
    )

    assert task.status == "pending"
    assert task.progress == 0
    assert task.name == "Discovery Review: Review Q3 production"
    assert task.input.parameters == {"review_type": "targeted"}
    assert task.started_at is None
    assert task.completed_at is None


def test_running_sets_started_at_once() -> None:
    manager = _manager()
    task = _pending(manager)

    running = manager.update_task_status(task.task_id, "running", progress=10)
    again = manager.update_task_status(task.task_id, "running", progress=20)

    assert running.started_at is not None
    assert again.started_at == running.started_at
    assert again.completed_at is None
    assert again.progress == 20


def test_completed_sets_completed_at_and_full_progress() -> None:
    manager = _manager()
    task = _pending(manager)
    manager.update_task_status(task.task_id, "running")

    done = manager.update_task_status(task.task_id, "completed", output={"ok": True})

    assert done.status == "completed"
    assert done.progress == 100
    assert done.output == {"ok": True}
    assert done.completed_at is not None


@pytest.mark.parametrize("terminal", ["completed", "failed", "cancelled"])
@pytest.mark.parametrize("requested", ["running", "completed", "failed", "cancelled"])
def test_terminal_status_ignores_further_writes(terminal: str, requested: str) -> None:
    manager = _manager()
    task = _pending(manager)
    manager.update_task_status(task.task_id, "running")
    final = manager.update_task_status(task.task_id, terminal, error="boom")

    result = manager.update_task_status(
        task.task_id,
        requested,
        progress=5,
        output={"late": True},
        error="late",
    )

    assert result.status == terminal
    assert result == final
    assert manager.get_task(task.task_id) == final


def test_pending_cannot_jump_to_completed() -> None:
    manager = _manager()
    task = _pending(manager)

    with pytest.raises(InvalidTransitionError):
        manager.update_task_status(task.task_id, "completed")

    assert manager.get_task(task.task_id).status == "pending"


def test_pending_can_fail_without_starting() -> None:
    manager = _manager()
    task = _pending(manager)

    failed = manager.update_task_status(task.task_id, "failed", error="Invalid input")

    assert failed.status == "failed"
    assert failed.started_at is None
    assert failed.completed_at is not None


def test_progress_is_clamped_and_non_decreasing_while_running() -> None:
    manager = _manager()
    task = _pending(manager)
    manager.update_task_status(task.task_id, "running", progress=50)

    lower = manager.update_task_status(task.task_id, "running", progress=30)
    assert lower.progress == 50

    clamped = manager.update_task_status(task.task_id, "running", progress=250)
    assert clamped.progress == 100


def test_unknown_task_raises() -> None:
    with pytest.raises(TaskNotFoundError):
        _manager().update_task_status("missing", "running")


def test_cancel_running_task_is_immediate() -> None:
    manager = _manager()
    task = _pending(manager)
    running = manager.update_task_status(task.task_id, "running", progress=40)
    execution = manager.start_execution(running, {"query": "Review Q3 production"})
    context = ExecutionContext(task_id=task.task_id, execution_id=execution.execution_id)
    manager.register_context(context)

    cancelled = manager.cancel_task(task.task_id)

    assert cancelled.status == "cancelled"
    assert cancelled.completed_at is not None
    assert context.is_cancelled() is True
    executions = manager.get_task_executions(task.task_id)
    assert executions[0].status == "cancelled"
    assert executions[0].error == "Task cancelled by user"


def test_cancel_without_owned_context_still_flips_status() -> None:
    manager = _manager()
    task = _pending(manager)
    manager.update_task_status(task.task_id, "running")

    cancelled = manager.cancel_task(task.task_id)

    assert cancelled.status == "cancelled"
    assert manager.is_cancel_requested(task.task_id) is True


def test_cancel_completed_task_changes_nothing() -> None:
    manager = _manager()
    task = _pending(manager)
    manager.update_task_status(task.task_id, "running")
    manager.update_task_status(task.task_id, "completed")

    result = manager.cancel_task(task.task_id)

    assert result.status == "completed"


def test_report_progress_updates_task_and_execution() -> None:
    manager = _manager()
    task = manager.update_task_status(_pending(manager).task_id, "running")
    execution = manager.start_execution(task, {})

    manager.report_progress(task.task_id, execution.execution_id, 30, "Privilege review")

    stored_task = manager.get_task(task.task_id)
    stored_execution = manager.storage.get_execution(execution.execution_id)
    assert stored_task.progress == 30
    assert stored_task.current_step == "Privilege review"
    assert stored_execution.progress == 30
    assert stored_execution.current_step == "Privilege review"
    assert stored_execution.heartbeat_at >= execution.heartbeat_at


def test_finish_execution_leaves_terminal_executions_alone() -> None:
    manager = _manager()
    task = manager.update_task_status(_pending(manager).task_id, "running")
    execution = manager.start_execution(task, {})

    first = manager.finish_execution(execution.execution_id, "completed", output={"a": 1})
    second = manager.finish_execution(execution.execution_id, "failed", error="late")

    assert first.status == "completed"
    assert first.progress == 100
    assert second.status == "completed"
    assert second.error is None


def test_listing_orders() -> None:
    manager = _manager()
    first = _pending(manager, "first")
    second = _pending(manager, "second")
    other = manager.create_task("matter-2", "research", TaskInput(query="other"))

    assert [task.task_id for task in manager.get_pending_tasks()] == [
        first.task_id,
        second.task_id,
        other.task_id,
    ]
    assert [task.task_id for task in manager.get_matter_tasks("matter-1")] == [
        second.task_id,
        first.task_id,
    ]

    manager.update_task_status(second.task_id, "running")
    manager.update_task_status(first.task_id, "running")
    assert [task.task_id for task in manager.get_running_tasks()] == [
        second.task_id,
        first.task_id,
    ]
    assert [task.task_id for task in manager.list_tasks(status="pending")] == [other.task_id]


def test_reap_orphaned_executions_fails_stale_runs() -> None:
    manager = _manager()
    task = manager.update_task_status(_pending(manager).task_id, "running")
    execution = manager.start_execution(task, {})
    later = datetime.now(UTC) + timedelta(seconds=1000)

    assert manager.find_orphaned_executions(now=datetime.now(UTC)) == []
    reaped = manager.reap_orphaned_executions(now=later)

    assert [item.execution_id for item in reaped] == [execution.execution_id]
    assert reaped[0].status == "failed"
    stored = manager.get_task(task.task_id)
    assert stored.status == "failed"
    assert "heartbeat" in stored.error


def test_reaper_skips_executions_owned_by_this_manager() -> None:
    manager = _manager()
    task = manager.update_task_status(_pending(manager).task_id, "running")
    execution = manager.start_execution(task, {})
    manager.register_context(
        ExecutionContext(task_id=task.task_id, execution_id=execution.execution_id)
    )

    reaped = manager.reap_orphaned_executions(now=datetime.now(UTC) + timedelta(hours=2))

    assert reaped == []
    assert manager.get_task(task.task_id).status == "running"
