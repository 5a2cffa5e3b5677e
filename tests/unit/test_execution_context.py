import pytest

from discovery_orchestrator.agents.context import ExecutionContext
from discovery_orchestrator.errors import TaskCancelledError


def test_report_drops_out_of_order_progress() -> None:
    seen: list[tuple[int, str]] = []
    context = ExecutionContext(task_id="t1", progress_reporter=lambda p, s: seen.append((p, s)))

    context.report(30, "privilege")
    context.report(10, "late load event")
    context.report(50, "responsiveness")
    context.report(50, "still responsiveness")

    assert seen == [(30, "privilege"), (50, "responsiveness"), (50, "still responsiveness")]
    assert context.progress == 50


def test_report_clamps_progress() -> None:
    context = ExecutionContext(task_id="t1")

    context.report(-5, "start")
    context.report(140, "overflow")

    assert context.progress_history == [(0, "start"), (100, "overflow")]


def test_checkpoint_raises_after_cancel() -> None:
    context = ExecutionContext.detached()
    context.checkpoint()

    context.cancel()

    assert context.is_cancelled() is True
    with pytest.raises(TaskCancelledError):
        context.checkpoint()


def test_cancel_probe_is_consulted_and_latched() -> None:
    calls: list[int] = []

    def probe() -> bool:
        calls.append(1)
        return len(calls) >= 2

    context = ExecutionContext(task_id="t1", cancel_probe=probe)

    assert context.is_cancelled() is False
    assert context.is_cancelled() is True
    assert context.is_cancelled() is True
    assert len(calls) == 2
