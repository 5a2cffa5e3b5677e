"""Drive one task through its execution: dispatch, progress, terminal state."""

from __future__ import annotations

import logging
from typing import Any

from discovery_orchestrator.agents.base import Agent, AgentInput, AgentOutput
from discovery_orchestrator.agents.context import ExecutionContext
from discovery_orchestrator.agents.registry import AgentRegistry
from discovery_orchestrator.errors import TaskCancelledError, TaskNotFoundError, UnknownAgentError
from discovery_orchestrator.storage.base import DocumentStore
from discovery_orchestrator.storage.models import TaskRecord
from discovery_orchestrator.tasks.manager import TaskManager

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "Task cancelled by user"


class TaskRunner:
    """Run pending tasks with the agent registered for their type.

    Cancellation observed after the agent returns discards its output: the
    task keeps the `cancelled` status written by `TaskManager.cancel_task`.
    """

    def __init__(
        self,
        manager: TaskManager,
        registry: AgentRegistry,
        documents: DocumentStore | None = None,
    ) -> None:
        self.manager = manager
        self.registry = registry
        self.documents = documents if documents is not None else registry.deps.documents

    def run_task(self, task_id: str) -> TaskRecord:
        task = self.manager.get_task(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        if task.status != "pending":
            logger.warning(
                "task_run event=skipped task_id=%s status=%s",
                task_id,
                task.status,
            )
            return task

        try:
            agent = self.registry.create(task.agent_type)
        except UnknownAgentError as exc:
            logger.warning("task_run event=unknown_agent task_id=%s error=%s", task_id, exc)
            return self.manager.update_task_status(task_id, "failed", error=str(exc))

        try:
            agent_input = self._agent_input(task)
            valid = agent.validate_input(agent_input)
        except Exception as exc:  # noqa: BLE001
            logger.exception("task_run event=prepare_failed task_id=%s", task_id)
            return self.manager.update_task_status(
                task_id,
                "failed",
                error=_error_message(exc),
                current_step="Failed",
            )
        if not valid:
            message = "Invalid input parameters - matter info and discovery requests required"
            logger.info("task_run event=invalid_input task_id=%s", task_id)
            return self.manager.update_task_status(
                task_id,
                "failed",
                error=message,
                current_step="Invalid input",
            )

        started = self.manager.claim_task(task_id)
        if started is None:
            logger.info("task_run event=claimed_elsewhere task_id=%s", task_id)
            return self.manager.get_task(task_id) or task

        try:
            execution = self.manager.start_execution(
                started,
                agent_input.model_dump(mode="json"),
            )
        except Exception as exc:  # noqa: BLE001
            logger.exception("task_run event=execution_start_failed task_id=%s", task_id)
            return self.manager.update_task_status(
                task_id,
                "failed",
                error=_error_message(exc),
                current_step="Failed",
            )
        context = ExecutionContext(
            task_id=task_id,
            execution_id=execution.execution_id,
            progress_reporter=lambda progress, step: self.manager.report_progress(
                task_id, execution.execution_id, progress, step
            ),
            cancel_probe=lambda: self.manager.is_cancel_requested(task_id),
        )
        logger.info(
            "task_run event=start task_id=%s execution_id=%s agent_type=%s",
            task_id,
            execution.execution_id,
            task.agent_type,
        )
        self.manager.register_context(context)
        try:
            output = self._execute(agent, agent_input, context)
        finally:
            self.manager.release_context(context)

        if output is None or context.is_cancelled():
            self.manager.finish_execution(
                execution.execution_id,
                "cancelled",
                error=CANCELLED_MESSAGE,
            )
            logger.info("task_run event=cancelled task_id=%s", task_id)
            return self.manager.get_task(task_id) or started

        payload = output.model_dump(mode="json")
        if output.success:
            self.manager.finish_execution(execution.execution_id, "completed", output=payload)
            record = self.manager.update_task_status(
                task_id,
                "completed",
                progress=100,
                output=_task_output(output),
                current_step="Completed",
            )
        else:
            error = output.error or "Agent execution failed"
            self.manager.finish_execution(
                execution.execution_id,
                "failed",
                output=payload,
                error=error,
            )
            record = self.manager.update_task_status(
                task_id,
                "failed",
                error=error,
                current_step="Failed",
            )
        logger.info(
            "task_run event=finish task_id=%s status=%s duration_ms=%.2f",
            task_id,
            record.status,
            output.execution_time_ms,
        )
        return record

    def run_pending(self, limit: int | None = None) -> list[TaskRecord]:
        """Run pending tasks oldest first; returns the records after each run."""
        pending = self.manager.get_pending_tasks()
        if limit is not None:
            pending = pending[:limit]
        results: list[TaskRecord] = []
        for task in pending:
            try:
                results.append(self.run_task(task.task_id))
            except TaskNotFoundError:
                continue
            except Exception:  # noqa: BLE001
                logger.exception("task_run event=run_error task_id=%s", task.task_id)
        return results

    def _execute(
        self,
        agent: Agent,
        agent_input: AgentInput,
        context: ExecutionContext,
    ) -> AgentOutput | None:
        try:
            return agent.execute(agent_input, context)
        except TaskCancelledError:
            return None
        except Exception as exc:  # noqa: BLE001
            logger.exception("task_run event=agent_error task_id=%s", context.task_id)
            return AgentOutput(success=False, error=_error_message(exc))

    def _agent_input(self, task: TaskRecord) -> AgentInput:
        context: dict[str, Any] = dict(task.input.context)
        context["task_id"] = task.task_id
        if task.matter_id and "matter_info" not in context:
            matter = self.documents.get_matter(task.matter_id)
            if matter is not None:
                context["matter_info"] = matter.model_dump()
        return AgentInput(
            matter_id=task.matter_id,
            query=task.input.query,
            context=context,
            documents=list(task.input.documents),
            parameters=dict(task.input.parameters),
        )


def _error_message(exc: Exception) -> str:
    return str(exc) or exc.__class__.__name__


def _task_output(output: AgentOutput) -> dict[str, Any]:
    result = output.result if isinstance(output.result, dict) else {"result": output.result}
    return {**result, "metadata": output.metadata}
