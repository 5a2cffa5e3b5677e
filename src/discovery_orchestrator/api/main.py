"""FastAPI app entrypoint for discovery-orchestrator."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import BackgroundTasks, FastAPI, HTTPException, Request
from pydantic import BaseModel, Field

from discovery_orchestrator.config.settings import Settings, get_settings
from discovery_orchestrator.errors import InvalidTransitionError, TaskNotFoundError
from discovery_orchestrator.runtime import Runtime, build_runtime
from discovery_orchestrator.storage.base import DocumentStore, TaskStorage
from discovery_orchestrator.storage.models import (
    AgentType,
    ExecutionRecord,
    TaskInput,
    TaskRecord,
    TaskStatus,
    is_terminal,
)

logger = logging.getLogger(__name__)


class CreateTaskRequest(BaseModel):
    agent_type: AgentType
    matter_id: str | None = None
    name: str | None = None
    query: str = ""
    parameters: dict[str, Any] = Field(default_factory=dict)
    documents: list[str] = Field(default_factory=list)
    context: dict[str, Any] = Field(default_factory=dict)


class ExecuteTaskResponse(BaseModel):
    task_id: str
    status: TaskStatus
    message: str


def _ensure_runtime_state(
    app: FastAPI,
    *,
    settings: Settings,
    storage_override: TaskStorage | None,
    documents_override: DocumentStore | None,
) -> None:
    if not hasattr(app.state, "runtime"):
        app.state.runtime = build_runtime(
            settings,
            storage=storage_override,
            documents=documents_override,
        )

    if not hasattr(app.state, "settings"):
        app.state.settings = settings


def create_app(
    *,
    storage: TaskStorage | None = None,
    documents: DocumentStore | None = None,
    settings_override: Settings | None = None,
) -> FastAPI:
    settings = settings_override or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        _ensure_runtime_state(
            app,
            settings=settings,
            storage_override=storage,
            documents_override=documents,
        )
        yield

    app_lifespan = lifespan if storage is None else None
    app = FastAPI(title=settings.app_name, lifespan=app_lifespan)

    # Keep test paths reliable when lifespan is not executed by the client.
    if storage is not None:
        _ensure_runtime_state(
            app,
            settings=settings,
            storage_override=storage,
            documents_override=documents,
        )

    def _get_runtime(request: Request) -> Runtime:
        if not hasattr(request.app.state, "runtime"):
            _ensure_runtime_state(
                request.app,
                settings=settings,
                storage_override=storage,
                documents_override=documents,
            )
        return request.app.state.runtime

    def _require_task(runtime: Runtime, task_id: str) -> TaskRecord:
        record = runtime.manager.get_task(task_id)
        if record is None:
            raise HTTPException(status_code=404, detail="Task not found")
        return record

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok", "service": settings.app_name}

    @app.get("/agents")
    def agents(request: Request) -> dict[str, Any]:
        runtime = _get_runtime(request)
        return {
            "agents": runtime.registry.describe(),
            "classifier_mode": {
                "requested": runtime.classifiers.requested_mode,
                "effective": runtime.classifiers.effective_mode,
                "fallback_reason": runtime.classifiers.fallback_reason,
            },
        }

    @app.post("/tasks", response_model=TaskRecord)
    def create_task(payload: CreateTaskRequest, request: Request) -> TaskRecord:
        runtime = _get_runtime(request)
        return runtime.manager.create_task(
            payload.matter_id,
            payload.agent_type,
            TaskInput(
                query=payload.query,
                parameters=payload.parameters,
                documents=payload.documents,
                context=payload.context,
            ),
            name=payload.name,
        )

    @app.get("/tasks", response_model=list[TaskRecord])
    def list_tasks(
        request: Request,
        matter_id: str | None = None,
        status: TaskStatus | None = None,
    ) -> list[TaskRecord]:
        runtime = _get_runtime(request)
        return runtime.manager.list_tasks(matter_id=matter_id, status=status)

    @app.get("/tasks/{task_id}", response_model=TaskRecord)
    def get_task(task_id: str, request: Request) -> TaskRecord:
        return _require_task(_get_runtime(request), task_id)

    @app.post("/tasks/{task_id}/execute", response_model=ExecuteTaskResponse, status_code=202)
    def execute_task(
        task_id: str,
        request: Request,
        background_tasks: BackgroundTasks,
    ) -> ExecuteTaskResponse:
        runtime = _get_runtime(request)
        record = _require_task(runtime, task_id)
        if record.status != "pending":
            raise HTTPException(status_code=409, detail="Task is not in pending status")

        background_tasks.add_task(runtime.runner.run_task, task_id)
        logger.info("task_api event=execute_scheduled task_id=%s", task_id)
        return ExecuteTaskResponse(
            task_id=task_id,
            status=record.status,
            message="Task execution started",
        )

    @app.post("/tasks/{task_id}/cancel", response_model=TaskRecord)
    def cancel_task(task_id: str, request: Request) -> TaskRecord:
        runtime = _get_runtime(request)
        record = _require_task(runtime, task_id)
        if is_terminal(record.status):
            raise HTTPException(
                status_code=409,
                detail=f"Task is already {record.status}",
            )
        try:
            return runtime.manager.cancel_task(task_id)
        except TaskNotFoundError as exc:
            raise HTTPException(status_code=404, detail="Task not found") from exc
        except InvalidTransitionError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc

    @app.get("/tasks/{task_id}/executions", response_model=list[ExecutionRecord])
    def list_executions(task_id: str, request: Request) -> list[ExecutionRecord]:
        runtime = _get_runtime(request)
        _require_task(runtime, task_id)
        return runtime.manager.get_task_executions(task_id)

    @app.get("/matters/{matter_id}/tasks", response_model=list[TaskRecord])
    def matter_tasks(matter_id: str, request: Request) -> list[TaskRecord]:
        return _get_runtime(request).manager.get_matter_tasks(matter_id)

    return app


app = create_app()
