"""Storage models shared by the API, lifecycle manager and persistence backends."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

TaskStatus = Literal["pending", "running", "completed", "failed", "cancelled"]

AgentType = Literal[
    "research",
    "drafting",
    "discovery",
    "contract",
    "timeline",
    "document-analysis",
]

TERMINAL_STATUSES: frozenset[str] = frozenset({"completed", "failed", "cancelled"})

# Allowed next statuses per current status. `running -> running` carries
# progress updates; terminal statuses have no outgoing edges.
TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"running", "failed", "cancelled"}),
    "running": frozenset({"running", "completed", "failed", "cancelled"}),
    "completed": frozenset(),
    "failed": frozenset(),
    "cancelled": frozenset(),
}


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


class TaskInput(BaseModel):
    """Input payload captured when a task is created."""

    query: str
    parameters: dict[str, Any] = Field(default_factory=dict)
    documents: list[str] = Field(default_factory=list)
    context: dict[str, Any] = Field(default_factory=dict)


class TaskRecord(BaseModel):
    """Persisted task record; the current projection of its executions."""

    task_id: str
    matter_id: str | None = None
    agent_type: AgentType
    name: str
    status: TaskStatus = "pending"
    progress: int = Field(default=0, ge=0, le=100)
    current_step: str | None = None
    input: TaskInput
    output: dict[str, Any] | None = None
    error: str | None = None
    created_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None


class ExecutionRecord(BaseModel):
    """One attempt to run a task; append-only ledger entry."""

    execution_id: str
    task_id: str
    agent_type: AgentType
    status: TaskStatus = "running"
    input: dict[str, Any] = Field(default_factory=dict)
    output: dict[str, Any] | None = None
    error: str | None = None
    progress: int = Field(default=0, ge=0, le=100)
    current_step: str = ""
    started_at: datetime
    completed_at: datetime | None = None
    heartbeat_at: datetime | None = None


class DocumentRecord(BaseModel):
    """A reviewable document as exposed by the document source."""

    id: str
    matter_id: str | None = None
    filename: str = ""
    extracted_text: str = ""
    created_at: datetime | None = None
    file_type: str = "document"


class MatterRecord(BaseModel):
    id: str | None = None
    name: str
    client_name: str | None = None
    description: str | None = None


GENERAL_MATTER = MatterRecord(
    id=None,
    name="General Research",
    client_name=None,
    description="General legal research without a specific matter context",
)
