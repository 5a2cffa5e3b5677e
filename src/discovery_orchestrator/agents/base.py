"""Agent execution contract implemented by every long-running agent."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Literal

from pydantic import BaseModel, Field

from discovery_orchestrator.agents.context import ExecutionContext
from discovery_orchestrator.storage.models import AgentType


class AgentCapability(BaseModel):
    name: str
    description: str
    input_types: list[str] = Field(default_factory=list)
    output_types: list[str] = Field(default_factory=list)
    estimated_duration_s: int = Field(ge=0)


class Citation(BaseModel):
    id: str
    type: Literal["case", "statute", "document", "web", "regulation"]
    title: str
    url: str | None = None
    citation: str | None = None
    court: str | None = None
    date: str | None = None
    relevance: float | None = None


class AgentInput(BaseModel):
    matter_id: str | None = None
    query: str = ""
    context: dict[str, Any] = Field(default_factory=dict)
    documents: list[str] = Field(default_factory=list)
    parameters: dict[str, Any] = Field(default_factory=dict)


class AgentOutput(BaseModel):
    success: bool
    result: Any = None
    error: str | None = None
    citations: list[Citation] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    execution_time_ms: float = 0.0


class Agent(ABC):
    """Base class for agents dispatched by the task runner.

    `execute` must not raise for expected failures (invalid input, model
    unavailable); those are returned as `AgentOutput(success=False)`.
    `TaskCancelledError` is the one exception allowed to escape, so the
    runner can tell a cancellation apart from a failure.
    """

    id: str
    agent_type: AgentType
    name: str
    description: str
    capabilities: list[AgentCapability]
    required_context: list[str]

    @abstractmethod
    def execute(self, agent_input: AgentInput, context: ExecutionContext) -> AgentOutput: ...

    def validate_input(self, agent_input: AgentInput) -> bool:
        if not agent_input.query.strip():
            return False
        if agent_input.matter_id is not None:
            for requirement in self.required_context:
                if not self._has_context(agent_input, requirement):
                    return False
        return True

    def estimate_duration(self, agent_input: AgentInput) -> int:
        query_complexity = 1.5 if len(agent_input.query) > 200 else 1.0
        document_factor = min(len(agent_input.documents) * 0.1, 2.0)
        return round(60 * query_complexity * (1 + document_factor))

    def required_permissions(self) -> list[str]:
        return ["read:documents", "write:research"]

    def describe(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "agent_type": self.agent_type,
            "name": self.name,
            "description": self.description,
            "capabilities": [item.model_dump() for item in self.capabilities],
            "required_context": list(self.required_context),
            "permissions": self.required_permissions(),
        }

    @staticmethod
    def _has_context(agent_input: AgentInput, key: str) -> bool:
        # Context may be supplied by the runner or directly in task parameters.
        for source in (agent_input.context, agent_input.parameters):
            value = source.get(key)
            if value:
                return True
        return False
