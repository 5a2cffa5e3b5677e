"""Agent contract and per-execution context.

Concrete agents live in their own modules and are resolved through
`discovery_orchestrator.agents.registry`.
"""

from discovery_orchestrator.agents.base import (
    Agent,
    AgentCapability,
    AgentInput,
    AgentOutput,
    Citation,
)
from discovery_orchestrator.agents.context import ExecutionContext

__all__ = [
    "Agent",
    "AgentCapability",
    "AgentInput",
    "AgentOutput",
    "Citation",
    "ExecutionContext",
]
