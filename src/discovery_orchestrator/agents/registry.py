"""Closed registry mapping agent type tags to agent factories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Mapping, get_args

from discovery_orchestrator.agents.base import Agent
from discovery_orchestrator.agents.discovery import DiscoveryReviewAgent
from discovery_orchestrator.config.settings import Settings
from discovery_orchestrator.errors import UnknownAgentError
from discovery_orchestrator.review.classifiers import ClassifierSet
from discovery_orchestrator.storage.base import DocumentStore
from discovery_orchestrator.storage.models import AgentType

AGENT_TYPES: tuple[str, ...] = get_args(AgentType)


@dataclass(frozen=True)
class AgentDependencies:
    documents: DocumentStore
    classifiers: ClassifierSet
    settings: Settings


AgentFactory = Callable[[AgentDependencies], Agent]


def _discovery(deps: AgentDependencies) -> Agent:
    return DiscoveryReviewAgent(
        deps.documents,
        classifiers=deps.classifiers,
        max_workers=deps.settings.review_max_workers,
        document_char_budget=deps.settings.document_char_budget,
    )


class AgentRegistry:
    """Resolve an agent for a task's type tag.

    The set of tags is fixed by `AgentType`; a tag without a factory is a valid
    task type that fails with `UnknownAgentError` when executed.
    """

    def __init__(
        self,
        deps: AgentDependencies,
        factories: Mapping[AgentType, AgentFactory] | None = None,
    ) -> None:
        self.deps = deps
        self._factories: dict[str, AgentFactory] = dict(
            factories if factories is not None else {"discovery": _discovery}
        )
        unknown = set(self._factories) - set(AGENT_TYPES)
        if unknown:
            raise ValueError(f"Unsupported agent types: {', '.join(sorted(unknown))}")

    def supports(self, agent_type: str) -> bool:
        return agent_type in self._factories

    def create(self, agent_type: str) -> Agent:
        factory = self._factories.get(agent_type)
        if factory is None:
            raise UnknownAgentError(f"No agent available for type '{agent_type}'")
        return factory(self.deps)

    def available(self) -> list[str]:
        return [agent_type for agent_type in AGENT_TYPES if agent_type in self._factories]

    def describe(self) -> list[dict]:
        return [self.create(agent_type).describe() for agent_type in self.available()]
