"""Discovery review agent: privilege, responsiveness and hot-document review over a document set."""

from __future__ import annotations

import logging
import time
from typing import Any

from discovery_orchestrator.agents.base import Agent, AgentCapability, AgentInput, AgentOutput
from discovery_orchestrator.agents.context import ExecutionContext
from discovery_orchestrator.errors import TaskCancelledError
from discovery_orchestrator.graph.deps import ReviewDependencies
from discovery_orchestrator.graph.state import initial_state
from discovery_orchestrator.graph.workflow import build_graph
from discovery_orchestrator.review.classifiers import ClassifierSet, build_classifiers
from discovery_orchestrator.storage.base import DocumentStore

logger = logging.getLogger(__name__)

SECONDS_PER_DOCUMENT = 2
DEFAULT_DOCUMENT_COUNT = 10


class DiscoveryReviewAgent(Agent):
    id = "discovery-agent"
    agent_type = "discovery"
    name = "Discovery Review Agent"
    description = "Automated document review, privilege identification, and discovery management"
    capabilities = [
        AgentCapability(
            name="Document Review",
            description="Automated review of documents for responsiveness and privilege",
            input_types=["documents", "review_criteria", "privilege_rules"],
            output_types=["review_results", "privilege_log", "responsive_docs"],
            estimated_duration_s=180,
        ),
        AgentCapability(
            name="Privilege Identification",
            description="Identify attorney-client privileged communications",
            input_types=["documents", "attorney_list", "client_list"],
            output_types=["privilege_log", "privileged_docs", "waiver_analysis"],
            estimated_duration_s=120,
        ),
        AgentCapability(
            name="Responsive Document Classification",
            description="Classify documents by responsiveness to discovery requests",
            input_types=["documents", "discovery_requests", "classification_rules"],
            output_types=["classified_docs", "production_set", "review_report"],
            estimated_duration_s=150,
        ),
        AgentCapability(
            name="Hot Document Identification",
            description="Identify potentially problematic or key documents",
            input_types=["documents", "risk_keywords", "matter_context"],
            output_types=["hot_docs", "risk_analysis", "priority_review"],
            estimated_duration_s=90,
        ),
    ]
    required_context = ["matter_info", "discovery_requests"]

    def __init__(
        self,
        documents: DocumentStore,
        *,
        classifiers: ClassifierSet | None = None,
        max_workers: int = 1,
        document_char_budget: int = 4000,
    ) -> None:
        self.documents = documents
        self.classifiers = classifiers or build_classifiers()
        self.max_workers = max_workers
        self.document_char_budget = document_char_budget

    def estimate_duration(self, agent_input: AgentInput) -> int:
        count = len(agent_input.documents) or DEFAULT_DOCUMENT_COUNT
        review_type = agent_input.parameters.get(
            "review_type", agent_input.parameters.get("reviewType", "comprehensive")
        )
        complexity = 1.5 if review_type == "comprehensive" else 1.0
        return round(count * SECONDS_PER_DOCUMENT * complexity)

    def required_permissions(self) -> list[str]:
        return ["read:documents", "write:discovery"]

    def validate_input(self, agent_input: AgentInput) -> bool:
        parameters = agent_input.parameters
        if "discovery_requests" not in parameters and "discoveryRequests" in parameters:
            agent_input = agent_input.model_copy(
                update={
                    "parameters": {
                        **parameters,
                        "discovery_requests": parameters["discoveryRequests"],
                    }
                }
            )
        return super().validate_input(agent_input)

    def execute(self, agent_input: AgentInput, context: ExecutionContext) -> AgentOutput:
        started_at = time.perf_counter()
        if not self.validate_input(agent_input):
            return AgentOutput(
                success=False,
                error="Invalid input parameters - matter info and discovery requests required",
                execution_time_ms=_duration_ms(started_at),
            )

        deps = ReviewDependencies(
            documents=self.documents,
            classifiers=self.classifiers,
            context=context,
            max_workers=self.max_workers,
            document_char_budget=self.document_char_budget,
        )
        state = initial_state(
            context.task_id,
            matter_id=agent_input.matter_id,
            document_ids=agent_input.documents,
            parameters=agent_input.parameters,
            matter_info=_as_dict(agent_input.context.get("matter_info")),
        )
        try:
            final_state = build_graph(deps).invoke(state)
        except TaskCancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.exception(
                "review event=failed task_id=%s error=%s",
                context.task_id,
                exc,
            )
            return AgentOutput(
                success=False,
                error=str(exc) or exc.__class__.__name__,
                execution_time_ms=_duration_ms(started_at),
            )

        context.report(100, "Review complete")
        config = final_state["config"]
        result = {
            "total_documents": len(final_state["documents"]),
            "privilege_results": {
                "privileged_documents": _dump(final_state["privileged"]),
                "non_privileged_document_ids": final_state["non_privileged_ids"],
                "potential_waivers": _dump(final_state["potential_waivers"]),
            },
            "responsiveness_results": {
                "responsive_documents": _dump(final_state["responsive"]),
                "non_responsive_document_ids": final_state["non_responsive_ids"],
            },
            "hot_document_results": {
                "hot_documents": _dump(final_state["hot_documents"]),
            },
            "privilege_log": final_state["privilege_log"],
            "production_set": final_state["production_set"],
            "review_report": final_state["report"],
            "statistics": final_state["statistics"],
        }
        return AgentOutput(
            success=True,
            result=result,
            metadata={
                "execution_id": context.execution_id,
                "review_type": config.review_type,
                "privileged_count": len(final_state["privileged"]),
                "responsive_count": len(final_state["responsive"]),
                "hot_document_count": len(final_state["hot_documents"]),
            },
            execution_time_ms=_duration_ms(started_at),
        )


def _dump(verdicts: list[Any]) -> list[dict[str, Any]]:
    return [verdict.model_dump(mode="json") for verdict in verdicts]


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _duration_ms(started_at: float) -> float:
    return round((time.perf_counter() - started_at) * 1000.0, 2)
