"""Wire storage, classifiers, agents and the task runner from settings."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from discovery_orchestrator.agents.registry import AgentDependencies, AgentRegistry
from discovery_orchestrator.config.settings import Settings
from discovery_orchestrator.review.classifiers import ClassifierResolution, resolve_classifiers
from discovery_orchestrator.storage.base import DocumentStore, TaskStorage
from discovery_orchestrator.storage.memory import InMemoryDocumentStore
from discovery_orchestrator.storage.postgres import PostgresDocumentStore, PostgresTaskStorage
from discovery_orchestrator.tasks.manager import TaskManager
from discovery_orchestrator.tasks.runner import TaskRunner

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Runtime:
    settings: Settings
    storage: TaskStorage
    documents: DocumentStore
    classifiers: ClassifierResolution
    manager: TaskManager
    registry: AgentRegistry
    runner: TaskRunner


def build_runtime(
    settings: Settings,
    *,
    storage: TaskStorage | None = None,
    documents: DocumentStore | None = None,
) -> Runtime:
    database_url = settings.resolved_database_url()
    if storage is None:
        if not database_url:
            raise RuntimeError(
                "Missing database URL. Set DISCOVERY_ORCHESTRATOR_DATABASE_URL "
                "or DATABASE_URL before starting."
            )
        storage = PostgresTaskStorage(database_url)
        storage.migrate()
    if documents is None:
        documents = (
            PostgresDocumentStore(database_url) if database_url else InMemoryDocumentStore()
        )

    classifiers = resolve_classifiers(settings)
    if classifiers.fallback_reason:
        logger.warning(
            "runtime event=classifier_fallback requested=%s effective=%s reason=%s",
            classifiers.requested_mode,
            classifiers.effective_mode,
            classifiers.fallback_reason,
        )

    manager = TaskManager(storage, heartbeat_stale_after_s=settings.heartbeat_stale_after_s)
    registry = AgentRegistry(
        AgentDependencies(
            documents=documents,
            classifiers=classifiers.classifiers,
            settings=settings,
        )
    )
    return Runtime(
        settings=settings,
        storage=storage,
        documents=documents,
        classifiers=classifiers,
        manager=manager,
        registry=registry,
        runner=TaskRunner(manager, registry, documents),
    )
