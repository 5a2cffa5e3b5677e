"""Storage backends and models."""

from discovery_orchestrator.storage.base import DocumentStore, TaskStorage
from discovery_orchestrator.storage.memory import InMemoryDocumentStore, InMemoryTaskStorage
from discovery_orchestrator.storage.models import (
    DocumentRecord,
    ExecutionRecord,
    MatterRecord,
    TaskInput,
    TaskRecord,
)
from discovery_orchestrator.storage.postgres import PostgresDocumentStore, PostgresTaskStorage

__all__ = [
    "DocumentRecord",
    "DocumentStore",
    "ExecutionRecord",
    "InMemoryDocumentStore",
    "InMemoryTaskStorage",
    "MatterRecord",
    "PostgresDocumentStore",
    "PostgresTaskStorage",
    "TaskInput",
    "TaskRecord",
    "TaskStorage",
]
