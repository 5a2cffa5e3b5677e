"""Task lifecycle management and execution."""

from discovery_orchestrator.tasks.manager import TaskManager, generate_task_name
from discovery_orchestrator.tasks.runner import TaskRunner

__all__ = ["TaskManager", "TaskRunner", "generate_task_name"]
