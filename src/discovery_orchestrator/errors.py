"""Exception types shared by the lifecycle manager, agents and classifiers."""

from __future__ import annotations


class TaskNotFoundError(KeyError):
    """Raised when a task id does not exist in storage."""

    def __init__(self, task_id: str) -> None:
        super().__init__(task_id)
        self.task_id = task_id

    def __str__(self) -> str:
        return f"Task {self.task_id} does not exist"


class InvalidTransitionError(ValueError):
    """Raised when a status write is not allowed from the current status."""

    def __init__(self, task_id: str, current: str, requested: str) -> None:
        super().__init__(f"Task {task_id} cannot move from '{current}' to '{requested}'")
        self.task_id = task_id
        self.current = current
        self.requested = requested


class TaskCancelledError(RuntimeError):
    """Raised at a cancellation checkpoint inside a running agent."""


class UnknownAgentError(LookupError):
    """Raised when no agent is registered for an agent type tag."""


class ModelGatewayError(RuntimeError):
    """Raised by chat model clients when a completion cannot be obtained."""
