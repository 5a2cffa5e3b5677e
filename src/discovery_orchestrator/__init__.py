"""Agent task execution engine with a discovery-review pipeline."""

__version__ = "0.1.0"
