"""HTTP surface for task creation, execution and polling."""
