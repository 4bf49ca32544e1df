"""Command-line tools for TaskDesk."""
