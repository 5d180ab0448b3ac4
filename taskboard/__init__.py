"""Taskboard: personal task management API and client."""

__version__ = "1.0.0"
