"""Execution layer: retry strategies and the task lifecycle runtime."""
