"""Framework services used across the agent (structured logging)."""
