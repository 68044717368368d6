"""Adapters connecting BugBoard agents to external services."""
