"""Inbound interfaces of the orchestrator."""
