"""Conversation governance: intent routing for inbound learner messages."""
