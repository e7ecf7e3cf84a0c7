"""Core configuration, domain models, model invocation and workflows."""
