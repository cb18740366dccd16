"""Core storage engine: models, configuration, sync and note services."""
