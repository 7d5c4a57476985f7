"""Domain layer: models, services and shared error types."""
