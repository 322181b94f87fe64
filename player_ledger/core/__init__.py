"""Infrastructure layer: configuration, logging, persistence and events."""
