"""Domain layer: record metadata, capabilities and change tracking."""
