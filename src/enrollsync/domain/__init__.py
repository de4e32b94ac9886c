"""Domain layer: membership model, conflict detection and consistency services."""
