"""Read-only access to delivery tasks."""
