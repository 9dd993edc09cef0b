"""Best-effort operation logging."""
