"""Order lifecycle: status rules, guards, persistence and orchestration."""
