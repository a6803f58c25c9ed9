"""Sub-agents spawned by new_task."""
