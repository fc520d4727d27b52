"""Output adapters for presenting snapshots (stdout text and JSON)."""
