"""HTTP API for the orchestration system."""
