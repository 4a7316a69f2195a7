"""Clinical message orchestration: intent routing, entity extraction and tool selection."""

__version__ = "1.0.0"
