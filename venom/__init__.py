"""Data model, executor lookup and result writers for declarative integration tests."""

__version__ = "0.1.0"

__all__ = ["core", "executor", "output", "types"]