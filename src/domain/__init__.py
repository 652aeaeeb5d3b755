"""Domain models and pure helpers for the fx tracker.

Samples and history series are plain frozen dataclasses; view-facing models
and per-stream snapshots are frozen Pydantic models. Nothing in this package
performs I/O.
"""

__all__ = [
    "conversion",
    "history",
    "models",
    "outcome",
    "snapshots",
]
