"""
Runners layer - Execution engines for multi-file tools.

Runners apply one action to many items, one at a time, and collect a
per-item outcome. Progress is reported through callbacks so the runner
stays independent of the console.
"""

from .base import BatchCallbacks, BatchResult, ItemOutcome
from .sequential import SequentialBatch

__all__ = [
    "BatchCallbacks",
    "BatchResult",
    "ItemOutcome",
    "SequentialBatch",
]
