"""Sync engine for buildsync - pull and push of build data."""

from .engine import SyncEngine
from .operations import SyncOperations
from .parallel import ParallelRun

__all__ = [
    "SyncEngine",
    "SyncOperations",
    "ParallelRun",
]
