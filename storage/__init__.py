"""Job store implementations."""

from storage.base import JobStore, StoreConstraintError, StoreError
from storage.memory import MemoryJobStore
from storage.sql import SqlJobStore

__all__ = [
    "JobStore",
    "MemoryJobStore",
    "SqlJobStore",
    "StoreConstraintError",
    "StoreError",
]
