"""Record store implementations.

Concrete implementations of `signal_engine.persistence.RecordStore`:
in-memory (tests, single process) and SQLAlchemy (SQLite / PostgreSQL).
"""

from .memory import InMemoryRecordStore
from .sql import SqlRecordStore

__all__ = ["InMemoryRecordStore", "SqlRecordStore"]
