"""Storage backends for property records.

Two interchangeable implementations of ``PropertyStore``: a Postgres store
for durable persistence and an in-memory store for running without a
database.
"""

from .base import PropertyStore
from .memory import MemoryPropertyStore
from .postgres import PostgresPropertyStore

__all__ = ["PropertyStore", "MemoryPropertyStore", "PostgresPropertyStore"]
