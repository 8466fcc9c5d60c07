"""Durable storage for direct messages.

The store owns persisted ``Message`` records and exposes point lookups,
predicate lookups, inserts, in-place updates and deletes. All primitives run
inside a ``StoreSession`` that maps to a single database transaction.
"""

from .sqlite import SQLiteMessageStore, StoreSession

__all__ = ["SQLiteMessageStore", "StoreSession"]
