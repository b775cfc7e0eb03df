"""Persisted, bounded log of past analyses."""

from auditscore.history.storage import JsonFileStorage, MemoryStorage, StoragePort
from auditscore.history.store import HistoryStore

__all__ = ["HistoryStore", "JsonFileStorage", "MemoryStorage", "StoragePort"]
