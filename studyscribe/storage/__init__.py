"""
Persistent storage for StudyScribe.

Components:
- KeyValueStore: Async key-value interface (InMemoryStore, JsonFileStore)
- ResultCache: Expiring cache of pipeline results keyed by content fingerprint
  (import from studyscribe.storage.result_cache; it depends on the pipeline
  result types, which in turn depend on this package)
"""

from .key_value_store import InMemoryStore, JsonFileStore, KeyValueStore

__all__ = [
    'KeyValueStore',
    'InMemoryStore',
    'JsonFileStore',
]
