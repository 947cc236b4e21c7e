"""
Persistence for settings and conversation logs.
"""
from .kv_store import KeyValueStore, SqlKeyValueStore, InMemoryKeyValueStore

__all__ = ['KeyValueStore', 'SqlKeyValueStore', 'InMemoryKeyValueStore']
