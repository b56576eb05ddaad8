from buddy_match.store.kv_store import KeyValueStore, SqliteKVStore
from buddy_match.store.pruning import prune_store

__all__ = [
    "KeyValueStore",
    "SqliteKVStore",
    "prune_store",
]
