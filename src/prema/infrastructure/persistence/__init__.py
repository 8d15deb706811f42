"""Infrastructure persistence layer."""

from .database import Database
from .key_value_store import InMemoryKeyValueStore, SqlKeyValueStore
from .models import Base, KeyValueModel

__all__ = [
    "Base",
    "Database",
    "InMemoryKeyValueStore",
    "KeyValueModel",
    "SqlKeyValueStore",
]
