"""Store module exports."""

from .base import JsonFileStore, KeyValueStore, MemoryStore
from .tags import TagStore, ordered_definitions, reconcile_order, resolve_tags
from .tags_types import StoredTags, TagDefinition

__all__ = [
    "JsonFileStore",
    "KeyValueStore",
    "MemoryStore",
    "StoredTags",
    "TagDefinition",
    "TagStore",
    "ordered_definitions",
    "reconcile_order",
    "resolve_tags",
]
