"""Public package surface for apptags."""

from .apps import Application, app_key, get_applications
from .errors import ValidationError
from .launcher import DEFAULT_STORE_PATH, Launcher
from .search import Pagination, SearchIndex
from .signals import TAGS_RELOAD, TAGS_UPDATED, EventBus, RefreshPoller
from .store import JsonFileStore, MemoryStore, StoredTags, TagDefinition, TagStore

__all__ = [
    "Application",
    "DEFAULT_STORE_PATH",
    "EventBus",
    "JsonFileStore",
    "Launcher",
    "MemoryStore",
    "Pagination",
    "RefreshPoller",
    "SearchIndex",
    "StoredTags",
    "TAGS_RELOAD",
    "TAGS_UPDATED",
    "TagDefinition",
    "TagStore",
    "ValidationError",
    "app_key",
    "get_applications",
]
