"""Record types kept in the key-value store.

Three logical records share one flat key space: the tag definitions map, the
tag order list and one assignment list per application key. ``refreshVersion``
holds the change token polled by other processes.
"""

from __future__ import annotations

from typing import TypedDict

from typing_extensions import ReadOnly

TAG_DEFINITIONS_KEY = "tagdefinitions"
TAG_ORDER_KEY = "tagorder"
REFRESH_KEY = "refreshVersion"
RESERVED_KEYS = frozenset({TAG_DEFINITIONS_KEY, TAG_ORDER_KEY, REFRESH_KEY})

# Event names published on the in-process bus.
TAGS_UPDATED = "tagsUpdated"
TAGS_RELOAD = "tagsReload"


class TagDefinition(TypedDict):
    """Readonly tag definition: a named, colored label."""
    id: ReadOnly[str]
    name: ReadOnly[str]
    color: ReadOnly[str]


TagDefinitions = dict[str, TagDefinition]
TagOrder = list[str]
AppTagAssignments = dict[str, list[str]]


class StoredTags(TypedDict):
    """Result of :meth:`TagStore.load`."""
    assignments: AppTagAssignments
    definitions: TagDefinitions
    order: TagOrder


__all__ = [
    "AppTagAssignments",
    "REFRESH_KEY",
    "RESERVED_KEYS",
    "StoredTags",
    "TAG_DEFINITIONS_KEY",
    "TAG_ORDER_KEY",
    "TAGS_RELOAD",
    "TAGS_UPDATED",
    "TagDefinition",
    "TagDefinitions",
    "TagOrder",
]
