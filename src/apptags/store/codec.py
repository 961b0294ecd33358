"""JSON codec for the records kept in the key-value store.

Decoders never raise: missing input, malformed JSON and values of the wrong
shape all decode to the record's empty default.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from .tags_types import TagDefinition, TagDefinitions, TagOrder

_logger = logging.getLogger(__name__)

_MISSING = object()


def _parse(raw: Optional[str]) -> Any:
    if raw is None:
        return _MISSING
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as exc:
        _logger.debug("Ignoring malformed stored value %r: %s", raw, exc)
        return _MISSING


def _string_list(value: Any) -> list[str] | None:
    if not isinstance(value, list):
        return None
    return [item for item in value if isinstance(item, str)]


def decode_assignment(raw: Optional[str]) -> list[str] | None:
    """Decode one application's tag-id list.

    Returns ``None`` when the value is missing, malformed or not an array so
    callers can tell "not an assignment record" from an explicit empty list.
    """
    return _string_list(_parse(raw))


def decode_tag_ids(raw: Optional[str]) -> list[str]:
    """Decode a tag-id list, defaulting to ``[]``."""
    return decode_assignment(raw) or []


def decode_order(raw: Optional[str]) -> TagOrder:
    """Decode the stored tag order, defaulting to ``[]``."""
    return _string_list(_parse(raw)) or []


def decode_definitions(raw: Optional[str]) -> TagDefinitions:
    """Decode the tag definitions map, defaulting to ``{}``.

    Entries that are not objects with string ``name`` and ``color`` are
    dropped; each surviving entry's ``id`` is forced to its key.
    """
    value = _parse(raw)
    if not isinstance(value, dict):
        return {}
    definitions: TagDefinitions = {}
    for tag_id, entry in value.items():
        if not isinstance(entry, dict):
            continue
        name = entry.get("name")
        color = entry.get("color")
        if not isinstance(name, str) or not isinstance(color, str):
            _logger.debug("Dropping malformed tag definition %r", tag_id)
            continue
        definitions[tag_id] = TagDefinition(id=tag_id, name=name, color=color)
    return definitions


def encode(value: Any) -> str:
    """Serialize a record for storage."""
    return json.dumps(value, separators=(",", ":"))


__all__ = [
    "decode_assignment",
    "decode_definitions",
    "decode_order",
    "decode_tag_ids",
    "encode",
]
