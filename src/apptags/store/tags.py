"""Tag store: definitions, display order and per-application assignments."""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence, TYPE_CHECKING

from ..errors import ValidationError
from ..utils import generate_id, now_millis, random_color, unique_in_order
from . import codec
from ._common_types import (
    ValidationMode,
    _normalize_color,
    _normalize_id_sequence,
    _normalize_key,
    _normalize_name,
    _reject,
)
from .base import KeyValueStore
from .tags_types import (
    REFRESH_KEY,
    RESERVED_KEYS,
    TAG_DEFINITIONS_KEY,
    TAG_ORDER_KEY,
    TAGS_RELOAD,
    TAGS_UPDATED,
    AppTagAssignments,
    StoredTags,
    TagDefinition,
    TagDefinitions,
    TagOrder,
)

if TYPE_CHECKING:  # pragma: no cover
    from ..signals import Callback, EventBus, Subscription


def reconcile_order(order: Iterable[str], definitions: TagDefinitions) -> TagOrder:
    """Return ``order`` repaired against ``definitions``.

    Stored ids that still have a definition come first, in stored order and
    without duplicates; definition ids missing from ``order`` follow in
    definition order.
    """
    kept = unique_in_order(tag_id for tag_id in order if tag_id in definitions)
    present = set(kept)
    return kept + [tag_id for tag_id in definitions if tag_id not in present]


def resolve_tags(state: StoredTags, key: str) -> list[TagDefinition]:
    """Return the definitions assigned to ``key``, skipping dangling ids."""
    definitions = state["definitions"]
    return [definitions[tag_id] for tag_id in state["assignments"].get(key, []) if tag_id in definitions]


def ordered_definitions(state: StoredTags) -> list[TagDefinition]:
    """Return every definition in display order."""
    definitions = state["definitions"]
    return [definitions[tag_id] for tag_id in state["order"] if tag_id in definitions]


class TagStore:
    """Single source of truth for tags kept in a :class:`KeyValueStore`.

    Every read reconciles the order list with the definitions; every mutation
    writes a new refresh token and publishes ``tagsUpdated`` on the injected
    event bus.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        events: Optional["EventBus"] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._store = store
        self._events = events
        self._owner_logger = logger
        self._last_version = 0

    @property
    def _logger(self) -> logging.Logger:
        return self._owner_logger or logging.getLogger(__name__)

    @property
    def store(self) -> KeyValueStore:
        return self._store

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    async def load(self) -> StoredTags:
        """Read and reconcile all tag records.

        Returns
        -------
        StoredTags
            ``assignments`` (application key to tag ids), ``definitions`` and
            the reconciled ``order``.
        """
        items = await self._store.all_items()
        definitions = codec.decode_definitions(items.get(TAG_DEFINITIONS_KEY))
        order = reconcile_order(codec.decode_order(items.get(TAG_ORDER_KEY)), definitions)

        assignments: AppTagAssignments = {}
        for key, raw in items.items():
            if key in RESERVED_KEYS:
                continue
            tag_ids = codec.decode_assignment(raw)
            if tag_ids is None:
                continue
            assignments[key] = tag_ids

        return StoredTags(assignments=assignments, definitions=definitions, order=order)

    async def get_app_tags(self, key: str) -> list[str]:
        """Return the tag ids assigned to one application key."""
        return codec.decode_tag_ids(await self._store.get_item(key))

    async def refresh_version(self) -> Optional[str]:
        """Return the current refresh token, or ``None`` if nothing was written yet."""
        return await self._store.get_item(REFRESH_KEY)

    async def _definitions_and_order(self) -> tuple[TagDefinitions, TagOrder]:
        definitions = codec.decode_definitions(await self._store.get_item(TAG_DEFINITIONS_KEY))
        order = codec.decode_order(await self._store.get_item(TAG_ORDER_KEY))
        return definitions, reconcile_order(order, definitions)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    async def set_app_tags(
        self,
        key: str,
        tag_ids: Sequence[str],
        *,
        validation: ValidationMode = "strict",
    ) -> list[str] | None:
        """Overwrite the tags assigned to an application.

        Tag ids are not checked against the definitions; unknown ids are
        ignored when tags are resolved for display.

        Parameters
        ----------
        key
            Application key (bundle id, else path).
        tag_ids
            Tag ids in assignment order. An empty sequence keeps an explicit
            empty record.
        validation
            ``"warn"`` logs invalid inputs and returns ``None``; ``"strict"``
            raises :class:`ValidationError`.

        Returns
        -------
        list[str] or None
            The stored ids, or ``None`` when the input was rejected.
        """
        try:
            key = _normalize_key(key)
            normalized = _normalize_id_sequence(tag_ids)
            if normalized is None:
                raise ValidationError(f"Invalid tag ids: {tag_ids!r}")
        except ValidationError as exc:
            _reject("Invalid input for set_app_tags", exc, validation)
            return None

        await self._store.set_item(key, codec.encode(normalized))
        await self._changed()
        return normalized

    async def create_tag(
        self,
        name: str,
        color: Optional[str] = None,
        *,
        validation: ValidationMode = "strict",
    ) -> str | None:
        """Create a tag definition and append it to the display order.

        Parameters
        ----------
        name
            Tag name; surrounding whitespace is stripped and it must not be
            empty.
        color
            ``#RRGGBB`` hex color; a random color when omitted.
        validation
            ``"warn"`` logs invalid inputs and returns ``None``; ``"strict"``
            raises :class:`ValidationError`.

        Returns
        -------
        str or None
            The new tag id, or ``None`` when the input was rejected.
        """
        if color is None:
            color = random_color()
        try:
            name = _normalize_name(name)
            color = _normalize_color(color)
        except ValidationError as exc:
            _reject("Invalid input for create_tag", exc, validation)
            return None

        definitions, order = await self._definitions_and_order()
        tag_id = generate_id()
        while tag_id in definitions:
            tag_id = generate_id()
        definitions[tag_id] = TagDefinition(id=tag_id, name=name, color=color)
        order.append(tag_id)

        # A reader between these writes drops the not-yet-defined id from the order.
        await self._store.set_item(TAG_ORDER_KEY, codec.encode(order))
        await self._store.set_item(TAG_DEFINITIONS_KEY, codec.encode(definitions))
        self._logger.info("Created tag %s (%s)", tag_id, name)
        await self._changed()
        return tag_id

    async def edit_tag(
        self,
        tag_id: str,
        name: str,
        color: str,
        *,
        validation: ValidationMode = "strict",
    ) -> TagDefinition | None:
        """Replace the name and color of an existing tag.

        Editing an id that no longer exists is a silent no-op.

        Returns
        -------
        TagDefinition or None
            The updated definition, or ``None`` when the tag is unknown or the
            input was rejected.
        """
        try:
            name = _normalize_name(name)
            color = _normalize_color(color)
        except ValidationError as exc:
            _reject("Invalid input for edit_tag", exc, validation)
            return None

        definitions = codec.decode_definitions(await self._store.get_item(TAG_DEFINITIONS_KEY))
        if tag_id not in definitions:
            self._logger.debug("Skipping edit of unknown tag %s", tag_id)
            return None

        definition = TagDefinition(id=tag_id, name=name, color=color)
        definitions[tag_id] = definition
        await self._store.set_item(TAG_DEFINITIONS_KEY, codec.encode(definitions))
        await self._changed()
        return definition

    async def delete_tag(self, tag_id: str) -> bool:
        """Delete a tag and remove it from the order and every assignment.

        All writes are computed before any I/O. Assignments and the order are
        written first and the definitions last: a reader in between may see
        the tag still defined with some references already pruned, and once
        the definition is gone no assignment references it.

        Returns
        -------
        bool
            ``False`` when there was nothing to delete.
        """
        items = await self._store.all_items()
        definitions = codec.decode_definitions(items.get(TAG_DEFINITIONS_KEY))
        order = reconcile_order(codec.decode_order(items.get(TAG_ORDER_KEY)), definitions)

        pruned: AppTagAssignments = {}
        for key, raw in items.items():
            if key in RESERVED_KEYS:
                continue
            tag_ids = codec.decode_assignment(raw)
            if tag_ids is not None and tag_id in tag_ids:
                pruned[key] = [other for other in tag_ids if other != tag_id]

        if tag_id not in definitions and not pruned:
            self._logger.debug("Skipping delete of unknown tag %s", tag_id)
            return False

        definitions.pop(tag_id, None)
        order = [other for other in order if other != tag_id]

        for key, tag_ids in pruned.items():
            await self._store.set_item(key, codec.encode(tag_ids))
        await self._store.set_item(TAG_ORDER_KEY, codec.encode(order))
        await self._store.set_item(TAG_DEFINITIONS_KEY, codec.encode(definitions))
        self._logger.info("Deleted tag %s from %d application(s)", tag_id, len(pruned))
        await self._changed()
        return True

    async def reorder_tags(self, order: Sequence[str]) -> TagOrder:
        """Persist a new display order.

        Unknown ids are dropped and definitions missing from ``order`` are
        appended, so the stored order always covers every definition once.
        """
        definitions, _current = await self._definitions_and_order()
        reconciled = reconcile_order(order, definitions)
        await self._store.set_item(TAG_ORDER_KEY, codec.encode(reconciled))
        await self._changed()
        return reconciled

    # ------------------------------------------------------------------
    # Change notification
    # ------------------------------------------------------------------
    def subscribe(self, callback: "Callback") -> "Subscription":
        """Call ``callback`` after every successful mutation."""
        if self._events is None:
            raise RuntimeError("TagStore was created without an event bus")
        return self._events.subscribe(TAGS_UPDATED, callback)

    def request_reload(self) -> None:
        """Ask every view to reload without a mutation (e.g. a manager closed)."""
        if self._events is not None:
            self._events.publish(TAGS_RELOAD)

    async def _changed(self) -> None:
        version = max(now_millis(), self._last_version + 1)
        self._last_version = version
        await self._store.set_item(REFRESH_KEY, str(version))
        if self._events is not None:
            self._events.publish(TAGS_UPDATED)


__all__ = ["TagStore", "ordered_definitions", "reconcile_order", "resolve_tags"]
