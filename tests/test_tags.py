import logging
import sys
import unittest
from pathlib import Path
from unittest.mock import patch

# Ensure src/ is on sys.path so we can import the package without installation
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from apptags.errors import ValidationError  # noqa: E402
from apptags.signals import TAGS_RELOAD, TAGS_UPDATED, EventBus  # noqa: E402
from apptags.store import codec  # noqa: E402
from apptags.store.base import MemoryStore  # noqa: E402
from apptags.store.tags import TagStore, ordered_definitions, reconcile_order, resolve_tags  # noqa: E402
from apptags.store.tags_types import REFRESH_KEY, TAG_DEFINITIONS_KEY, TAG_ORDER_KEY  # noqa: E402


logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stdout,
    force=True,
)


def _definition(tag_id, name="Tag", color="#000000"):
    return {"id": tag_id, "name": name, "color": color}


class RecordingStore(MemoryStore):
    def __init__(self, items=None) -> None:
        super().__init__(items)
        self.writes: list[str] = []

    async def set_item(self, key, value):
        self.writes.append(key)
        await super().set_item(key, value)


class ReconcileOrderTests(unittest.TestCase):
    def test_filters_dedupes_and_appends(self):
        definitions = {"a": _definition("a"), "b": _definition("b"), "c": _definition("c")}
        self.assertEqual(reconcile_order(["c", "x", "c", "a"], definitions), ["c", "a", "b"])

    def test_empty_order(self):
        definitions = {"b": _definition("b"), "a": _definition("a")}
        self.assertEqual(reconcile_order([], definitions), ["b", "a"])

    def test_empty_definitions(self):
        self.assertEqual(reconcile_order(["a", "b"], {}), [])


class ResolveTagsTests(unittest.TestCase):
    def test_dangling_ids_skipped(self):
        state = {
            "assignments": {"app": ["gone", "a"]},
            "definitions": {"a": _definition("a", "Work")},
            "order": ["a"],
        }
        self.assertEqual([d["name"] for d in resolve_tags(state, "app")], ["Work"])
        self.assertEqual(resolve_tags(state, "unknown"), [])

    def test_ordered_definitions(self):
        state = {
            "assignments": {},
            "definitions": {"a": _definition("a"), "b": _definition("b")},
            "order": ["b", "a"],
        }
        self.assertEqual([d["id"] for d in ordered_definitions(state)], ["b", "a"])


class TagStoreTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.store = RecordingStore()
        self.events = EventBus()
        self.tags = TagStore(self.store, events=self.events)
        self.updates: list[str] = []
        self.events.subscribe(TAGS_UPDATED, lambda: self.updates.append(TAGS_UPDATED))

    async def _assert_order_invariant(self):
        state = await self.tags.load()
        self.assertEqual(sorted(state["order"]), sorted(state["definitions"]))
        self.assertEqual(len(state["order"]), len(set(state["order"])))
        stored_order = codec.decode_order(await self.store.get_item(TAG_ORDER_KEY))
        self.assertEqual(stored_order, state["order"])

    async def test_load_empty_store(self):
        state = await self.tags.load()
        self.assertEqual(state, {"assignments": {}, "definitions": {}, "order": []})

    async def test_load_excludes_reserved_and_non_array_entries(self):
        self.store = MemoryStore(
            {
                TAG_DEFINITIONS_KEY: codec.encode({"a": _definition("a")}),
                TAG_ORDER_KEY: codec.encode(["a"]),
                REFRESH_KEY: "1700000000000",
                "com.apple.Safari": codec.encode(["a"]),
                "/Applications/Empty.app": "[]",
                "some-other-setting": "true",
                "broken": "{nope",
            }
        )
        state = await TagStore(self.store).load()
        self.assertEqual(
            state["assignments"],
            {"com.apple.Safari": ["a"], "/Applications/Empty.app": []},
        )

    async def test_load_repairs_order(self):
        self.store = MemoryStore(
            {
                TAG_DEFINITIONS_KEY: codec.encode(
                    {"a": _definition("a"), "b": _definition("b"), "c": _definition("c")}
                ),
                TAG_ORDER_KEY: codec.encode(["c", "ghost", "c"]),
            }
        )
        state = await TagStore(self.store).load()
        self.assertEqual(state["order"], ["c", "a", "b"])

    async def test_load_does_not_write(self):
        self.store = RecordingStore({TAG_ORDER_KEY: codec.encode(["ghost"])})
        await TagStore(self.store).load()
        self.assertEqual(self.store.writes, [])

    async def test_create_tag(self):
        tag_id = await self.tags.create_tag("  Work ", "#FF0000")
        self.assertTrue(tag_id.startswith("tag_"))
        state = await self.tags.load()
        self.assertEqual(state["definitions"][tag_id], {"id": tag_id, "name": "Work", "color": "#FF0000"})
        self.assertEqual(state["order"], [tag_id])
        self.assertEqual(self.updates, [TAGS_UPDATED])
        self.assertIsNotNone(await self.tags.refresh_version())

    async def test_create_tag_validation_gate(self):
        for name, color in (("", "#FFFFFF"), ("   ", "#FFFFFF"), ("x", "red"), ("x", "#FFF")):
            with self.assertRaises(ValidationError):
                await self.tags.create_tag(name, color)
        self.assertEqual(self.store.writes, [])
        self.assertEqual(self.updates, [])
        state = await self.tags.load()
        self.assertEqual(state["definitions"], {})
        self.assertEqual(state["order"], [])

    async def test_create_tag_warn_mode(self):
        with self.assertLogs("apptags.store._common_types", level="WARNING"):
            self.assertIsNone(await self.tags.create_tag("x", "red", validation="warn"))
        self.assertEqual(self.store.writes, [])

    async def test_create_tag_defaults_to_random_color(self):
        with patch("apptags.store.tags.random_color", return_value="#ABCDEF"):
            tag_id = await self.tags.create_tag("Work")
        state = await self.tags.load()
        self.assertEqual(state["definitions"][tag_id]["color"], "#ABCDEF")

    def test_logger_comes_from_owner(self):
        owner = logging.getLogger("apptags.tests.owner")
        self.assertIs(TagStore(self.store, logger=owner)._logger, owner)
        self.assertIs(TagStore(self.store)._logger, logging.getLogger("apptags.store.tags"))

    async def test_create_tag_regenerates_colliding_id(self):
        with patch("apptags.store.tags.generate_id", side_effect=["tag_1", "tag_1", "tag_2"]):
            first = await self.tags.create_tag("A", "#000000")
            second = await self.tags.create_tag("B", "#000000")
        self.assertEqual((first, second), ("tag_1", "tag_2"))

    async def test_order_invariant_over_create_and_delete(self):
        ids = []
        for index in range(4):
            ids.append(await self.tags.create_tag(f"T{index}", "#123456"))
            await self._assert_order_invariant()
        await self.tags.delete_tag(ids[1])
        await self._assert_order_invariant()
        ids.append(await self.tags.create_tag("T4", "#123456"))
        await self._assert_order_invariant()
        await self.tags.delete_tag(ids[0])
        await self.tags.delete_tag(ids[4])
        await self._assert_order_invariant()
        state = await self.tags.load()
        self.assertEqual(state["order"], [ids[2], ids[3]])

    async def test_edit_tag(self):
        tag_id = await self.tags.create_tag("Work", "#FF0000")
        result = await self.tags.edit_tag(tag_id, "Job", "#00ff00")
        self.assertEqual(result, {"id": tag_id, "name": "Job", "color": "#00ff00"})
        state = await self.tags.load()
        self.assertEqual(state["definitions"][tag_id]["name"], "Job")
        self.assertEqual(state["order"], [tag_id])
        self.assertEqual(len(self.updates), 2)

    async def test_edit_unknown_tag_is_silent_noop(self):
        await self.tags.create_tag("Work", "#FF0000")
        writes_before = list(self.store.writes)
        self.assertIsNone(await self.tags.edit_tag("missing", "Job", "#00FF00"))
        self.assertEqual(self.store.writes, writes_before)
        self.assertEqual(len(self.updates), 1)

    async def test_edit_tag_validation(self):
        tag_id = await self.tags.create_tag("Work", "#FF0000")
        with self.assertRaises(ValidationError):
            await self.tags.edit_tag(tag_id, "Work", "blue")
        state = await self.tags.load()
        self.assertEqual(state["definitions"][tag_id]["color"], "#FF0000")

    async def test_deletion_cascade(self):
        tag_id = await self.tags.create_tag("Work", "#FF0000")
        other = await self.tags.create_tag("Home", "#0000FF")
        await self.tags.set_app_tags("com.example.a", [tag_id, other])
        await self.tags.set_app_tags("com.example.b", [other])

        self.assertTrue(await self.tags.delete_tag(tag_id))

        self.assertEqual(await self.tags.get_app_tags("com.example.a"), [other])
        state = await self.tags.load()
        self.assertNotIn(tag_id, state["definitions"])
        self.assertNotIn(tag_id, state["order"])
        self.assertEqual(state["assignments"]["com.example.b"], [other])

    async def test_deletion_cascade_single_tag(self):
        tag_id = await self.tags.create_tag("Work", "#FF0000")
        await self.tags.set_app_tags("A", [tag_id])
        await self.tags.delete_tag(tag_id)
        self.assertEqual(await self.tags.get_app_tags("A"), [])
        self.assertEqual((await self.tags.load())["assignments"]["A"], [])

    async def test_delete_writes_definitions_last_and_only_touched_apps(self):
        tag_id = await self.tags.create_tag("Work", "#FF0000")
        await self.tags.set_app_tags("uses", [tag_id])
        await self.tags.set_app_tags("other", [])
        self.store.writes.clear()

        await self.tags.delete_tag(tag_id)

        self.assertEqual(self.store.writes, ["uses", TAG_ORDER_KEY, TAG_DEFINITIONS_KEY, REFRESH_KEY])

    async def test_delete_unknown_tag(self):
        self.assertFalse(await self.tags.delete_tag("missing"))
        self.assertEqual(self.store.writes, [])
        self.assertEqual(self.updates, [])

    async def test_delete_prunes_dangling_references(self):
        await self.tags.set_app_tags("A", ["ghost", "kept"])
        self.assertTrue(await self.tags.delete_tag("ghost"))
        self.assertEqual(await self.tags.get_app_tags("A"), ["kept"])

    async def test_set_app_tags_overwrites_without_validation_of_ids(self):
        result = await self.tags.set_app_tags("A", ["unknown", "unknown", "other"])
        self.assertEqual(result, ["unknown", "other"])
        self.assertEqual(await self.tags.get_app_tags("A"), ["unknown", "other"])
        await self.tags.set_app_tags("A", [])
        self.assertEqual(await self.store.get_item("A"), "[]")
        self.assertEqual(len(self.updates), 2)

    async def test_set_app_tags_rejects_bad_input(self):
        with self.assertRaises(ValidationError):
            await self.tags.set_app_tags("", ["a"])
        with self.assertRaises(ValidationError):
            await self.tags.set_app_tags("A", "a")
        self.assertIsNone(await self.tags.set_app_tags("", ["a"], validation="warn"))
        self.assertEqual(self.store.writes, [])

    async def test_set_app_tags_rejects_reserved_keys(self):
        tag_id = await self.tags.create_tag("Work", "#FF0000")
        self.store.writes.clear()
        for reserved in (TAG_DEFINITIONS_KEY, TAG_ORDER_KEY, REFRESH_KEY):
            with self.assertRaises(ValidationError):
                await self.tags.set_app_tags(reserved, [])
            with self.assertLogs("apptags.store._common_types", level="WARNING"):
                self.assertIsNone(await self.tags.set_app_tags(reserved, [], validation="warn"))
        self.assertEqual(self.store.writes, [])
        state = await self.tags.load()
        self.assertIn(tag_id, state["definitions"])
        self.assertEqual(state["order"], [tag_id])

    async def test_reorder_tags(self):
        a = await self.tags.create_tag("A", "#000000")
        b = await self.tags.create_tag("B", "#000000")
        c = await self.tags.create_tag("C", "#000000")
        self.assertEqual(await self.tags.reorder_tags([c, "ghost", a]), [c, a, b])
        self.assertEqual((await self.tags.load())["order"], [c, a, b])

    async def test_refresh_version_strictly_increases(self):
        versions = []
        with patch("apptags.store.tags.now_millis", return_value=1000):
            for _ in range(3):
                await self.tags.set_app_tags("A", [])
                versions.append(int(await self.tags.refresh_version()))
        self.assertEqual(versions, [1000, 1001, 1002])

    async def test_subscribe_and_request_reload(self):
        calls = []
        subscription = self.tags.subscribe(lambda: calls.append("updated"))
        self.events.subscribe(TAGS_RELOAD, lambda: calls.append("reload"))
        await self.tags.set_app_tags("A", [])
        self.tags.request_reload()
        subscription.cancel()
        await self.tags.set_app_tags("A", [])
        self.assertEqual(calls, ["updated", "reload"])

    async def test_without_event_bus(self):
        tags = TagStore(MemoryStore())
        await tags.create_tag("Work", "#FF0000")
        tags.request_reload()
        with self.assertRaises(RuntimeError):
            tags.subscribe(lambda: None)
