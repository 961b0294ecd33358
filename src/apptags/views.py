"""View models for the launcher list and the tag manager.

A host UI renders these: it reads the exposed state, forwards user actions to
the methods and re-renders after :meth:`View.reload`. Views subscribe to the
launcher's event bus when mounted and must be unmounted when they go away.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Optional, Sequence

from .apps import Application, app_key
from .search import Pagination, SearchIndex
from .signals import TAGS_RELOAD, TAGS_UPDATED, RefreshPoller, Subscription
from .store.tags import ordered_definitions, resolve_tags
from .store.tags_types import StoredTags, TagDefinition

if TYPE_CHECKING:  # pragma: no cover
    from .launcher import Launcher


def _empty_state() -> StoredTags:
    return StoredTags(assignments={}, definitions={}, order=[])


class View:
    """Shared mount/unmount and reload scheduling."""

    poll_interval: float = 1.0

    def __init__(self, launcher: "Launcher") -> None:
        self._launcher = launcher
        self._subscriptions: list[Subscription] = []
        self._pending: set[asyncio.Task[None]] = set()
        self._poller: Optional[RefreshPoller] = None
        self.state: StoredTags = _empty_state()
        self.mounted = False

    @property
    def _logger(self):
        return self._launcher._logger

    @property
    def tags(self):
        return self._launcher.tags

    async def reload(self) -> None:
        self.state = await self.tags.load()

    async def mount(self) -> None:
        await self.reload()
        if self.mounted:
            return
        self.mounted = True
        for event in (TAGS_UPDATED, TAGS_RELOAD):
            self._subscriptions.append(self._launcher.events.subscribe(event, self._schedule_reload))

    async def unmount(self) -> None:
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions.clear()
        self.mounted = False
        if self._poller is not None:
            await self._poller.stop()
            self._poller = None
        pending = list(self._pending)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    def _schedule_reload(self) -> None:
        if not self.mounted:
            return
        task = asyncio.get_running_loop().create_task(self.reload())
        self._pending.add(task)
        task.add_done_callback(self._reload_done)

    def _reload_done(self, task: "asyncio.Task[None]") -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            self._logger.error("View reload failed: %s", task.exception())

    async def flush(self) -> None:
        """Wait for reloads triggered by change events."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def __aenter__(self):
        await self.mount()
        self._poller = self._launcher.poller(self.reload, interval=self.poll_interval)
        await self._poller.start()
        return self

    async def __aexit__(self, *_exc) -> None:
        await self.unmount()


class LauncherView(View):
    """Browse list: search, paging, tag accessories and tag actions."""

    def __init__(self, launcher: "Launcher") -> None:
        super().__init__(launcher)
        self.poll_interval = launcher.poll_interval
        self.index = SearchIndex([], threshold=launcher.threshold)
        self.search_text = ""
        self.results: list[Application] = []
        self.pagination = Pagination(launcher.page_size, lookahead=launcher.lookahead)
        self.is_loading = True

    async def mount(self) -> None:
        # Tags first so a host can render cached tags while apps are scanned.
        await super().mount()
        await self.load_applications()

    async def load_applications(self) -> None:
        apps = await self._launcher.get_applications()
        self.index = SearchIndex(apps, threshold=self._launcher.threshold)
        self.is_loading = False
        self._refilter(reset=False)

    async def reload(self) -> None:
        await super().reload()
        self._refilter(reset=False)

    def _refilter(self, *, reset: bool) -> None:
        self.results = self.index.search(self.search_text, self.state)
        if reset:
            self.pagination.reset(len(self.results))
        else:
            self.pagination.resize(len(self.results))

    def set_search_text(self, text: str) -> None:
        self.search_text = text
        self._refilter(reset=True)

    @property
    def visible_apps(self) -> list[Application]:
        return self.pagination.visible(self.results)

    def on_selection_change(self, path: Optional[str]) -> bool:
        """Grow the visible window when the selection nears its end."""
        if not path:
            return False
        for index, app in enumerate(self.visible_apps):
            if app["path"] == path:
                return self.pagination.select(index)
        return False

    async def open_app(self, app: Application) -> None:
        await self._launcher.open_application(app)

    def accessories(self, app: Application) -> list[TagDefinition]:
        """Tags to show next to ``app``, in assignment order."""
        return resolve_tags(self.state, app_key(app))

    async def save_tags(self, app: Application, tag_ids: Sequence[str]) -> list[str] | None:
        return await self.tags.set_app_tags(app_key(app), tag_ids)

    async def create_tag(self, name: str, color: Optional[str] = None) -> str | None:
        return await self.tags.create_tag(name, color)

    async def edit_tag(self, tag_id: str, name: str, color: str) -> TagDefinition | None:
        return await self.tags.edit_tag(tag_id, name, color)

    async def delete_tag(self, tag_id: str) -> bool:
        return await self.tags.delete_tag(tag_id)


class TagManagerView(View):
    """Tag manager list: ordered definitions with create/edit/delete/move."""

    poll_interval = 1.0

    @property
    def definitions(self) -> list[TagDefinition]:
        return ordered_definitions(self.state)

    async def create_tag(self, name: str, color: Optional[str] = None) -> str | None:
        return await self.tags.create_tag(name, color)

    async def edit_tag(self, tag_id: str, name: str, color: str) -> TagDefinition | None:
        return await self.tags.edit_tag(tag_id, name, color)

    async def delete_tag(self, tag_id: str) -> bool:
        return await self.tags.delete_tag(tag_id)

    async def move_tag(self, tag_id: str, offset: int) -> list[str]:
        """Move a tag ``offset`` places in the display order (clamped)."""
        order = list(self.state["order"])
        if tag_id not in order:
            return order
        current = order.index(tag_id)
        order.pop(current)
        target = max(0, min(len(order), current + offset))
        order.insert(target, tag_id)
        return await self.tags.reorder_tags(order)

    async def close(self) -> None:
        """Leave the manager and ask the other views to reload."""
        await self.unmount()
        self.tags.request_reload()

    async def __aexit__(self, *_exc) -> None:
        await self.close()


__all__ = ["LauncherView", "TagManagerView", "View"]
