"""Root launcher object owning the store, event bus and tag store."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from .apps import Application, ApplicationProvider, get_applications, open_application, sort_applications
from .search import DEFAULT_THRESHOLD
from .signals import ChangeCallback, EventBus, RefreshPoller
from .store.base import JsonFileStore, KeyValueStore
from .store.tags import TagStore
from .views import LauncherView, TagManagerView

DEFAULT_STORE_PATH = os.environ.get("APPTAGS_STORE_PATH", str(Path.home() / ".apptags" / "store.json"))
PAGE_SIZE = int(os.environ.get("APPTAGS_PAGE_SIZE", "15"))
POLL_INTERVAL = float(os.environ.get("APPTAGS_POLL_INTERVAL", "0.8"))
LOOKAHEAD = 5


class Launcher:
    """Everything one launcher session needs, created once per command.

    Views receive the launcher at construction and reach the store, the event
    bus and the tag store through it; nothing is process-global.
    """

    store: KeyValueStore
    events: EventBus
    tags: TagStore

    def __init__(
        self,
        *,
        store: Optional[KeyValueStore] = None,
        store_path: Optional[Path | str] = None,
        provider: Optional[ApplicationProvider] = None,
        page_size: Optional[int] = None,
        poll_interval: Optional[float] = None,
        threshold: float = DEFAULT_THRESHOLD,
    ) -> None:
        """Create a launcher session.

        Parameters
        ----------
        store
            Key-value store to use. Defaults to a :class:`JsonFileStore`.
        store_path
            File for the default store; falls back to ``APPTAGS_STORE_PATH``.
        provider
            Async callable returning installed applications.
        page_size
            Results shown per page in the launcher list.
        poll_interval
            Seconds between refresh-token polls in the launcher list.
        threshold
            Fuzzy search threshold (0 = exact only).
        """
        self._logger = logging.getLogger(__name__)
        if store is None:
            store = JsonFileStore(store_path or DEFAULT_STORE_PATH)
        self.store = store
        self.events = EventBus(self._logger)
        self.tags = TagStore(self.store, events=self.events, logger=self._logger)
        self._provider = provider or get_applications
        self.page_size = int(page_size or PAGE_SIZE)
        self.poll_interval = float(poll_interval or POLL_INTERVAL)
        self.lookahead = LOOKAHEAD
        self.threshold = threshold

    async def get_applications(self) -> list[Application]:
        """Installed applications, deduplicated by path and sorted by name."""
        return sort_applications(await self._provider())

    async def open_application(self, app: Application) -> None:
        """Launch an application listed by :meth:`get_applications`."""
        self._logger.info("Opening %s (%s)", app["name"], app["path"])
        await open_application(app)

    def poller(self, on_change: ChangeCallback, *, interval: Optional[float] = None) -> RefreshPoller:
        return RefreshPoller(self.store, on_change, interval=interval or self.poll_interval)

    def browse(self) -> LauncherView:
        return LauncherView(self)

    def manage_tags(self) -> TagManagerView:
        return TagManagerView(self)
