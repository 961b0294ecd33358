"""Change notification between views.

Two channels are provided:

- :class:`EventBus` delivers events synchronously to subscribers in the same
  process. One bus is created per :class:`~apptags.launcher.Launcher` and
  handed to everything that needs it.
- :class:`RefreshPoller` watches the ``refreshVersion`` token in the store so
  a view also notices changes written by another process.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

from .store.base import KeyValueStore
from .store.tags_types import REFRESH_KEY, TAGS_RELOAD, TAGS_UPDATED

DEFAULT_POLL_INTERVAL = 0.8

Callback = Callable[..., Any]
ChangeCallback = Callable[[], Union[None, Awaitable[None]]]

_logger = logging.getLogger(__name__)


class Subscription:
    """Handle returned by :meth:`EventBus.subscribe`.

    Call :meth:`cancel` (or use the handle as a context manager) when the view
    that subscribed goes away. Cancelling twice is harmless.
    """

    def __init__(self, bus: "EventBus", event: str, callback: Callback) -> None:
        self._bus = bus
        self.event = event
        self.callback = callback
        self.active = True

    def cancel(self) -> None:
        if not self.active:
            return
        self.active = False
        self._bus._remove(self)

    def __call__(self) -> None:
        self.cancel()

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *_exc) -> None:
        self.cancel()


class EventBus:
    """Synchronous in-process publish/subscribe channel."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._subscribers: dict[str, list[Subscription]] = {}
        self._logger = logger or _logger

    def subscribe(self, event: str, callback: Callback) -> Subscription:
        subscription = Subscription(self, event, callback)
        self._subscribers.setdefault(event, []).append(subscription)
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        subscribers = self._subscribers.get(subscription.event, [])
        if subscription in subscribers:
            subscribers.remove(subscription)

    def subscriber_count(self, event: str) -> int:
        return len(self._subscribers.get(event, []))

    def publish(self, event: str, *args: Any) -> int:
        """Call every subscriber of ``event`` in subscription order.

        A subscriber that raises is logged and skipped; the rest still run.

        Returns
        -------
        int
            Number of subscribers that were called.
        """
        delivered = 0
        for subscription in list(self._subscribers.get(event, [])):
            if not subscription.active:
                continue
            delivered += 1
            try:
                subscription.callback(*args)
            except Exception:  # noqa: BLE001 - one bad view must not starve the others
                self._logger.exception("Subscriber for %s failed", event)
        return delivered


class RefreshPoller:
    """Poll the store's refresh token and report changes.

    Use as an async context manager: entering records the current token and
    starts the background task, leaving cancels it.

    Parameters
    ----------
    store
        Store holding the ``refreshVersion`` key.
    on_change
        Called (and awaited when it returns an awaitable) whenever the token
        differs from the last one seen.
    interval
        Seconds between polls.
    """

    def __init__(
        self,
        store: KeyValueStore,
        on_change: ChangeCallback,
        *,
        interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"Invalid poll interval: {interval}")
        self._store = store
        self._on_change = on_change
        self.interval = interval
        self.last_seen: Optional[str] = None
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def poll_once(self) -> bool:
        """Check the token once; return True when ``on_change`` was called."""
        token = await self._store.get_item(REFRESH_KEY)
        if token == self.last_seen:
            return False
        self.last_seen = token
        result = self._on_change()
        if inspect.isawaitable(result):
            await result
        return True

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.poll_once()
            except Exception:  # noqa: BLE001 - keep polling after a failed reload
                _logger.exception("Refresh poll failed")

    async def start(self) -> None:
        if self.running:
            return
        self.last_seen = await self._store.get_item(REFRESH_KEY)
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def __aenter__(self) -> "RefreshPoller":
        await self.start()
        return self

    async def __aexit__(self, *_exc) -> None:
        await self.stop()


__all__ = [
    "DEFAULT_POLL_INTERVAL",
    "EventBus",
    "RefreshPoller",
    "Subscription",
    "TAGS_RELOAD",
    "TAGS_UPDATED",
]
