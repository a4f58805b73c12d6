# Area: Sync
"""
traitor_sync._sync.notifier — Fire-and-forget listener calls
============================================================

Calls SessionListener methods without letting the presentation layer
block or break the engine.
"""

import asyncio
import inspect
import logging
from typing import Any, Optional, Set

from ..callbacks import SessionListener

logger = logging.getLogger("traitor_sync.sync.notifier")


class ListenerNotifier:
    """Dispatches callbacks to an optional listener."""

    def __init__(self, listener: Optional[SessionListener] = None):
        self.listener = listener
        self._tasks: Set[asyncio.Task] = set()

    def emit(self, callback_name: str, *args: Any) -> None:
        if self.listener is None:
            return
        callback = getattr(self.listener, callback_name, None)
        if callback is None:
            return
        try:
            result = callback(*args)
        except Exception as e:
            logger.error(f"Listener {callback_name} failed: {e}")
            return
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(lambda t: self._finished(callback_name, t))

    def _finished(self, callback_name: str, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Listener {callback_name} failed: {error}")
