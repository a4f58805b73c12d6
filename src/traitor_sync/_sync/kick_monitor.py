# Area: Sync
"""
traitor_sync._sync.kick_monitor — Removal detection
===================================================

Non-host clients poll the store for their own player row. After a
grace delay following the join, the check runs on a fixed interval;
a missing row means the host removed this client, unless the client
is itself leaving. The host never runs this check.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from ..errors import SessionNotFoundError, TransientStoreError
from .._store.interfaces import SessionStore

logger = logging.getLogger("traitor_sync.sync.kick_monitor")


class KickMonitor:
    """
    Periodic existence check for one player row.

    Args:
        store: Session store
        session_id: Session to check
        current_name: Returns the name to check (follows renames), or None to stop
        is_exiting: Returns True while the client leaves voluntarily
        on_missing: Awaited once when the row is gone
        interval_seconds: Delay between checks
        grace_seconds: Delay before the first check
    """

    def __init__(
        self,
        store: SessionStore,
        session_id: str,
        current_name: Callable[[], Optional[str]],
        is_exiting: Callable[[], bool],
        on_missing: Callable[[], Awaitable[None]],
        interval_seconds: float = 2.0,
        grace_seconds: float = 3.0,
    ):
        self.store = store
        self.session_id = session_id
        self.current_name = current_name
        self.is_exiting = is_exiting
        self.on_missing = on_missing
        self.interval_seconds = interval_seconds
        self.grace_seconds = grace_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start checking; must be called from a running event loop."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.debug(f"Kick monitor started for session {self.session_id}")

    def stop(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        # on_missing runs inside the task; it must not cancel itself
        if task is not current:
            task.cancel()
            logger.debug(f"Kick monitor stopped for session {self.session_id}")

    async def _player_exists(self, name: str) -> Optional[bool]:
        """True/False, or None when the check itself failed."""
        try:
            return await self.store.fetch_player(self.session_id, name) is not None
        except SessionNotFoundError:
            return False
        except TransientStoreError as e:
            logger.warning(f"Existence check failed, retrying next interval: {e}")
            return None

    async def _run(self) -> None:
        try:
            await asyncio.sleep(self.grace_seconds)
            while True:
                name = self.current_name()
                if name is None:
                    return
                exists = await self._player_exists(name)
                if exists is False and not self.is_exiting():
                    logger.warning(f"Player {name} no longer in session {self.session_id}")
                    await self.on_missing()
                    return
                await asyncio.sleep(self.interval_seconds)
        except asyncio.CancelledError:
            logger.debug("Kick monitor cancelled")
            raise
