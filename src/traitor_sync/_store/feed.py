# Area: Store
"""
traitor_sync._store.feed — In-process change feed
=================================================

LocalChangeFeed queues the changes a store publishes and delivers them
to subscribers when drain() is awaited. It can redeliver changes and
shuffle delivery order to reproduce what a real push feed does.
"""

import copy
import inspect
import itertools
import logging
import random
from typing import Any, Dict, List, Optional, Tuple

from .._session.enums import UpdateKind
from .interfaces import Change, ChangeCallback, PlayerChange

logger = logging.getLogger("traitor_sync.store.feed")


class LocalChangeFeed:
    """
    ChangeFeed for clients sharing one process.

    Usage:
        feed = LocalChangeFeed(duplicate_rate=0.5, shuffle=True)
        store = InMemorySessionStore(feed)
        ...
        await feed.drain()

    Attributes:
        duplicate_rate: Probability that a published change is queued twice
        shuffle: Deliver each queued batch in random order
    """

    def __init__(self, duplicate_rate: float = 0.0, shuffle: bool = False,
                 rng: Optional[random.Random] = None):
        self.duplicate_rate = duplicate_rate
        self.shuffle = shuffle
        self._rng = rng or random.Random()
        self._pending: List[Change] = []
        self._session_subs: Dict[int, Tuple[str, ChangeCallback]] = {}
        self._player_subs: Dict[int, Tuple[str, Dict[UpdateKind, ChangeCallback]]] = {}
        self._handles = itertools.count(1)

    @property
    def pending(self) -> int:
        return len(self._pending)

    def subscribe_session(self, session_id: str, on_change: ChangeCallback) -> int:
        handle = next(self._handles)
        self._session_subs[handle] = (session_id, on_change)
        logger.debug(f"Session subscription {handle} for {session_id}")
        return handle

    def subscribe_players(self, session_id: str, on_insert: ChangeCallback,
                          on_update: ChangeCallback, on_delete: ChangeCallback) -> int:
        handle = next(self._handles)
        self._player_subs[handle] = (session_id, {
            UpdateKind.PLAYER_INSERT: on_insert,
            UpdateKind.PLAYER_UPDATE: on_update,
            UpdateKind.PLAYER_DELETE: on_delete,
        })
        logger.debug(f"Player subscription {handle} for {session_id}")
        return handle

    def unsubscribe(self, handle: Any) -> None:
        self._session_subs.pop(handle, None)
        self._player_subs.pop(handle, None)

    def publish(self, change: Change) -> None:
        """Queue a change for delivery, possibly twice."""
        self._pending.append(change)
        if self.duplicate_rate and self._rng.random() < self.duplicate_rate:
            self._pending.append(change)

    def _callbacks_for(self, change: Change) -> List[Tuple[int, ChangeCallback]]:
        if isinstance(change, PlayerChange):
            return [
                (handle, callbacks[change.kind])
                for handle, (session_id, callbacks) in self._player_subs.items()
                if session_id == change.session_id
            ]
        return [
            (handle, callback)
            for handle, (session_id, callback) in self._session_subs.items()
            if session_id == change.session_id
        ]

    async def _deliver(self, change: Change) -> int:
        delivered = 0
        for handle, callback in self._callbacks_for(change):
            # A callback earlier in this loop may have unsubscribed this one
            if handle not in self._session_subs and handle not in self._player_subs:
                continue
            try:
                result = callback(copy.deepcopy(change))
                if inspect.isawaitable(result):
                    await result
                delivered += 1
            except Exception as e:
                logger.error(f"Subscriber {handle} failed on {change.kind.value}: {e}")
        return delivered

    async def drain(self, max_rounds: int = 100) -> int:
        """
        Deliver queued changes until the queue stays empty.

        Changes published by subscribers while draining are delivered in
        the next round.

        Returns:
            Number of callback invocations
        """
        delivered = 0
        for _ in range(max_rounds):
            if not self._pending:
                return delivered
            batch, self._pending = self._pending, []
            if self.shuffle:
                self._rng.shuffle(batch)
            for change in batch:
                delivered += await self._deliver(change)
        logger.warning(f"Feed still has {len(self._pending)} changes after {max_rounds} rounds")
        return delivered
