# Area: Sync
"""
traitor_sync._sync.router — Change Router
=========================================

Routes incoming store changes to the handler registered for their
kind (session update, player insert/update/delete).
"""

import logging
from typing import Any, Dict, Optional, Protocol

from .._session.enums import UpdateKind

logger = logging.getLogger("traitor_sync.sync.router")


class ChangeHandler(Protocol):
    """Protocol for change handlers."""

    def handle(self, change: Any) -> Any:
        """Apply a change to the local context and describe what happened."""
        ...


class UpdateRouter:
    """
    Routes change records to handlers.

    Usage:
        router = UpdateRouter()
        router.register_handler(UpdateKind.SESSION_UPDATE, session_handler)
        outcome = router.route(change)
    """

    def __init__(self):
        self._handlers: Dict[UpdateKind, ChangeHandler] = {}

    def register_handler(self, kind: UpdateKind, handler: ChangeHandler) -> None:
        self._handlers[kind] = handler
        logger.debug(f"Registered handler for {kind.value}")

    def get_handler(self, kind: UpdateKind) -> Optional[ChangeHandler]:
        return self._handlers.get(kind)

    def route(self, change: Any) -> Optional[Any]:
        """
        Route a change to its handler.

        Returns:
            The handler's result, or None if no handler is registered
        """
        kind = change.kind
        handler = self._handlers.get(kind)
        if handler is None:
            logger.warning(f"No handler for change kind: {kind.value}")
            return None
        logger.debug(f"Routing {kind.value} (revision {change.revision})")
        return handler.handle(change)
