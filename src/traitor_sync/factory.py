# Area: Sync
"""
traitor_sync.factory — Engine construction
==========================================

One call that loads configuration, sets up logging and builds a
SyncEngine for a store and its feed.

    store = SQLiteSessionStore("games.db", feed=LocalChangeFeed())
    engine = create_sync_engine(store, store.feed, listener=Screen())
    room = await engine.create_game("Ada", {"meeting_room": "Kitchen"})
"""

import logging
import random
from typing import Optional

from ._config import SyncConfig, load_config
from ._shared.logging_config import setup_logging
from ._store.interfaces import ChangeFeed, SessionStore
from ._sync.engine import SyncEngine
from .callbacks import SessionListener

logger = logging.getLogger("traitor_sync.factory")


def create_sync_engine(
    store: SessionStore,
    feed: ChangeFeed,
    listener: Optional[SessionListener] = None,
    config: Optional[SyncConfig] = None,
    config_path: Optional[str] = None,
    configure_logging: bool = True,
    rng: Optional[random.Random] = None,
) -> SyncEngine:
    """
    Build a SyncEngine.

    Args:
        store: Session store shared by every client
        feed: Change feed of that store
        listener: Presentation callbacks
        config: Ready-made config; loaded from file/env when None
        config_path: Optional JSON config file for load_config()
        configure_logging: Install the package's terminal/JSON handlers
        rng: Random source for room codes and assignments

    Raises:
        ConfigurationError: If the loaded configuration is invalid
    """
    if config is None:
        config = load_config(config_path)
    if configure_logging:
        setup_logging(config.log_file, config.log_level)
    logger.debug(f"Creating sync engine with {config.model_dump()}")
    return SyncEngine(store, feed, listener=listener, config=config, rng=rng)
