"""Shared fixtures for the sync engine tests: a recording listener and a lobby builder."""

import random

from traitor_sync._config import SyncConfig
from traitor_sync._session.enums import Role
from traitor_sync._store.feed import LocalChangeFeed
from traitor_sync._store.memory import InMemorySessionStore
from traitor_sync._sync.engine import SyncEngine
from traitor_sync.callbacks import SessionListener

# Kick checks never fire within a test
QUIET = SyncConfig(
    kick_check_interval_seconds=60,
    kick_check_grace_seconds=60,
    vote_retry_backoff_seconds=0,
    log_file="",
)

# Kick checks fire almost at once
FAST = SyncConfig(
    kick_check_interval_seconds=0.01,
    kick_check_grace_seconds=0.01,
    vote_retry_backoff_seconds=0,
    log_file="",
)

LOBBY_SETTINGS = {"meeting_room": "Kitchen", "min_players": 4, "max_players": 6}


class Recorder(SessionListener):
    """Listener that records every callback."""

    def __init__(self):
        self.events = []

    def on_stage_changed(self, old, new):
        self.events.append(("stage", old, new))

    def on_roster_changed(self, players):
        self.events.append(("roster", sorted(p.name for p in players)))

    def on_vote_result(self, result):
        self.events.append(("vote_result", result))

    def on_kicked(self, room_code):
        self.events.append(("kicked", room_code))

    def on_new_game_invitation(self, room_code):
        self.events.append(("invitation", room_code))

    def on_session_halted(self, error):
        self.events.append(("halted", error))

    def of(self, kind):
        return [event for event in self.events if event[0] == kind]


class Table:
    """One store, one feed and an engine per player."""

    def __init__(self, feed=None, config=QUIET, seed=1):
        self.feed = feed or LocalChangeFeed()
        self.store = InMemorySessionStore(self.feed)
        self.config = config
        self.rng = random.Random(seed)
        self.engines = {}
        self.room_code = None

    def new_engine(self, feed=None):
        return SyncEngine(
            self.store, feed or self.feed, listener=Recorder(), config=self.config,
            rng=random.Random(self.rng.random()),
        )

    async def open(self, host, guests, settings=None):
        engine = self.new_engine()
        self.room_code = await engine.create_game(host, settings or LOBBY_SETTINGS)
        self.engines[host] = engine
        for name in guests:
            guest = self.new_engine()
            await guest.join_game(self.room_code, name)
            self.engines[name] = guest
        await self.feed.drain()
        return engine

    async def start(self, host):
        assignments = await self.engines[host].start_game()
        await self.feed.drain()
        return assignments

    def names_with(self, assignments, role):
        return [name for name, a in assignments.items() if a.role == role]

    def traitors(self, assignments):
        return self.names_with(assignments, Role.TRAITOR)

    def allies(self, assignments):
        return self.names_with(assignments, Role.ALLY)

    async def store_view(self):
        session_id = next(iter(self.engines.values())).context.session_id
        session, players = await self.store.fetch_session(session_id)
        return session, {p["name"]: p for p in players}

    async def close(self):
        for engine in self.engines.values():
            await engine.close()
