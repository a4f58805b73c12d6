# Area: Store Tests
"""Tests for the SessionStore implementations (in-memory and SQLite)."""

import asyncio
import os
import tempfile

import pytest
from traitor_sync._store.feed import LocalChangeFeed
from traitor_sync._store.memory import InMemorySessionStore
from traitor_sync._store.sqlite_store import SQLiteSessionStore
from traitor_sync._session.enums import UpdateKind
from traitor_sync.errors import (
    ConcurrencyAnomaly, MergePolicyError, PlayerNotFoundError, SessionNotFoundError,
)


def session_row(room_code="ABCD"):
    return {
        "room_code": room_code,
        "stage": "waiting",
        "settings": {"meeting_room": "Kitchen"},
        "host_name": "Ada",
        "votes": {},
        "meeting_ready": {},
        "meeting_id": None,
        "votes_tallied": False,
        "vote_result": None,
    }


def player_row(name):
    return {"name": name, "role": "unassigned", "alive": True, "tasks": [],
            "tasks_completed": 0, "emergency_meetings_used": 0, "ready": False}


@pytest.fixture(params=["memory", "sqlite"])
def store(request):
    """Create each store with a fresh feed."""
    feed = LocalChangeFeed()
    if request.param == "memory":
        yield InMemorySessionStore(feed)
        return
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)
    yield SQLiteSessionStore(path, feed)
    os.unlink(path)


def run(coro):
    return asyncio.run(coro)


class TestCreateAndFetch:
    """Tests for session creation and lookup."""

    def test_create_assigns_id_and_revision(self, store):
        """Test create returns an id and stamps revision 1."""
        async def scenario():
            session_id = await store.create(session_row())
            session, players = await store.fetch_session(session_id)
            return session_id, session, players

        session_id, session, players = run(scenario())
        assert session["id"] == session_id
        assert session["revision"] == 1
        assert players == []

    def test_duplicate_room_code(self, store):
        """Test a taken room code raises ConcurrencyAnomaly."""
        async def scenario():
            await store.create(session_row("ABCD"))
            await store.create(session_row("abcd"))

        with pytest.raises(ConcurrencyAnomaly):
            run(scenario())

    def test_fetch_by_room_code_normalizes(self, store):
        """Test lookups ignore case and whitespace."""
        async def scenario():
            session_id = await store.create(session_row("WXYZ"))
            session, _ = await store.fetch_by_room_code(" wxyz ")
            return session_id, session

        session_id, session = run(scenario())
        assert session["id"] == session_id

    def test_unknown_session(self, store):
        """Test unknown ids and codes raise SessionNotFoundError."""
        with pytest.raises(SessionNotFoundError):
            run(store.fetch_session("missing"))
        with pytest.raises(SessionNotFoundError):
            run(store.fetch_by_room_code("QQQQ"))


class TestPlayers:
    """Tests for player rows."""

    def test_insert_and_fetch_player(self, store):
        """Test players are found ignoring case."""
        async def scenario():
            session_id = await store.create(session_row())
            inserted = await store.insert_player(session_id, player_row("Ada"))
            fetched = await store.fetch_player(session_id, "ADA")
            missing = await store.fetch_player(session_id, "Bob")
            return inserted, fetched, missing

        inserted, fetched, missing = run(scenario())
        assert inserted["revision"] == 2
        assert fetched == inserted
        assert missing is None

    def test_duplicate_insert_carries_existing_row(self, store):
        """Test a second insert of the same name reports the stored row."""
        async def scenario():
            session_id = await store.create(session_row())
            await store.insert_player(session_id, player_row("Ada"))
            await store.insert_player(session_id, player_row("ada"))

        with pytest.raises(ConcurrencyAnomaly) as exc_info:
            run(scenario())
        assert exc_info.value.existing["name"] == "Ada"

    def test_update_and_delete(self, store):
        """Test partial updates and deletes."""
        async def scenario():
            session_id = await store.create(session_row())
            await store.insert_player(session_id, player_row("Ada"))
            updated = await store.update_player_fields(session_id, "Ada", {"tasks_completed": 2})
            await store.delete_player(session_id, "Ada")
            _, players = await store.fetch_session(session_id)
            return updated, players

        updated, players = run(scenario())
        assert updated["tasks_completed"] == 2
        assert updated["revision"] == 3
        assert players == []

    def test_update_missing_player(self, store):
        """Test updating an absent player raises PlayerNotFoundError."""
        async def scenario():
            session_id = await store.create(session_row())
            await store.update_player_fields(session_id, "Ghost", {"alive": False})

        with pytest.raises(PlayerNotFoundError):
            run(scenario())

    def test_player_name_not_writable(self, store):
        """Test the row identity cannot be overwritten."""
        async def scenario():
            session_id = await store.create(session_row())
            await store.insert_player(session_id, player_row("Ada"))
            await store.update_player_fields(session_id, "Ada", {"name": "Eve"})

        with pytest.raises(MergePolicyError):
            run(scenario())

    def test_batch_is_all_or_nothing(self, store):
        """Test a batch with a missing player writes nothing."""
        async def scenario():
            session_id = await store.create(session_row())
            await store.insert_player(session_id, player_row("Ada"))
            try:
                await store.batch_update_players(session_id, {
                    "Ada": {"role": "traitor"},
                    "Ghost": {"role": "ally"},
                })
            except PlayerNotFoundError:
                pass
            return await store.fetch_player(session_id, "Ada")

        assert run(scenario())["role"] == "unassigned"


class TestMerges:
    """Tests for the atomic per-key merges."""

    def test_votes_merge_per_key(self, store):
        """Test concurrent votes from different voters all survive."""
        async def scenario():
            session_id = await store.create(session_row())
            await asyncio.gather(
                store.merge_vote(session_id, "Ada", "Bob"),
                store.merge_vote(session_id, "Bob", "skip"),
                store.merge_vote(session_id, "Cy", "Bob"),
            )
            session, _ = await store.fetch_session(session_id)
            return session

        assert run(scenario())["votes"] == {"Ada": "Bob", "Bob": "skip", "Cy": "Bob"}

    def test_meeting_ready_merge(self, store):
        """Test readiness entries accumulate."""
        async def scenario():
            session_id = await store.create(session_row())
            await store.merge_meeting_ready(session_id, "Ada")
            return await store.merge_meeting_ready(session_id, "Bob")

        assert run(scenario()) == {"Ada": True, "Bob": True}

    def test_aggregate_overwrite_refused(self, store):
        """Test plain field updates cannot replace the vote ledger."""
        async def scenario():
            session_id = await store.create(session_row())
            await store.update_session_fields(session_id, {"votes": {}})

        with pytest.raises(MergePolicyError):
            run(scenario())

    def test_clear_meeting_state_with_fields(self, store):
        """Test the reset and the new meeting land in one write."""
        async def scenario():
            session_id = await store.create(session_row())
            await store.merge_vote(session_id, "Ada", "Bob")
            return await store.clear_meeting_state(
                session_id, {"stage": "meeting", "meeting_id": "m2"}
            )

        session = run(scenario())
        assert session["votes"] == {}
        assert session["meeting_id"] == "m2"
        assert session["stage"] == "meeting"


class TestRecordTally:
    """Tests for the compare-and-set tally."""

    def test_first_tally_wins(self, store):
        """Test only the first record_tally of a meeting is stored."""
        first = {"vote_counts": {"Bob": 2}, "eliminated_player": "Bob", "is_tie": False}
        second = {"vote_counts": {"Ada": 2}, "eliminated_player": "Ada", "is_tie": False}

        async def scenario():
            session_id = await store.create(session_row())
            await store.clear_meeting_state(session_id, {"meeting_id": "m1"})
            one = await store.record_tally(session_id, "m1", first)
            two = await store.record_tally(session_id, "m1", second)
            return one, two

        (row1, recorded1), (row2, recorded2) = run(scenario())
        assert recorded1 and not recorded2
        assert row2["vote_result"] == first
        assert row2["votes_tallied"]

    def test_tally_for_stale_meeting(self, store):
        """Test a tally for a meeting that is no longer current is refused."""
        async def scenario():
            session_id = await store.create(session_row())
            await store.clear_meeting_state(session_id, {"meeting_id": "m2"})
            await store.record_tally(session_id, "m1", {"vote_counts": {}})

        with pytest.raises(ConcurrencyAnomaly):
            run(scenario())


class TestPublishing:
    """Tests for changes published to the feed."""

    def test_revisions_increase(self, store):
        """Test every write publishes a higher revision."""
        async def scenario():
            session_id = await store.create(session_row())
            await store.insert_player(session_id, player_row("Ada"))
            await store.update_session_fields(session_id, {"stage": "playing"})
            await store.delete_player(session_id, "Ada")
            return list(store.feed._pending)

        changes = run(scenario())
        assert [c.revision for c in changes] == [2, 3, 4]
        assert changes[0].kind == UpdateKind.PLAYER_INSERT
        assert changes[2].kind == UpdateKind.PLAYER_DELETE
        assert changes[2].old["name"] == "Ada"

    def test_sqlite_survives_reopen(self):
        """Test the SQLite store keeps sessions across instances."""
        fd, path = tempfile.mkstemp(suffix=".db")
        os.close(fd)
        try:
            async def scenario():
                first = SQLiteSessionStore(path)
                session_id = await first.create(session_row())
                await first.insert_player(session_id, player_row("Ada"))
                second = SQLiteSessionStore(path)
                return await second.fetch_session(session_id)

            session, players = run(scenario())
            assert session["host_name"] == "Ada"
            assert [p["name"] for p in players] == ["Ada"]
        finally:
            os.unlink(path)
