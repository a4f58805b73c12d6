# Area: Sync Tests
"""Tests for duplicate, reordered and missed change delivery."""

import asyncio
import random

import pytest
from helpers import Table
from traitor_sync._session.enums import Stage, UpdateKind
from traitor_sync._store.feed import LocalChangeFeed
from traitor_sync._store.interfaces import PlayerChange, SessionChange

PLAYERS = ["Bob", "Cy", "Dee", "Eve"]


def run(coro):
    return asyncio.run(coro)


def view(engine):
    return (
        engine.stage,
        engine.session.revision,
        {p.name: (p.role, p.alive, p.tasks_completed, p.revision) for p in engine.roster},
    )


class TestApplyRemoteUpdate:
    """Tests for applying the same change more than once."""

    def test_same_change_twice(self):
        """Test a second application of a change is a no-op."""
        async def scenario():
            table = Table()
            host = await table.open("Ada", PLAYERS)
            session, players = await table.store_view()
            row = dict(players["Bob"], tasks_completed=0, revision=99)
            change = PlayerChange(UpdateKind.PLAYER_UPDATE, session["id"], row, None, 99)
            first = await host.apply_remote_update(change)
            before = view(host)
            second = await host.apply_remote_update(change)
            await table.close()
            return first, second, before, view(host)

        first, second, before, after = run(scenario())
        assert first.applied and not second.applied
        assert before == after

    def test_old_session_row_does_not_rewind(self):
        """Test a stale session row never moves the stage back."""
        async def scenario():
            table = Table()
            await table.open("Ada", PLAYERS)
            bob = table.engines["Bob"]
            old_row = bob.session.to_row()
            await table.start("Ada")
            outcome = await bob.apply_remote_update(SessionChange(old_row["id"], old_row))
            await table.close()
            return outcome, bob

        outcome, bob = run(scenario())
        assert not outcome.applied
        assert bob.stage == Stage.PLAYING


class TestConvergence:
    """Tests that every client ends up with the store's state."""

    @pytest.mark.parametrize("seed", [1, 2, 3, 4])
    def test_shuffled_duplicated_feed(self, seed):
        """Test clients converge under redelivery and reordering."""
        async def scenario():
            feed = LocalChangeFeed(duplicate_rate=0.5, shuffle=True, rng=random.Random(seed))
            table = Table(feed=feed, seed=seed)
            await table.open("Ada", PLAYERS)
            assignments = await table.start("Ada")
            victim = next(n for n in table.allies(assignments) if n != "Ada")
            await table.engines["Cy"].call_meeting()
            await feed.drain()
            for engine in table.engines.values():
                await engine.acknowledge_meeting()
            await feed.drain()
            await table.engines["Ada"].start_voting()
            await feed.drain()
            for name, engine in table.engines.items():
                await engine.submit_vote(victim if name != victim else "skip")
            await feed.drain()
            session, players = await table.store_view()
            views = {name: view(engine) for name, engine in table.engines.items()}
            await table.close()
            return session, players, views, victim

        session, players, views, victim = run(scenario())
        expected_roster = {
            name: (row["role"], row["alive"], row["tasks_completed"], row["revision"])
            for name, row in players.items()
        }
        assert not players[victim]["alive"]
        assert session["votes_tallied"]
        for stage, revision, roster in views.values():
            assert stage.value == session["stage"]
            assert revision == session["revision"]
            assert {n: (r.value, a, t, v) for n, (r, a, t, v) in roster.items()} == expected_roster


class TestResync:
    """Tests for reconciling a client that missed feed deliveries."""

    def test_resync_catches_up(self):
        """Test a client on a silent feed catches up on resync."""
        async def scenario():
            table = Table()
            host = await table.open("Ada", ["Cy", "Dee", "Eve"])
            deaf = table.new_engine(feed=LocalChangeFeed())
            await deaf.join_game(table.room_code, "Bob")
            table.engines["Bob"] = deaf
            await table.feed.drain()
            await table.start("Ada")
            stage_before = deaf.stage
            await deaf.resync()
            stage_after = deaf.stage
            await host.kick_player("Cy")
            await deaf.resync()
            await table.close()
            return deaf, stage_before, stage_after

        deaf, stage_before, stage_after = run(scenario())
        assert stage_before == Stage.WAITING
        assert stage_after == Stage.PLAYING
        assert deaf.context.me.tasks
        assert sorted(p.name for p in deaf.roster) == ["Ada", "Bob", "Dee", "Eve"]

    def test_removal_during_meeting_deferred(self):
        """Test a kick during a meeting reaches the roster only after it."""
        async def scenario():
            table = Table()
            host = await table.open("Ada", PLAYERS)
            await table.start("Ada")
            await table.engines["Bob"].call_meeting()
            await table.feed.drain()
            await host.kick_player("Cy")
            await table.feed.drain()
            during = sorted(p.name for p in table.engines["Dee"].roster)
            await host.resume_game()
            await table.feed.drain()
            after = sorted(p.name for p in table.engines["Dee"].roster)
            await table.close()
            return during, after, table

        during, after, table = run(scenario())
        assert "Cy" in during
        assert "Cy" not in after
        assert table.engines["Cy"].notifier.listener.of("kicked")
