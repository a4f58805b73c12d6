# Area: Sync Tests
"""Tests for KickMonitor."""

import asyncio
from unittest.mock import AsyncMock, Mock

from traitor_sync._sync.kick_monitor import KickMonitor
from traitor_sync.errors import SessionNotFoundError, TransientStoreError


def make_monitor(fetch_effect, exiting=False, name="Bob"):
    store = Mock()
    store.fetch_player = AsyncMock(side_effect=fetch_effect)
    on_missing = AsyncMock()
    monitor = KickMonitor(
        store, "s1",
        current_name=lambda: name,
        is_exiting=lambda: exiting,
        on_missing=on_missing,
        interval_seconds=0.01,
        grace_seconds=0.01,
    )
    return monitor, store, on_missing


async def run_for(monitor, seconds=0.1):
    monitor.start()
    await asyncio.sleep(seconds)
    monitor.stop()


class TestKickMonitor:
    """Tests for periodic existence checks."""

    def test_missing_row_reported_once(self):
        """Test a missing row triggers on_missing and stops checking."""
        monitor, store, on_missing = make_monitor(lambda *args: None)
        asyncio.run(run_for(monitor))
        on_missing.assert_awaited_once()
        assert store.fetch_player.await_count == 1

    def test_present_row_keeps_checking(self):
        """Test checks repeat while the row exists."""
        monitor, store, on_missing = make_monitor(lambda *args: {"name": "Bob"})
        asyncio.run(run_for(monitor))
        on_missing.assert_not_awaited()
        assert store.fetch_player.await_count >= 2

    def test_exiting_client_not_kicked(self):
        """Test a voluntary exit is never treated as a kick."""
        monitor, _, on_missing = make_monitor(lambda *args: None, exiting=True)
        asyncio.run(run_for(monitor))
        on_missing.assert_not_awaited()

    def test_transient_error_is_not_a_kick(self):
        """Test failed checks are retried instead of reported."""
        monitor, store, on_missing = make_monitor(TransientStoreError("offline"))
        asyncio.run(run_for(monitor))
        on_missing.assert_not_awaited()
        assert store.fetch_player.await_count >= 2

    def test_deleted_session_counts_as_missing(self):
        """Test a vanished session is treated like a removed row."""
        monitor, _, on_missing = make_monitor(SessionNotFoundError("gone"))
        asyncio.run(run_for(monitor))
        on_missing.assert_awaited_once()

    def test_grace_delay(self):
        """Test no check runs before the grace delay."""
        async def scenario():
            monitor, store, _ = make_monitor(lambda *args: None)
            monitor.grace_seconds = 10
            monitor.start()
            await asyncio.sleep(0.05)
            running = monitor.running
            monitor.stop()
            return running, store.fetch_player.await_count

        running, calls = asyncio.run(scenario())
        assert running
        assert calls == 0

    def test_stops_when_name_cleared(self):
        """Test the loop ends once there is no name to check."""
        monitor, store, on_missing = make_monitor(lambda *args: {"name": "Bob"}, name=None)
        asyncio.run(run_for(monitor))
        assert store.fetch_player.await_count == 0
        on_missing.assert_not_awaited()
