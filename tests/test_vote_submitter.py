# Area: Sync Tests
"""Tests for vote submission with retry and verification."""

import asyncio
from unittest.mock import AsyncMock, Mock

from traitor_sync._sync.vote_submitter import submit_vote_with_retry
from traitor_sync.errors import TransientStoreError


def make_store(merge_effects, ledgers):
    store = Mock()
    store.merge_vote = AsyncMock(side_effect=merge_effects)
    store.fetch_session = AsyncMock(side_effect=[({"votes": ledger}, []) for ledger in ledgers])
    return store


class TestSubmitVoteWithRetry:
    """Tests for submit_vote_with_retry."""

    def test_committed_first_try(self):
        """Test a visible vote commits on the first attempt."""
        store = make_store([{"Ada": "Bob"}], [{"Ada": "Bob"}])
        receipt = asyncio.run(submit_vote_with_retry(store, "s1", "Ada", "Bob",
                                                     backoff_seconds=0))
        assert receipt.committed
        assert receipt.attempts == 1
        assert receipt.ledger == {"Ada": "Bob"}

    def test_retries_transient_failures(self):
        """Test a transient failure is retried."""
        store = make_store([TransientStoreError("timeout"), {"Ada": "skip"}],
                           [{"Ada": "skip", "Bob": "Ada"}])
        receipt = asyncio.run(submit_vote_with_retry(store, "s1", "Ada", "skip",
                                                     backoff_seconds=0))
        assert receipt.committed
        assert receipt.attempts == 2
        assert store.merge_vote.await_count == 2

    def test_invisible_vote_retried(self):
        """Test a vote that does not read back is submitted again."""
        store = make_store([{}, {}], [{}, {"Ada": "Bob"}])
        receipt = asyncio.run(submit_vote_with_retry(store, "s1", "Ada", "Bob",
                                                     backoff_seconds=0))
        assert receipt.committed
        assert receipt.attempts == 2

    def test_gives_up_without_raising(self):
        """Test exhausted attempts return an uncommitted receipt."""
        store = make_store([TransientStoreError("down")] * 3, [])
        receipt = asyncio.run(submit_vote_with_retry(store, "s1", "Ada", "Bob",
                                                     attempts=3, backoff_seconds=0))
        assert not receipt.committed
        assert receipt.attempts == 3
        assert receipt.ledger is None

    def test_linear_backoff(self):
        """Test the delay grows by one step per attempt."""
        store = make_store([TransientStoreError("down")] * 3, [])
        sleeps = []

        async def fake_sleep(seconds):
            sleeps.append(seconds)

        async def scenario():
            original = asyncio.sleep
            asyncio.sleep = fake_sleep
            try:
                return await submit_vote_with_retry(store, "s1", "Ada", "Bob",
                                                    attempts=3, backoff_seconds=0.5)
            finally:
                asyncio.sleep = original

        asyncio.run(scenario())
        assert sleeps == [0.5, 1.0]
