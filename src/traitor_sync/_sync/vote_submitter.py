# Area: Sync
"""
traitor_sync._sync.vote_submitter — Vote submission with verification
=====================================================================

A vote counts as submitted only once a fresh read of the session shows
it in the ledger. Transient store failures are retried a bounded number
of times with linear backoff; running out of attempts leaves the vote
uncommitted instead of raising, and the caller keeps waiting.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, Optional

from ..errors import TransientStoreError
from .._store.interfaces import SessionStore

logger = logging.getLogger("traitor_sync.sync.vote_submitter")


@dataclass(frozen=True)
class VoteReceipt:
    """
    Result of one vote submission.

    Attributes:
        voter: Ledger key written
        target: Player name or "skip"
        committed: The vote was read back from the store
        attempts: Attempts used
        ledger: Ledger as last read back, if any read succeeded
    """

    voter: str
    target: str
    committed: bool
    attempts: int
    ledger: Optional[Dict[str, str]] = None


async def submit_vote_with_retry(
    store: SessionStore,
    session_id: str,
    voter: str,
    target: str,
    attempts: int = 3,
    backoff_seconds: float = 0.5,
) -> VoteReceipt:
    """
    Merge one vote into the ledger and confirm it is visible.

    Args:
        store: Session store
        session_id: Session to vote in
        voter: Voting player's name
        target: Voted player's name or "skip"
        attempts: Maximum merge attempts
        backoff_seconds: Delay before attempt n+1 is n * backoff_seconds

    Returns:
        VoteReceipt; committed=False if the vote was never seen
    """
    ledger: Optional[Dict[str, str]] = None
    for attempt in range(1, attempts + 1):
        try:
            await store.merge_vote(session_id, voter, target)
            session, _ = await store.fetch_session(session_id)
            ledger = dict(session.get("votes") or {})
            if ledger.get(voter) == target:
                logger.info(f"Vote from {voter} committed (attempt {attempt})")
                return VoteReceipt(voter, target, True, attempt, ledger)
            logger.warning(f"Vote from {voter} not visible yet (attempt {attempt})")
        except TransientStoreError as e:
            logger.warning(f"Vote from {voter} failed (attempt {attempt}/{attempts}): {e}")

        if attempt < attempts:
            await asyncio.sleep(backoff_seconds * attempt)

    logger.error(f"Vote from {voter} not committed after {attempts} attempts")
    return VoteReceipt(voter, target, False, attempts, ledger)
