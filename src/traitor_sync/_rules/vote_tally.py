# Area: Rules
"""
traitor_sync._rules.vote_tally — Meeting vote tally
===================================================

Turns a vote ledger into an elimination decision.

Only votes cast by alive players count, and only votes for "skip" or an
alive player are tallied. "skip" is counted and displayed but never
competes for the majority. Players who left during the meeting keep
their place in the total and vote "skip" unless they voted before
leaving. A shared top count, or no votes for any
player, ejects nobody; ties are never broken at random.
"""

import logging
from typing import Dict, Iterable, List, Mapping, Optional

from ..errors import IncompleteVoteError
from .._session.models import Player, VoteResult, name_key

logger = logging.getLogger("traitor_sync.rules.vote_tally")

SKIP = "skip"


def _alive_by_key(roster: Iterable[Player]) -> Dict[str, Player]:
    return {player.key: player for player in roster if player.alive}


def count_alive(roster: Iterable[Player]) -> int:
    return len(_alive_by_key(roster))


def with_absent_skips(ledger: Mapping[str, str], roster: Iterable[Player],
                      absent: Iterable[str] = ()) -> Dict[str, str]:
    """Copy of the ledger with a "skip" for every absent alive player who has not voted."""
    merged = dict(ledger)
    absent_keys = {name_key(name) for name in absent}
    if not absent_keys:
        return merged
    voted = {name_key(voter) for voter in ledger}
    for player in roster:
        if player.alive and player.key in absent_keys and player.key not in voted:
            merged[player.name] = SKIP
    return merged


def count_submitted_votes(ledger: Mapping[str, str], roster: Iterable[Player],
                          absent: Iterable[str] = ()) -> int:
    """Count ledger entries that belong to currently alive players."""
    players = list(roster)
    alive = _alive_by_key(players)
    ledger = with_absent_skips(ledger, players, absent)
    return len({name_key(voter) for voter in ledger if name_key(voter) in alive})


def is_vote_complete(ledger: Mapping[str, str], roster: Iterable[Player],
                     absent: Iterable[str] = ()) -> bool:
    players = list(roster)
    alive = count_alive(players)
    return alive > 0 and count_submitted_votes(ledger, players, absent) == alive


def tally_votes(ledger: Mapping[str, str], roster: Iterable[Player],
                absent: Iterable[str] = ()) -> VoteResult:
    """
    Tally a complete ledger.

    Args:
        ledger: Voter name -> target name or "skip"
        roster: Current players
        absent: Names of players removed during the meeting; each one
            without a ledger entry counts as a "skip"

    Returns:
        VoteResult with per-target counts and the ejected player, if any

    Raises:
        IncompleteVoteError: If not every alive player has voted
    """
    players = list(roster)
    absent = list(absent)
    if not is_vote_complete(ledger, players, absent):
        raise IncompleteVoteError(
            count_submitted_votes(ledger, players, absent), count_alive(players)
        )
    ledger = with_absent_skips(ledger, players, absent)

    alive = _alive_by_key(players)
    counts: Dict[str, int] = {}
    counted_voters = set()
    for voter, target in ledger.items():
        voter_key = name_key(voter)
        if voter_key not in alive or voter_key in counted_voters:
            continue
        counted_voters.add(voter_key)

        if target == SKIP:
            label = SKIP
        elif name_key(target) in alive:
            label = alive[name_key(target)].name
        else:
            logger.warning(f"Ignoring vote from {voter} for non-candidate {target!r}")
            continue
        counts[label] = counts.get(label, 0) + 1

    candidates = {target: n for target, n in counts.items() if target != SKIP}
    top = max(candidates.values(), default=0)
    if top == 0:
        return VoteResult(vote_counts=counts, eliminated_player=None, is_tie=False)

    leaders: List[str] = [target for target, n in candidates.items() if n == top]
    if len(leaders) > 1:
        return VoteResult(vote_counts=counts, eliminated_player=None, is_tie=True)
    return VoteResult(vote_counts=counts, eliminated_player=leaders[0], is_tie=False)


class VoteTally:
    """
    Exactly-once tally for one meeting.

    The first run() computes the result and marks the ejected player
    dead. Every later run() returns the stored result without touching
    the roster again.

    Attributes:
        meeting_id: Meeting this tally belongs to
        tallied: True once a result is stored
        result: The stored result
    """

    def __init__(self, meeting_id: Optional[str] = None):
        self.meeting_id = meeting_id
        self.tallied = False
        self.result: Optional[VoteResult] = None

    def run(self, ledger: Mapping[str, str], roster: Iterable[Player],
            absent: Iterable[str] = ()) -> VoteResult:
        if self.tallied:
            logger.debug(f"Tally for meeting {self.meeting_id} already done")
            return self.result

        players = list(roster)
        result = tally_votes(ledger, players, absent)
        if result.eliminated_player:
            eliminated = name_key(result.eliminated_player)
            for player in players:
                if player.key == eliminated:
                    player.alive = False

        self.tallied = True
        self.result = result
        logger.info(
            f"Meeting {self.meeting_id} tallied: {result.vote_counts} -> "
            f"{result.eliminated_player or ('tie' if result.is_tie else 'no ejection')}"
        )
        return result

    def adopt(self, result: VoteResult) -> None:
        """Mark the tally done with a result published by the store."""
        self.tallied = True
        self.result = result
