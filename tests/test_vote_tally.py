# Area: Rules Tests
"""Tests for vote tallying."""

import pytest
from traitor_sync._rules.vote_tally import (
    SKIP, VoteTally, count_alive, count_submitted_votes, is_vote_complete, tally_votes,
    with_absent_skips,
)
from traitor_sync._session.models import Player
from traitor_sync.errors import IncompleteVoteError


def roster(*names, dead=()):
    return [Player(name=name, alive=name not in dead) for name in names]


class TestCounting:
    """Tests for vote completeness helpers."""

    def test_dead_voters_not_counted(self):
        """Test ledger entries of eliminated players are ignored."""
        players = roster("Ada", "Bob", "Cy", dead=("Cy",))
        ledger = {"Ada": "Bob", "Cy": "Ada"}
        assert count_alive(players) == 2
        assert count_submitted_votes(ledger, players) == 1
        assert not is_vote_complete(ledger, players)

    def test_complete_when_every_alive_player_voted(self):
        """Test completeness uses the alive count."""
        players = roster("Ada", "Bob", "Cy", dead=("Cy",))
        assert is_vote_complete({"Ada": "Bob", "Bob": SKIP}, players)

    def test_empty_roster_never_complete(self):
        """Test a vote with no alive players is not complete."""
        assert not is_vote_complete({}, roster("Ada", dead=("Ada",)))


class TestTallyVotes:
    """Tests for tally_votes."""

    def test_majority_eliminates(self):
        """Test a unique top candidate is ejected."""
        players = roster("Ada", "Bob", "Cy")
        result = tally_votes({"Ada": "Cy", "Bob": "Cy", "Cy": "Ada"}, players)
        assert result.eliminated_player == "Cy"
        assert not result.is_tie
        assert result.vote_counts == {"Cy": 2, "Ada": 1}

    def test_four_player_majority(self):
        """Test three of four votes eject the shared target."""
        players = roster("A", "B", "C", "D")
        result = tally_votes({"A": "C", "B": "C", "C": "A", "D": "C"}, players)
        assert result.eliminated_player == "C"
        assert result.vote_counts["C"] == 3
        assert result.vote_counts["A"] == 1
        assert not result.is_tie

    def test_tie_ejects_nobody(self):
        """Test a tie at the top means no ejection."""
        players = roster("Ada", "Bob", "Cy", "Dee")
        result = tally_votes({"Ada": "Bob", "Bob": "Ada", "Cy": "Ada", "Dee": "Bob"}, players)
        assert result.eliminated_player is None
        assert result.is_tie

    def test_skip_does_not_eliminate(self):
        """Test skip votes never eject anyone, even as the largest count."""
        players = roster("Ada", "Bob", "Cy")
        result = tally_votes({"Ada": SKIP, "Bob": SKIP, "Cy": "Ada"}, players)
        assert result.eliminated_player == "Ada"
        assert result.vote_counts[SKIP] == 2

    def test_all_skip(self):
        """Test an all-skip vote is neither a tie nor an ejection."""
        players = roster("Ada", "Bob")
        result = tally_votes({"Ada": SKIP, "Bob": SKIP}, players)
        assert result.eliminated_player is None
        assert not result.is_tie

    def test_vote_for_dead_player_ignored(self):
        """Test targets that are not alive players are dropped."""
        players = roster("Ada", "Bob", "Cy", dead=("Cy",))
        result = tally_votes({"Ada": "Cy", "Bob": "Ada"}, players)
        assert "Cy" not in result.vote_counts
        assert result.eliminated_player == "Ada"

    def test_target_matched_ignoring_case(self):
        """Test targets resolve to the canonical name."""
        players = roster("Ada", "Bob")
        result = tally_votes({"Ada": "bob", "Bob": "BOB"}, players)
        assert result.vote_counts == {"Bob": 2}
        assert result.eliminated_player == "Bob"

    def test_incomplete_raises(self):
        """Test tallying before every alive player voted raises."""
        with pytest.raises(IncompleteVoteError) as exc_info:
            tally_votes({"Ada": "Bob"}, roster("Ada", "Bob"))
        assert exc_info.value.submitted == 1
        assert exc_info.value.alive == 2


class TestVoteTally:
    """Tests for the exactly-once VoteTally wrapper."""

    def test_run_marks_eliminated_player(self):
        """Test the first run ejects the loser."""
        players = roster("Ada", "Bob", "Cy")
        tally = VoteTally("m1")
        result = tally.run({"Ada": "Cy", "Bob": "Cy", "Cy": "Ada"}, players)
        assert tally.tallied
        assert result.eliminated_player == "Cy"
        assert [p.alive for p in players] == [True, True, False]

    def test_second_run_returns_stored_result(self):
        """Test a repeated run does not touch the roster again."""
        players = roster("Ada", "Bob", "Cy")
        tally = VoteTally("m1")
        first = tally.run({"Ada": "Cy", "Bob": "Cy", "Cy": "Ada"}, players)
        players[2].alive = True
        second = tally.run({"Ada": "Bob", "Bob": "Bob", "Cy": "Bob"}, players)
        assert second is first
        assert players[2].alive

    def test_adopt_closes_gate(self):
        """Test adopting a published result prevents a local run."""
        tally = VoteTally("m1")
        published = tally_votes({"Ada": SKIP, "Bob": SKIP}, roster("Ada", "Bob"))
        tally.adopt(published)
        assert tally.run({}, roster("Ada")) is published


class TestAbsentPlayers:
    """Tests for players removed while a meeting is open."""

    def test_absent_player_counts_as_skip(self):
        """Test a removed player without a vote fills in a skip."""
        players = roster("Ada", "Bob", "Cy")
        ledger = with_absent_skips({"Ada": "Bob"}, players, ["cy"])
        assert ledger == {"Ada": "Bob", "Cy": SKIP}

    def test_absent_vote_already_cast_is_kept(self):
        """Test a vote cast before leaving is not replaced."""
        players = roster("Ada", "Bob", "Cy")
        assert with_absent_skips({"Cy": "Ada"}, players, ["Cy"]) == {"Cy": "Ada"}

    def test_absence_completes_vote(self):
        """Test the vote completes once everyone still present voted."""
        players = roster("Ada", "Bob", "Cy")
        ledger = {"Ada": SKIP, "Bob": "Ada"}
        assert not is_vote_complete(ledger, players)
        assert is_vote_complete(ledger, players, absent=["Cy"])
        assert count_submitted_votes(ledger, players, absent=["Cy"]) == 3

    def test_absent_dead_player_ignored(self):
        """Test an eliminated absent player adds no vote."""
        players = roster("Ada", "Bob", "Cy", dead=("Cy",))
        assert with_absent_skips({}, players, ["Cy"]) == {}

    def test_tally_with_absent(self):
        """Test the absent skip is part of the counts."""
        players = roster("Ada", "Bob", "Cy", "Dee")
        result = VoteTally("m1").run(
            {"Ada": "Bob", "Bob": SKIP, "Dee": "Bob"}, players, absent=["Cy"]
        )
        assert result.eliminated_player == "Bob"
        assert result.vote_counts == {"Bob": 2, SKIP: 2}
