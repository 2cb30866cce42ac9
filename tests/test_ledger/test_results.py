"""Tests for session results and rankings."""

import pytest
from tests.conftest import ADMIN
from tests.test_ledger.conftest import Components

from qvote.errors import InvalidSession, ProposalNotFound

VOTERS = ["0xa", "0xb", "0xc"]


def ranking_ids(placements):
    return [p.proposal_id for p in placements]


class TestSessionResults:
    def setup_method(self):
        self.ledger = Components()
        self.sid = self.ledger.sessions.create_session(
            ADMIN, "S", "", 100, 3600, [("A", "a"), ("B", "b"), ("C", "c")]
        ).id
        for voter in VOTERS:
            self.ledger.voters.register(voter, f"{voter}@example.com")

    def vote(self, voter, ids, counts):
        self.ledger.engine.vote(voter, self.sid, ids, counts)

    def test_fresh_session_has_no_winner(self):
        results = self.ledger.results.get_session_results(self.sid)
        assert results.winning_proposal_id is None
        assert results.proposal_count == 3
        assert (results.total_votes_for, results.total_votes_against) == (0, 0)

    def test_clear_winner(self):
        self.vote("0xa", [1, 2], [5, 2])
        self.vote("0xb", [2], [(0, 1)])
        results = self.ledger.results.get_session_results(self.sid)
        assert results.winning_proposal_id == 1
        assert results.details["net_scores"] == {1: 5, 2: 1, 3: 0}
        assert results.total_votes_for == 7
        assert results.total_votes_against == 1

    def test_tie_at_top_means_no_winner(self):
        self.vote("0xa", [1], [3])
        self.vote("0xb", [2], [3])
        assert self.ledger.results.get_session_results(self.sid).winning_proposal_id is None

    def test_negative_scores_mean_no_winner(self):
        self.vote("0xa", [1, 2, 3], [(0, 1), (0, 2), (0, 3)])
        assert self.ledger.results.get_session_results(self.sid).winning_proposal_id is None

    def test_winner_by_net_not_gross(self):
        """A has more votes in total but B has the better net score."""
        self.vote("0xa", [1], [(6, 0)])
        self.vote("0xb", [1], [(0, 5)])
        self.vote("0xc", [2], [(3, 0)])
        assert self.ledger.results.get_session_results(self.sid).winning_proposal_id == 2

    def test_ranking_groups_equal_scores(self):
        self.vote("0xa", [1, 2], [2, 2])
        ranking = self.ledger.results.rank_proposals(self.sid)
        assert [(p.proposal_id, p.rank, p.tied) for p in ranking] == [
            (1, 1, True),
            (2, 1, True),
            (3, 3, False),
        ]

    def test_ranking_in_details(self):
        self.vote("0xa", [3], [1])
        details = self.ledger.results.get_session_results(self.sid).details
        assert details["ranking"][0] == {"proposal_id": 3, "rank": 1, "tied": False}

    def test_results_after_session_ends(self):
        self.vote("0xa", [2], [4])
        self.ledger.clock.advance(3600)
        assert self.ledger.results.get_session_results(self.sid).winning_proposal_id == 2
        assert self.ledger.results.get_proposal_results(self.sid, 2) == (4, 0)

    def test_proposal_summaries(self):
        self.vote("0xa", [1], [(2, 0)])
        self.vote("0xb", [1], [(0, 3)])
        summaries = self.ledger.results.get_session_proposals(self.sid)
        assert [s.title for s in summaries] == ["A", "B", "C"]
        first = summaries[0]
        assert (first.votes_for, first.votes_against, first.vote_count) == (2, 3, 5)
        assert first.description == "a"

    def test_unknown_session(self):
        with pytest.raises(InvalidSession):
            self.ledger.results.get_session_results(99)
        with pytest.raises(InvalidSession):
            self.ledger.results.get_session_proposals(99)

    def test_unknown_proposal(self):
        with pytest.raises(ProposalNotFound):
            self.ledger.results.get_proposal_results(self.sid, 4)
