"""Read-only projections of session outcomes."""

from qvote.ledger.proposals import ProposalStore
from qvote.ledger.sessions import SessionRegistry
from qvote.models import Placement, Proposal, ProposalSummary, SessionResults


class ResultsAggregator:
    """Per-proposal totals and session summaries.

    Never mutates anything, so it is safe to call in any session state,
    including after the session has ended.
    """

    def __init__(self, sessions: SessionRegistry, proposals: ProposalStore) -> None:
        self._sessions = sessions
        self._proposals = proposals

    def _session_proposals(self, session_id: int) -> list[Proposal]:
        self._sessions.get(session_id)
        return self._proposals.for_session(session_id)

    def get_proposal_results(self, session_id: int, proposal_id: int) -> tuple[int, int]:
        """Return (votes_for, votes_against) for one proposal."""
        self._sessions.get(session_id)
        proposal = self._proposals.get(session_id, proposal_id)
        return proposal.total_votes_for, proposal.total_votes_against

    def get_session_proposals(self, session_id: int) -> list[ProposalSummary]:
        return [
            ProposalSummary(
                proposal_id=p.id,
                title=p.title,
                description=p.description,
                votes_for=p.total_votes_for,
                votes_against=p.total_votes_against,
            )
            for p in self._session_proposals(session_id)
        ]

    def rank_proposals(self, session_id: int) -> list[Placement]:
        """Rank proposals by net score (for - against), highest first.

        Proposals with equal net score share a rank.
        """
        proposals = self._session_proposals(session_id)
        return Placement.from_scores({p.id: p.net_votes for p in proposals})

    def get_session_results(self, session_id: int) -> SessionResults:
        """Summarise a session.

        The winner is the single proposal with the highest net score, and
        only if that score is positive. A tie at the top, or no positive
        score at all, means no winner.
        """
        proposals = self._session_proposals(session_id)
        net_scores = {p.id: p.net_votes for p in proposals}

        winner = None
        ranking = self.rank_proposals(session_id)
        if ranking and not ranking[0].tied and net_scores[ranking[0].proposal_id] > 0:
            winner = ranking[0].proposal_id

        return SessionResults(
            session_id=session_id,
            proposal_count=len(proposals),
            winning_proposal_id=winner,
            total_votes_for=sum(p.total_votes_for for p in proposals),
            total_votes_against=sum(p.total_votes_against for p in proposals),
            details={
                "net_scores": net_scores,
                "ranking": [placement.to_dict() for placement in ranking],
            },
        )
