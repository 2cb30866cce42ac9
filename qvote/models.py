"""Core data models for voters, sessions, proposals, credits and results."""

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Self

# (votes_for, votes_against) for a single proposal
VoteCount = tuple[int, int]


@dataclass(frozen=True)
class Voter:
    """A registered identity.

    Attributes:
        address: Caller identity (wallet address or any opaque id)
        email: Contact e-mail given at registration
        registered: Always True once the record exists
    """
    address: str
    email: str
    registered: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {"address": self.address, "email": self.email, "registered": self.registered}


@dataclass(frozen=True)
class Session:
    """A time-boxed voting round.

    The session is active while ``start_time <= now < end_time``. Nothing
    else about it changes after creation.

    Attributes:
        id: Session id, assigned in increasing order starting at 1
        name: Short name
        description: Free text
        creator: Identity of the admin who created the session
        credits_per_voter: Credits each voter gets on joining (1..255)
        start_time: Unix timestamp (seconds) the session opens
        end_time: Unix timestamp (seconds) the session closes, exclusive
        proposal_ids: Proposal ids in creation order
    """
    id: int
    name: str
    description: str
    creator: str
    credits_per_voter: int
    start_time: int
    end_time: int
    proposal_ids: tuple[int, ...]

    def is_active(self, now: int) -> bool:
        return self.start_time <= now < self.end_time

    def has_ended(self, now: int) -> bool:
        return now >= self.end_time


@dataclass
class Proposal:
    """A votable option scoped to one session.

    Vote totals are only ever adjusted by the vote engine, through
    ProposalStore.
    """
    id: int
    session_id: int
    title: str
    description: str
    total_votes_for: int = 0
    total_votes_against: int = 0

    @property
    def net_votes(self) -> int:
        return self.total_votes_for - self.total_votes_against

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "session_id": self.session_id,
            "title": self.title,
            "description": self.description,
            "total_votes_for": self.total_votes_for,
            "total_votes_against": self.total_votes_against,
        }


@dataclass
class CreditAccount:
    """Credit balance of one voter in one session.

    ``remaining`` is derived, never stored.
    """
    voter: str
    session_id: int
    total: int
    spent: int = 0

    @property
    def remaining(self) -> int:
        return self.total - self.spent

    def to_dict(self) -> dict[str, Any]:
        return {
            "voter": self.voter,
            "session_id": self.session_id,
            "total": self.total,
            "spent": self.spent,
            "remaining": self.remaining,
        }


@dataclass(frozen=True)
class VoteRecord:
    """The current allocation of one voter on one proposal.

    There is at most one record per (session_id, voter, proposal_id); a new
    vote on the same proposal replaces it.
    """
    session_id: int
    voter: str
    proposal_id: int
    votes_for: int
    votes_against: int
    credits_spent: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "voter": self.voter,
            "proposal_id": self.proposal_id,
            "votes_for": self.votes_for,
            "votes_against": self.votes_against,
            "credits_spent": self.credits_spent,
        }


@dataclass(frozen=True)
class SessionView:
    """Read-only snapshot of a session, with its derived lifecycle state."""
    id: int
    name: str
    description: str
    creator: str
    credits_per_voter: int
    start_time: int
    end_time: int
    active: bool
    proposal_count: int

    @classmethod
    def from_session(cls, session: Session, now: int) -> Self:
        return cls(
            id=session.id,
            name=session.name,
            description=session.description,
            creator=session.creator,
            credits_per_voter=session.credits_per_voter,
            start_time=session.start_time,
            end_time=session.end_time,
            active=session.is_active(now),
            proposal_count=len(session.proposal_ids),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "creator": self.creator,
            "credits_per_voter": self.credits_per_voter,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "active": self.active,
            "proposal_count": self.proposal_count,
        }


@dataclass(frozen=True)
class ProposalSummary:
    """One row of getSessionProposals.

    ``vote_count`` is the total weight cast on the proposal in either
    direction.
    """
    proposal_id: int
    title: str
    description: str
    votes_for: int
    votes_against: int

    @property
    def vote_count(self) -> int:
        return self.votes_for + self.votes_against

    def to_dict(self) -> dict[str, Any]:
        return {
            "proposal_id": self.proposal_id,
            "title": self.title,
            "description": self.description,
            "vote_count": self.vote_count,
            "votes_for": self.votes_for,
            "votes_against": self.votes_against,
        }


@dataclass
class Placement:
    """A proposal's placement in a session ranking.

    Attributes:
        proposal_id: Proposal identifier
        rank: 1-indexed placement (tied proposals share the same rank)
        tied: Whether this proposal is tied with others at this rank
    """
    proposal_id: int
    rank: int
    tied: bool

    def to_dict(self) -> dict[str, Any]:
        return {"proposal_id": self.proposal_id, "rank": self.rank, "tied": self.tied}

    @classmethod
    def from_scores(cls, scores: dict[int, int]) -> list[Self]:
        """Rank proposals by score, highest first.

        Equal scores share a rank and the next distinct score skips the
        shared places (scores 5, 5, 2 rank 1, 1, 3). Within a shared rank
        proposals keep id order.
        """
        counts = Counter(scores.values())
        placements = []
        for position, (proposal_id, score) in enumerate(
            sorted(scores.items(), key=lambda item: (-item[1], item[0]))
        ):
            if placements and scores[placements[-1].proposal_id] == score:
                rank = placements[-1].rank
            else:
                rank = position + 1
            placements.append(cls(proposal_id=proposal_id, rank=rank, tied=counts[score] > 1))
        return placements


@dataclass
class SessionResults:
    """Session-level summary.

    Attributes:
        session_id: The session summarised
        proposal_count: Number of proposals in the session
        winning_proposal_id: Proposal with the strictly highest positive net
            score, or None when there is no such proposal
        total_votes_for: Sum of "for" votes across all proposals
        total_votes_against: Sum of "against" votes across all proposals
        details: Per-proposal net scores, for transparency
    """
    session_id: int
    proposal_count: int
    winning_proposal_id: int | None
    total_votes_for: int
    total_votes_against: int
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "proposal_count": self.proposal_count,
            "winning_proposal_id": self.winning_proposal_id,
            "total_votes_for": self.total_votes_for,
            "total_votes_against": self.total_votes_against,
            "details": self.details,
        }
