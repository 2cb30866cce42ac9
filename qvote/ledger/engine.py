"""The vote engine: quadratic pricing, affordability and atomic commit."""

import logging
import threading
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from qvote.errors import (
    InsufficientCredits,
    InvalidSession,
    InvalidVoteCount,
    ProposalNotFound,
    VoterNotRegistered,
)
from qvote.ledger.credits import CreditLedger
from qvote.ledger.events import EventLog, VoteCast
from qvote.ledger.locks import KeyedLock, SessionGate
from qvote.ledger.proposals import ProposalStore
from qvote.ledger.sessions import SessionRegistry
from qvote.ledger.voters import VoterRegistry
from qvote.models import VoteCount, VoteRecord
from qvote.pricing import get_cost_rule
from qvote.pricing.base import CostRule

# Import cost rules to register them
from qvote.pricing import independent  # noqa: F401
from qvote.pricing import exclusive  # noqa: F401

LOGGER = logging.getLogger(__name__)


@dataclass
class VoteReceipt:
    """What a successful vote call changed.

    Attributes:
        session_id: Session voted in
        voter: Who voted
        records: The VoteRecords now in force for the proposals in the batch
        credits_delta: Net change in spent credits (negative when refunded)
        credits_remaining: Balance after the vote
    """
    session_id: int
    voter: str
    records: list[VoteRecord]
    credits_delta: int
    credits_remaining: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "voter": self.voter,
            "records": [r.to_dict() for r in self.records],
            "credits_delta": self.credits_delta,
            "credits_remaining": self.credits_remaining,
        }


@dataclass
class _PlannedChange:
    proposal_id: int
    votes_for: int
    votes_against: int
    cost: int
    previous: VoteRecord | None


class VoteEngine:
    """Accepts vote batches and is the only writer of VoteRecords and tallies.

    Each call for a given (voter, session) runs under that pair's lock, so
    the affordability check and the commit cannot interleave with another
    call from the same voter in the same session. Calls from different
    voters or in different sessions run in parallel. Every call also holds
    the session's gate in shared mode, so a purge of that session waits
    for votes already in flight and no vote starts while it runs.

    Preconditions are checked in this order and the first failure aborts
    the whole batch with no change to any state:

    1. the session exists (InvalidSession)
    2. the session is active (InvalidSession)
    3. the voter is registered (VoterNotRegistered)
    4. the batch is well formed (InvalidVoteCount)
    5. every proposal belongs to the session (ProposalNotFound)
    6. the net credit delta is affordable (InsufficientCredits)

    A vote on a proposal the voter has already voted on replaces the old
    allocation; only the difference in cost is charged or refunded.
    """

    def __init__(
        self,
        sessions: SessionRegistry,
        proposals: ProposalStore,
        voters: VoterRegistry,
        credits: CreditLedger,
        cost_rule: CostRule | None = None,
        events: EventLog | None = None,
        locks: KeyedLock | None = None,
        gate: SessionGate | None = None,
    ) -> None:
        self._sessions = sessions
        self._proposals = proposals
        self._voters = voters
        self._credits = credits
        self._cost_rule = cost_rule or get_cost_rule()
        self._events = events if events is not None else EventLog()
        self._locks = locks if locks is not None else KeyedLock()
        self._gate = gate if gate is not None else SessionGate()
        self._records_lock = threading.Lock()
        self._records: dict[tuple[int, str, int], VoteRecord] = {}

    @property
    def cost_rule(self) -> CostRule:
        return self._cost_rule

    def calculate_cost(self, votes_for: int, votes_against: int = 0) -> int:
        """Price one allocation without touching any state."""
        self._cost_rule.validate(votes_for, votes_against)
        return self._cost_rule.cost(votes_for, votes_against)

    def vote(
        self,
        voter: str,
        session_id: int,
        proposal_ids: Sequence[int],
        vote_counts: Sequence[VoteCount | int],
    ) -> VoteReceipt:
        """Cast a batch of votes.

        Args:
            voter: Identity of the caller
            session_id: Session to vote in
            proposal_ids: Proposals to vote on, no repeats
            vote_counts: One entry per proposal id, either a
                (votes_for, votes_against) pair or a plain int meaning
                that many votes in favour

        Returns:
            VoteReceipt describing the committed change

        Raises:
            InvalidSession, VoterNotRegistered, InvalidVoteCount,
            ProposalNotFound, InsufficientCredits
        """
        with self._gate.shared(session_id), self._locks.hold((voter, session_id)):
            session = self._sessions.get(session_id)
            now = self._sessions.now
            if not session.is_active(now):
                LOGGER.debug("Rejected vote by %s: session %d not active", voter, session_id)
                raise InvalidSession(f"Session {session_id} is not accepting votes")
            if not self._voters.is_registered(voter):
                raise VoterNotRegistered(f"{voter} is not registered")

            batch = self._normalize_batch(proposal_ids, vote_counts)
            for proposal_id, _ in batch:
                if not self._proposals.contains(session_id, proposal_id):
                    raise ProposalNotFound(
                        f"Proposal {proposal_id} is not part of session {session_id}"
                    )

            plan = self._plan(voter, session_id, batch)
            credits_delta = sum(
                change.cost - (change.previous.credits_spent if change.previous else 0)
                for change in plan
            )

            account = self._credits.account(voter, session_id)
            available = account.remaining if account is not None else session.credits_per_voter
            if credits_delta > available:
                LOGGER.debug(
                    "Rejected vote by %s in session %d: needs %d, has %d",
                    voter, session_id, credits_delta, available,
                )
                raise InsufficientCredits(
                    f"Batch needs {credits_delta} more credits, {available} remaining"
                )

            records = self._commit(voter, session, plan, credits_delta)
            remaining = self._credits.remaining(voter, session_id)
            self._events.append(
                VoteCast, now,
                session_id=session_id,
                voter=voter,
                proposal_ids=tuple(pid for pid, _ in batch),
                vote_counts=tuple(counts for _, counts in batch),
                credits_delta=credits_delta,
            )

        LOGGER.debug(
            "%s voted on %d proposals in session %d: delta %+d, %d remaining",
            voter, len(records), session_id, credits_delta, remaining,
        )
        return VoteReceipt(
            session_id=session_id,
            voter=voter,
            records=records,
            credits_delta=credits_delta,
            credits_remaining=remaining,
        )

    def _normalize_batch(
        self, proposal_ids: Sequence[int], vote_counts: Sequence[VoteCount | int]
    ) -> list[tuple[int, VoteCount]]:
        if len(proposal_ids) != len(vote_counts):
            raise InvalidVoteCount(
                f"{len(proposal_ids)} proposal ids but {len(vote_counts)} vote counts"
            )
        if not proposal_ids:
            raise InvalidVoteCount("A vote batch must not be empty")

        batch: list[tuple[int, VoteCount]] = []
        seen: set[int] = set()
        for proposal_id, entry in zip(proposal_ids, vote_counts):
            if isinstance(proposal_id, bool) or not isinstance(proposal_id, int):
                raise InvalidVoteCount(f"Proposal ids must be integers, got {proposal_id!r}")
            if proposal_id in seen:
                raise InvalidVoteCount(f"Proposal {proposal_id} appears twice in one batch")
            seen.add(proposal_id)

            counts = self._as_vote_count(entry)
            self._cost_rule.validate(*counts)
            batch.append((proposal_id, counts))
        return batch

    @staticmethod
    def _as_vote_count(entry: VoteCount | int) -> VoteCount:
        if isinstance(entry, int) and not isinstance(entry, bool):
            return (entry, 0)
        if isinstance(entry, (tuple, list)) and len(entry) == 2:
            return (entry[0], entry[1])
        raise InvalidVoteCount(
            f"Vote counts must be an int or a (for, against) pair, got {entry!r}"
        )

    def _plan(
        self, voter: str, session_id: int, batch: list[tuple[int, VoteCount]]
    ) -> list[_PlannedChange]:
        plan = []
        with self._records_lock:
            for proposal_id, (votes_for, votes_against) in batch:
                plan.append(_PlannedChange(
                    proposal_id=proposal_id,
                    votes_for=votes_for,
                    votes_against=votes_against,
                    cost=self._cost_rule.cost(votes_for, votes_against),
                    previous=self._records.get((session_id, voter, proposal_id)),
                ))
        return plan

    def _commit(self, voter, session, plan, credits_delta) -> list[VoteRecord]:
        # Everything that can fail has been checked; from here on the ledger,
        # the records and the tallies move together.
        self._credits.allocate(voter, session.id, session.credits_per_voter)
        if credits_delta > 0:
            self._credits.debit(voter, session.id, credits_delta)
        elif credits_delta < 0:
            self._credits.credit(voter, session.id, -credits_delta)

        records = []
        for change in plan:
            record = VoteRecord(
                session_id=session.id,
                voter=voter,
                proposal_id=change.proposal_id,
                votes_for=change.votes_for,
                votes_against=change.votes_against,
                credits_spent=change.cost,
            )
            old_for = change.previous.votes_for if change.previous else 0
            old_against = change.previous.votes_against if change.previous else 0
            with self._records_lock:
                self._records[(session.id, voter, change.proposal_id)] = record
            self._proposals.apply_tally_delta(
                session.id, change.proposal_id,
                change.votes_for - old_for,
                change.votes_against - old_against,
            )
            records.append(record)
        return records

    def get_vote(self, session_id: int, voter: str, proposal_id: int) -> VoteRecord | None:
        with self._records_lock:
            return self._records.get((session_id, voter, proposal_id))

    def votes_by(self, session_id: int, voter: str) -> list[VoteRecord]:
        with self._records_lock:
            return sorted(
                (r for (sid, v, _), r in self._records.items() if sid == session_id and v == voter),
                key=lambda r: r.proposal_id,
            )

    def records_for_session(self, session_id: int) -> list[VoteRecord]:
        with self._records_lock:
            return [r for (sid, _, _), r in self._records.items() if sid == session_id]

    def drop_session(self, session_id: int) -> int:
        with self._records_lock:
            keys = [key for key in self._records if key[0] == session_id]
            for key in keys:
                del self._records[key]
        return len(keys)
