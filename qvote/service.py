"""Orchestrator: one quadratic voting ledger and the operations it exposes."""

import logging
from typing import Self

from qvote.clock import Clock, SystemClock
from qvote.config import MAX_PROPOSALS, Settings
from qvote.errors import InvalidParameter, InvalidSession, Unauthorized, VoterNotRegistered
from qvote.identity import Caller
from qvote.ledger import (
    CreditLedger,
    EventLog,
    KeyedLock,
    ProposalStore,
    ResultsAggregator,
    SessionGate,
    SessionRegistry,
    VoteEngine,
    VoteReceipt,
    VoterRegistry,
)
from qvote.ledger.events import CreditsDistributed, Event, SessionPurged, VoterRegistered
from qvote.models import (
    CreditAccount,
    Placement,
    Proposal,
    ProposalSummary,
    SessionResults,
    SessionView,
    VoteCount,
    VoteRecord,
    Voter,
)
from qvote.pricing import get_cost_rule
from qvote.pricing.base import CostRule

LOGGER = logging.getLogger(__name__)

class QuadraticVoting:
    """A complete, self-contained voting ledger.

    Holds one instance of every component. There is no process-wide state:
    two QuadraticVoting objects never see each other's data, so tests can
    simply build a fresh one.

    Example:
        >>> qv = QuadraticVoting(clock=ManualClock())
        >>> admin = Caller.admin("0xadmin")
        >>> sid = qv.create_session(admin, "Budget", "", 100, 3600,
        ...                         [("Parks", ""), ("Roads", "")])
        >>> _ = qv.register_voter(Caller("0xalice"), "alice@example.com")
        >>> qv.vote(Caller("0xalice"), sid, [1], [(5, 0)]).credits_remaining
        75
    """

    def __init__(
        self,
        clock: Clock | None = None,
        cost_rule: CostRule | None = None,
        max_proposals: int = MAX_PROPOSALS,
    ) -> None:
        self.clock = clock or SystemClock()
        self._events = EventLog()
        self._locks = KeyedLock()
        self._gate = SessionGate()
        self.voters = VoterRegistry()
        self.credits = CreditLedger()
        self.proposals = ProposalStore()
        self.sessions = SessionRegistry(
            self.proposals, self.clock, events=self._events, max_proposals=max_proposals
        )
        self.engine = VoteEngine(
            self.sessions,
            self.proposals,
            self.voters,
            self.credits,
            cost_rule=cost_rule,
            events=self._events,
            locks=self._locks,
            gate=self._gate,
        )
        self.results = ResultsAggregator(self.sessions, self.proposals)

    @classmethod
    def from_settings(cls, settings: Settings, clock: Clock | None = None) -> Self:
        return cls(
            clock=clock,
            cost_rule=get_cost_rule(settings.cost_rule),
            max_proposals=settings.max_proposals_per_session,
        )

    # --- Voters ---

    def register_voter(self, caller: Caller, email: str) -> Voter:
        voter = self.voters.register(caller.address, email)
        self._events.append(VoterRegistered, self.clock.now(), voter=voter.address, email=email)
        return voter

    def get_voter(self, address: str) -> Voter | None:
        return self.voters.get(address)

    # --- Sessions ---

    def create_session(
        self,
        caller: Caller,
        name: str,
        description: str,
        credits_per_voter: int,
        duration_seconds: int,
        proposals: list[tuple[str, str]],
    ) -> int:
        """Create a session with its proposals and return the new session id."""
        session = self.sessions.create_session(
            caller, name, description, credits_per_voter, duration_seconds, proposals
        )
        return session.id

    def get_session(self, session_id: int) -> SessionView:
        return self.sessions.get_session(session_id)

    def is_session_active(self, session_id: int) -> bool:
        return self.sessions.is_active(session_id)

    def get_proposal(self, session_id: int, proposal_id: int) -> Proposal:
        self.sessions.get(session_id)
        return self.proposals.get(session_id, proposal_id)

    # --- Voting ---

    def vote(
        self,
        caller: Caller,
        session_id: int,
        proposal_ids: list[int],
        vote_counts: list[VoteCount | int],
    ) -> VoteReceipt:
        return self.engine.vote(caller.address, session_id, proposal_ids, vote_counts)

    def get_vote(self, session_id: int, voter: str, proposal_id: int) -> VoteRecord | None:
        self.sessions.get(session_id)
        return self.engine.get_vote(session_id, voter, proposal_id)

    def calculate_vote_cost(self, votes_for: int, votes_against: int = 0) -> int:
        return self.engine.calculate_cost(votes_for, votes_against)

    # --- Credits ---

    def get_voter_session_credits(self, session_id: int, voter: str) -> CreditAccount:
        """Balance of ``voter`` in a session.

        A registered voter who has not voted yet reports the credits they
        will receive on joining; an unregistered identity reports zero.
        """
        session = self.sessions.get(session_id)
        account = self.credits.account(voter, session_id)
        if account is not None:
            return account
        total = session.credits_per_voter if self.voters.is_registered(voter) else 0
        return CreditAccount(voter=voter, session_id=session_id, total=total)

    def distribute_credits(
        self, caller: Caller, session_id: int, allocations: dict[str, int]
    ) -> list[CreditAccount]:
        """Top up voters' balances in a session (admin only).

        Every voter is first given their regular allocation if they have not
        joined yet, then ``amount`` extra credits. Either every top-up is
        applied or none is.

        Raises:
            Unauthorized: Caller is not an admin
            InvalidSession: Session unknown or already ended
            VoterNotRegistered: One of the voters is not registered
            InvalidParameter: Empty mapping or a non-positive amount
        """
        if not caller.is_admin:
            raise Unauthorized(f"{caller.address} may not distribute credits")
        if not allocations:
            raise InvalidParameter("No credits to distribute")
        for voter, amount in allocations.items():
            if not self.voters.is_registered(voter):
                raise VoterNotRegistered(f"{voter} is not registered")
            if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
                raise InvalidParameter(f"Top-up for {voter} must be a positive integer")

        accounts = []
        keys = [(voter, session_id) for voter in allocations]
        with self._gate.shared(session_id), self._locks.hold_many(keys):
            session = self.sessions.get(session_id)
            now = self.clock.now()
            if session.has_ended(now):
                raise InvalidSession(f"Session {session_id} has ended")
            for voter, amount in allocations.items():
                self.credits.allocate(voter, session_id, session.credits_per_voter)
                accounts.append(self.credits.top_up(voter, session_id, amount))
                self._events.append(
                    CreditsDistributed, now, session_id=session_id, voter=voter, amount=amount
                )
        LOGGER.info(
            "%s distributed %d credits to %d voters in session %d",
            caller.address, sum(allocations.values()), len(allocations), session_id,
        )
        return accounts

    # --- Results ---

    def get_proposal_results(self, session_id: int, proposal_id: int) -> tuple[int, int]:
        return self.results.get_proposal_results(session_id, proposal_id)

    def get_session_results(self, session_id: int) -> SessionResults:
        return self.results.get_session_results(session_id)

    def get_session_proposals(self, session_id: int) -> list[ProposalSummary]:
        return self.results.get_session_proposals(session_id)

    def rank_proposals(self, session_id: int) -> list[Placement]:
        return self.results.rank_proposals(session_id)

    # --- Housekeeping ---

    def purge_session(self, caller: Caller, session_id: int) -> None:
        """Delete an ended session with its proposals, accounts and votes (admin only)."""
        if not caller.is_admin:
            raise Unauthorized(f"{caller.address} may not purge sessions")
        with self._gate.exclusive(session_id):
            self.sessions.remove(session_id)
            accounts = self.credits.drop_session(session_id)
            records = self.engine.drop_session(session_id)
            self._locks.discard(lambda key: isinstance(key, tuple) and key[1] == session_id)
            self._events.append(
                SessionPurged, self.clock.now(), session_id=session_id, admin=caller.address
            )
        LOGGER.info(
            "Session %d purged by %s (%d accounts, %d vote records)",
            session_id, caller.address, accounts, records,
        )

    def events(self, session_id: int | None = None) -> list[Event]:
        return self._events.all(session_id)
