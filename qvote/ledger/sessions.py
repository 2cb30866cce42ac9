"""Session metadata and lifecycle."""

import logging
import threading

from qvote.clock import Clock
from qvote.config import MAX_PROPOSALS
from qvote.errors import InvalidParameter, InvalidProposalCount, InvalidSession, Unauthorized
from qvote.identity import Caller
from qvote.ledger.events import EventLog, ProposalCreated, SessionCreated
from qvote.ledger.proposals import ProposalStore
from qvote.models import Session, SessionView

LOGGER = logging.getLogger(__name__)

MAX_CREDITS_PER_VOTER = 255


class SessionRegistry:
    """Creates sessions and answers lifecycle questions about them.

    A session is pending until ``start_time``, active while
    ``start_time <= now < end_time`` and ended from ``end_time`` on. The
    state is worked out from the clock on every call; nothing runs in the
    background.
    """

    def __init__(
        self,
        proposals: ProposalStore,
        clock: Clock,
        events: EventLog | None = None,
        max_proposals: int = MAX_PROPOSALS,
    ) -> None:
        self._proposals = proposals
        self._clock = clock
        self._events = events if events is not None else EventLog()
        self._max_proposals = max_proposals
        self._lock = threading.Lock()
        self._sessions: dict[int, Session] = {}
        self._counter = 0

    def create_session(
        self,
        caller: Caller,
        name: str,
        description: str,
        credits_per_voter: int,
        duration_seconds: int,
        proposals: list[tuple[str, str]],
    ) -> Session:
        """Create a session together with its full, fixed proposal set.

        Args:
            caller: Must hold the admin capability
            name: Session name
            description: Session description
            credits_per_voter: Credits each voter receives, 1..255
            duration_seconds: Length of the voting window, >= 0
            proposals: (title, description) pairs; ids are assigned 1, 2, ...

        Returns:
            The new Session, starting now

        Raises:
            Unauthorized: Caller is not an admin
            InvalidProposalCount: No proposals, or more than the maximum
            InvalidParameter: Credits, duration or a proposal title out of range
        """
        if not caller.is_admin:
            raise Unauthorized(f"{caller.address} may not create sessions")
        if not proposals:
            raise InvalidProposalCount("A session needs at least one proposal")
        if len(proposals) > self._max_proposals:
            raise InvalidProposalCount(
                f"A session holds at most {self._max_proposals} proposals, got {len(proposals)}"
            )
        if isinstance(credits_per_voter, bool) or not isinstance(credits_per_voter, int) \
                or not 1 <= credits_per_voter <= MAX_CREDITS_PER_VOTER:
            raise InvalidParameter(
                f"credits_per_voter must be within 1..{MAX_CREDITS_PER_VOTER}"
            )
        if isinstance(duration_seconds, bool) or not isinstance(duration_seconds, int) \
                or duration_seconds < 0:
            raise InvalidParameter("duration_seconds must be a non-negative integer")
        normalized = []
        for entry in proposals:
            if not isinstance(entry, (tuple, list)) or len(entry) != 2:
                raise InvalidParameter(
                    f"Proposals must be (title, description) pairs, got {entry!r}"
                )
            title, proposal_description = entry
            if not isinstance(title, str) or not isinstance(proposal_description, str):
                raise InvalidParameter("Proposal title and description must be strings")
            if not title:
                raise InvalidParameter("Proposal titles must not be empty")
            normalized.append((title, proposal_description))

        with self._lock:
            now = self._clock.now()
            session_id = self._counter + 1
            created = self._proposals.create_for_session(session_id, normalized)
            session = Session(
                id=session_id,
                name=name,
                description=description,
                creator=caller.address,
                credits_per_voter=credits_per_voter,
                start_time=now,
                end_time=now + duration_seconds,
                proposal_ids=tuple(p.id for p in created),
            )
            self._sessions[session_id] = session
            self._counter = session_id

            self._events.append(
                SessionCreated, now, session_id=session_id, creator=caller.address, name=name
            )
            for proposal in created:
                self._events.append(
                    ProposalCreated, now,
                    session_id=session_id,
                    proposal_id=proposal.id,
                    creator=caller.address,
                    title=proposal.title,
                )

        LOGGER.info(
            "Session %d %r created by %s with %d proposals, %d credits per voter, open until %d",
            session_id, name, caller.address, len(created), credits_per_voter, session.end_time,
        )
        return session

    def get(self, session_id: int) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            raise InvalidSession(f"Session {session_id} does not exist")
        return session

    def get_session(self, session_id: int) -> SessionView:
        return SessionView.from_session(self.get(session_id), self._clock.now())

    def exists(self, session_id: int) -> bool:
        return session_id in self._sessions

    def is_active(self, session_id: int) -> bool:
        """True while the session accepts votes. Unknown sessions are never active."""
        session = self._sessions.get(session_id)
        return session is not None and session.is_active(self._clock.now())

    def has_ended(self, session_id: int) -> bool:
        return self.get(session_id).has_ended(self._clock.now())

    def remove(self, session_id: int) -> Session:
        """Forget an ended session and its proposals."""
        with self._lock:
            session = self.get(session_id)
            if not session.has_ended(self._clock.now()):
                raise InvalidSession(f"Session {session_id} has not ended yet")
            del self._sessions[session_id]
            self._proposals.drop_session(session_id)
        return session

    def all(self) -> list[Session]:
        return [self._sessions[sid] for sid in sorted(self._sessions)]

    @property
    def now(self) -> int:
        return self._clock.now()
