"""Catalogue of proposals, scoped per session."""

import logging
import threading
from dataclasses import replace

from qvote.errors import InvalidProposalCount, ProposalNotFound
from qvote.models import Proposal

LOGGER = logging.getLogger(__name__)


class ProposalStore:
    """Proposals of every session, keyed by session then proposal id.

    A session's proposals are written once, when the session is created,
    with ids 1, 2, 3, ... in the order given. Later insertion is refused.
    Only the vote engine adjusts tallies, through ``apply_tally_delta``.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._proposals: dict[int, dict[int, Proposal]] = {}

    def create_for_session(
        self, session_id: int, proposals: list[tuple[str, str]]
    ) -> list[Proposal]:
        """Store the full proposal set of a new session.

        Raises:
            InvalidProposalCount: If ``proposals`` is empty or the session
                already has proposals
        """
        if not proposals:
            raise InvalidProposalCount("A session needs at least one proposal")
        with self._lock:
            if session_id in self._proposals:
                raise InvalidProposalCount(
                    f"Session {session_id} already has its proposals"
                )
            created = {
                index: Proposal(id=index, session_id=session_id, title=title, description=description)
                for index, (title, description) in enumerate(proposals, start=1)
            }
            self._proposals[session_id] = created
            return [replace(p) for p in created.values()]

    def contains(self, session_id: int, proposal_id: int) -> bool:
        return proposal_id in self._proposals.get(session_id, {})

    def get(self, session_id: int, proposal_id: int) -> Proposal:
        with self._lock:
            proposal = self._proposals.get(session_id, {}).get(proposal_id)
            if proposal is None:
                raise ProposalNotFound(
                    f"Proposal {proposal_id} is not part of session {session_id}"
                )
            return replace(proposal)

    def for_session(self, session_id: int) -> list[Proposal]:
        """Proposals of a session in id order (empty for unknown sessions)."""
        with self._lock:
            return [replace(p) for p in self._proposals.get(session_id, {}).values()]

    def apply_tally_delta(
        self, session_id: int, proposal_id: int, delta_for: int, delta_against: int
    ) -> None:
        """Shift a proposal's totals by signed deltas."""
        with self._lock:
            proposal = self._proposals[session_id][proposal_id]
            proposal.total_votes_for += delta_for
            proposal.total_votes_against += delta_against
        LOGGER.debug(
            "Session %d proposal %d tally moved by (%+d, %+d)",
            session_id, proposal_id, delta_for, delta_against,
        )

    def drop_session(self, session_id: int) -> int:
        with self._lock:
            removed = self._proposals.pop(session_id, {})
        return len(removed)
