"""Errors surfaced to callers of the voting engine.

Every failed operation raises exactly one of these and leaves the ledger
state untouched.
"""

from typing import Any


class QuadraticVotingError(Exception):
    """Base class for all engine errors.

    The ``kind`` is the class name and is what outer layers report to their
    clients.
    """

    default_message = "Quadratic voting error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)

    @property
    def kind(self) -> str:
        return type(self).__name__

    @property
    def message(self) -> str:
        return str(self)

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.kind, "message": self.message}


class InvalidSession(QuadraticVotingError):
    """Unknown session, or session not in the state the operation needs."""
    default_message = "Session not found or not in the required state"


class ProposalNotFound(QuadraticVotingError):
    default_message = "Proposal is not part of this session"


class VoterNotRegistered(QuadraticVotingError):
    default_message = "Voter is not registered"


class InsufficientCredits(QuadraticVotingError):
    default_message = "Not enough credits remaining"


class InvalidVoteCount(QuadraticVotingError):
    """Malformed vote batch (length mismatch, empty, duplicate or bad counts)."""
    default_message = "Invalid vote batch"


class InvalidProposalCount(QuadraticVotingError):
    default_message = "A session needs between 1 and 255 proposals"


class Unauthorized(QuadraticVotingError):
    default_message = "Caller is not allowed to perform this operation"


class AlreadyRegistered(QuadraticVotingError):
    default_message = "Voter is already registered"


class InvalidParameter(QuadraticVotingError):
    """A scalar argument is outside its allowed range."""
    default_message = "Invalid parameter"
