"""Abstract base class for cost rules."""

from abc import ABC, abstractmethod

from qvote.errors import InvalidVoteCount

MAX_VOTES = 2**64 - 1


class CostRule(ABC):
    """Abstract base class for cost rules.

    A cost rule prices the allocation a voter places on a single proposal.
    Rules are registered via the @register_cost_rule decorator in
    qvote/pricing/__init__.py and selected by name.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Registry name of this cost rule."""
        pass

    @property
    def description(self) -> str:
        """Optional description of how this rule prices votes."""
        return ""

    def validate(self, votes_for: int, votes_against: int) -> None:
        """Check that an allocation is acceptable under this rule.

        The base check only enforces the numeric domain: both counts must be
        plain ints within 0..2^64-1.

        Raises:
            InvalidVoteCount: If the allocation is rejected
        """
        for count in (votes_for, votes_against):
            if isinstance(count, bool) or not isinstance(count, int):
                raise InvalidVoteCount(f"Vote counts must be integers, got {count!r}")
            if not 0 <= count <= MAX_VOTES:
                raise InvalidVoteCount(f"Vote count {count} is out of range")

    @abstractmethod
    def cost(self, votes_for: int, votes_against: int) -> int:
        """Credits needed to hold this allocation on one proposal.

        Args:
            votes_for: Votes cast in favour
            votes_against: Votes cast against

        Returns:
            Cost in credits
        """
        pass
