"""Exclusive-direction cost rule."""

from qvote.errors import InvalidVoteCount
from qvote.pricing import register_cost_rule
from qvote.pricing.independent import IndependentSquaresRule


@register_cost_rule
class ExclusiveDirectionRule(IndependentSquaresRule):
    """Quadratic pricing where a voter picks one side per proposal.

    Prices exactly like independent-squares, but an allocation with both
    "for" and "against" votes on the same proposal is rejected.
    """

    @property
    def name(self) -> str:
        return "exclusive-direction"

    @property
    def description(self) -> str:
        return "cost = n² for n votes on one side; both sides at once is rejected"

    def validate(self, votes_for: int, votes_against: int) -> None:
        super().validate(votes_for, votes_against)
        if votes_for > 0 and votes_against > 0:
            raise InvalidVoteCount(
                "Cannot vote both for and against the same proposal"
            )
