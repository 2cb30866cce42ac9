"""Independent-squares cost rule."""

from qvote.pricing import register_cost_rule
from qvote.pricing.base import CostRule


@register_cost_rule
class IndependentSquaresRule(CostRule):
    """Quadratic pricing applied to each direction on its own.

    n votes in one direction cost n² credits:
    - 1 vote = 1 credit
    - 2 votes = 4 credits
    - 3 votes = 9 credits

    Voting both "for" and "against" the same proposal is allowed and costs
    the sum of the two squares.
    """

    @property
    def name(self) -> str:
        return "independent-squares"

    @property
    def description(self) -> str:
        return "cost = for² + against²"

    def cost(self, votes_for: int, votes_against: int) -> int:
        return votes_for * votes_for + votes_against * votes_against
