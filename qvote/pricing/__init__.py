"""Cost rules for pricing votes in credits."""

from collections.abc import Iterable

from qvote.models import VoteCount

from .base import CostRule

# Cost rule registry, filled by @register_cost_rule when a rule module is imported
_cost_rules: dict[str, type[CostRule]] = {}

DEFAULT_COST_RULE = "independent-squares"


def register_cost_rule(rule_class: type[CostRule]) -> type[CostRule]:
    """Decorator to register a cost rule class under its name."""
    _cost_rules[rule_class().name] = rule_class
    return rule_class


def get_all_cost_rules() -> list[CostRule]:
    """Return instances of all registered cost rules."""
    return [rule_class() for rule_class in _cost_rules.values()]


def get_cost_rule(name: str = DEFAULT_COST_RULE) -> CostRule:
    """Return an instance of the cost rule registered under ``name``."""
    try:
        return _cost_rules[name]()
    except KeyError:
        known = ", ".join(sorted(_cost_rules)) or "none"
        raise ValueError(f"Unknown cost rule {name!r} (registered: {known})") from None


def batch_cost(rule: CostRule, vote_counts: Iterable[VoteCount]) -> int:
    """Total credits for a batch, summed per proposal."""
    return sum(rule.cost(votes_for, votes_against) for votes_for, votes_against in vote_counts)
