"""Quadratic voting: session credit accounting and vote tallying."""

from qvote.identity import Caller
from qvote.service import QuadraticVoting

__all__ = ["Caller", "QuadraticVoting"]
