"""Shared test helpers."""

import pytest

from qvote.clock import ManualClock
from qvote.identity import Caller
from qvote.service import QuadraticVoting

ADMIN = Caller.admin("0xadmin")
START = 1_700_000_000


def make_service(clock: ManualClock | None = None, **kwargs) -> QuadraticVoting:
    """Build a fresh ledger on a manual clock."""
    return QuadraticVoting(clock=clock or ManualClock(START), **kwargs)


def make_session(
    qv: QuadraticVoting,
    titles: list[str] = ("A", "B"),
    credits: int = 100,
    duration: int = 3600,
) -> int:
    """Create a session with one proposal per title (ids 1, 2, ...)."""
    return qv.create_session(
        ADMIN,
        "Test session",
        "A session for tests",
        credits,
        duration,
        [(title, f"Proposal {title}") for title in titles],
    )


def register(qv: QuadraticVoting, *addresses: str) -> list[Caller]:
    """Register each address and return their callers."""
    callers = []
    for address in addresses:
        caller = Caller(address)
        qv.register_voter(caller, f"{address}@example.com")
        callers.append(caller)
    return callers


@pytest.fixture
def clock():
    return ManualClock(START)


@pytest.fixture
def qv(clock):
    return make_service(clock)
