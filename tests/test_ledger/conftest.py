"""Shared fixtures for ledger component tests."""

import pytest
from tests.conftest import START

from qvote.clock import ManualClock
from qvote.ledger import (
    CreditLedger,
    EventLog,
    KeyedLock,
    ProposalStore,
    ResultsAggregator,
    SessionRegistry,
    VoteEngine,
    VoterRegistry,
)


class Components:
    """Every ledger component wired together on one manual clock."""

    def __init__(self, cost_rule=None):
        self.clock = ManualClock(START)
        self.events = EventLog()
        self.locks = KeyedLock()
        self.voters = VoterRegistry()
        self.credits = CreditLedger()
        self.proposals = ProposalStore()
        self.sessions = SessionRegistry(self.proposals, self.clock, events=self.events)
        self.engine = VoteEngine(
            self.sessions,
            self.proposals,
            self.voters,
            self.credits,
            cost_rule=cost_rule,
            events=self.events,
            locks=self.locks,
        )
        self.results = ResultsAggregator(self.sessions, self.proposals)


@pytest.fixture
def ledger():
    return Components()
