"""Ledger components: one owner per entity."""

from .credits import CreditLedger
from .engine import VoteEngine, VoteReceipt
from .events import EventLog
from .locks import KeyedLock, SessionGate
from .proposals import ProposalStore
from .results import ResultsAggregator
from .sessions import SessionRegistry
from .voters import VoterRegistry

__all__ = [
    "CreditLedger",
    "EventLog",
    "KeyedLock",
    "ProposalStore",
    "ResultsAggregator",
    "SessionGate",
    "SessionRegistry",
    "VoteEngine",
    "VoteReceipt",
    "VoterRegistry",
]
