"""Append-only log of committed ledger events."""

import threading
from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True)
class Event:
    """Base event. ``sequence`` is assigned by the log, starting at 1."""
    sequence: int
    timestamp: int

    def to_dict(self) -> dict[str, Any]:
        return {"event": type(self).__name__, **asdict(self)}


@dataclass(frozen=True)
class VoterRegistered(Event):
    voter: str
    email: str


@dataclass(frozen=True)
class SessionCreated(Event):
    session_id: int
    creator: str
    name: str


@dataclass(frozen=True)
class ProposalCreated(Event):
    session_id: int
    proposal_id: int
    creator: str
    title: str


@dataclass(frozen=True)
class VoteCast(Event):
    session_id: int
    voter: str
    proposal_ids: tuple[int, ...]
    vote_counts: tuple[tuple[int, int], ...]
    credits_delta: int


@dataclass(frozen=True)
class CreditsDistributed(Event):
    session_id: int
    voter: str
    amount: int


@dataclass(frozen=True)
class SessionPurged(Event):
    session_id: int
    admin: str


class EventLog:
    """Events in commit order.

    Writers call ``append`` with the event class and its fields; the log
    fills in the sequence number and timestamp.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._events: list[Event] = []

    def append(self, event_class: type[Event], timestamp: int, **fields: Any) -> Event:
        with self._lock:
            event = event_class(sequence=len(self._events) + 1, timestamp=timestamp, **fields)
            self._events.append(event)
            return event

    def all(self, session_id: int | None = None) -> list[Event]:
        with self._lock:
            events = list(self._events)
        if session_id is None:
            return events
        return [e for e in events if getattr(e, "session_id", None) == session_id]

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
