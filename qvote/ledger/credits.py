"""Per-voter, per-session credit balances."""

import logging
import threading
from dataclasses import replace

from qvote.errors import InsufficientCredits, InvalidParameter
from qvote.models import CreditAccount

LOGGER = logging.getLogger(__name__)


class CreditLedger:
    """Owns every CreditAccount; nothing else mutates them.

    Readers get copies. ``remaining`` is always ``total - spent`` and never
    goes negative: a debit that would overdraw fails without touching the
    account.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._accounts: dict[tuple[str, int], CreditAccount] = {}

    def allocate(self, voter: str, session_id: int, amount: int) -> CreditAccount:
        """Open an account with ``amount`` credits.

        Idempotent: if the account already exists it is returned unchanged,
        whatever ``amount`` is. Use ``top_up`` to add credits on purpose.
        """
        if amount < 0:
            raise InvalidParameter("Allocation must not be negative")
        with self._lock:
            account = self._accounts.get((voter, session_id))
            if account is None:
                account = CreditAccount(voter=voter, session_id=session_id, total=amount)
                self._accounts[(voter, session_id)] = account
                LOGGER.debug("Allocated %d credits to %s in session %d", amount, voter, session_id)
            return replace(account)

    def has_account(self, voter: str, session_id: int) -> bool:
        return (voter, session_id) in self._accounts

    def account(self, voter: str, session_id: int) -> CreditAccount | None:
        with self._lock:
            account = self._accounts.get((voter, session_id))
            return replace(account) if account is not None else None

    def remaining(self, voter: str, session_id: int) -> int:
        """Credits left; 0 when no account has been allocated."""
        with self._lock:
            account = self._accounts.get((voter, session_id))
            return account.remaining if account is not None else 0

    def debit(self, voter: str, session_id: int, delta: int) -> None:
        """Spend ``delta`` credits, all or nothing.

        Raises:
            InsufficientCredits: If fewer than ``delta`` credits remain
        """
        if delta < 0:
            raise InvalidParameter("Debit must not be negative")
        with self._lock:
            account = self._accounts.get((voter, session_id))
            remaining = account.remaining if account is not None else 0
            if remaining < delta:
                raise InsufficientCredits(
                    f"Need {delta} credits, {remaining} remaining"
                )
            if account is not None:
                account.spent += delta

    def credit(self, voter: str, session_id: int, delta: int) -> None:
        """Give back ``delta`` previously spent credits. ``spent`` never drops below zero."""
        if delta < 0:
            raise InvalidParameter("Credit must not be negative")
        with self._lock:
            account = self._accounts.get((voter, session_id))
            if account is None:
                return
            account.spent = max(account.spent - delta, 0)

    def top_up(self, voter: str, session_id: int, amount: int) -> CreditAccount:
        """Explicitly add ``amount`` credits to an existing account."""
        if amount <= 0:
            raise InvalidParameter("Top-up amount must be positive")
        with self._lock:
            account = self._accounts.get((voter, session_id))
            if account is None:
                raise InvalidParameter(
                    f"No credit account for {voter} in session {session_id}"
                )
            account.total += amount
            return replace(account)

    def drop_session(self, session_id: int) -> int:
        """Delete every account of a session. Returns how many were removed."""
        with self._lock:
            keys = [key for key in self._accounts if key[1] == session_id]
            for key in keys:
                del self._accounts[key]
        return len(keys)

    def accounts_for_session(self, session_id: int) -> list[CreditAccount]:
        with self._lock:
            return [replace(a) for (_, sid), a in self._accounts.items() if sid == session_id]
