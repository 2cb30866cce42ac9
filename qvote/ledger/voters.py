"""Registry of voter identities."""

import logging
import threading

from qvote.errors import AlreadyRegistered, InvalidParameter
from qvote.models import Voter

LOGGER = logging.getLogger(__name__)


class VoterRegistry:
    """Tracks which identities are registered voters.

    Registration is permanent: there is no update or removal.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._voters: dict[str, Voter] = {}

    def register(self, identity: str, email: str) -> Voter:
        """Register ``identity``.

        Raises:
            InvalidParameter: If the identity is empty
            AlreadyRegistered: If the identity is already registered
        """
        if not identity:
            raise InvalidParameter("Voter identity must not be empty")
        with self._lock:
            if identity in self._voters:
                raise AlreadyRegistered(f"{identity} is already registered")
            voter = Voter(address=identity, email=email)
            self._voters[identity] = voter
        LOGGER.info("Registered voter %s", identity)
        return voter

    def is_registered(self, identity: str) -> bool:
        return identity in self._voters

    def get(self, identity: str) -> Voter | None:
        return self._voters.get(identity)

    def __len__(self) -> int:
        return len(self._voters)
