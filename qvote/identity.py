"""Caller identity assertion supplied by the surrounding application."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Caller:
    """Who is calling, and whether they hold the admin capability.

    Authentication happens outside the engine; this is only the result.
    """
    address: str
    is_admin: bool = False

    @classmethod
    def admin(cls, address: str) -> "Caller":
        return cls(address=address, is_admin=True)
