"""
Configuration for the voting engine and its JSON handler.

Values come from ``QV_``-prefixed environment variables (or a ``.env``
file). ``QV_ADMIN_ADDRESSES`` is a JSON list, e.g. ``'["0xabc"]'``.
"""
import logging

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MAX_PROPOSALS = 255


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_prefix="QV_", env_file=".env", extra="ignore")

    # Identities granted the admin capability by the JSON handler
    admin_addresses: list[str] = Field(default_factory=list)

    # Name of a registered cost rule (see qvote.pricing)
    cost_rule: str = "independent-squares"

    max_proposals_per_session: int = MAX_PROPOSALS

    log_level: str = "INFO"

    @field_validator("max_proposals_per_session")
    @classmethod
    def _check_max_proposals(cls, value: int) -> int:
        if not 1 <= value <= MAX_PROPOSALS:
            raise ValueError(f"max_proposals_per_session must be within 1..{MAX_PROPOSALS}")
        return value

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {value}")
        return level

    def is_admin(self, address: str) -> bool:
        return address.lower() in {a.lower() for a in self.admin_addresses}
