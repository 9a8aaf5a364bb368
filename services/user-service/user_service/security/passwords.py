"""bcrypt-backed one-way hashing for passwords and verification codes."""

from __future__ import annotations

import base64
import hashlib
import logging

import bcrypt

from ..config import Settings

logger = logging.getLogger(__name__)

MIN_ROUNDS = 4
PRODUCTION_MIN_ROUNDS = 10
DEFAULT_ROUNDS = 12


def _prepare(plaintext: str) -> bytes:
    # bcrypt only reads the first 72 bytes; digest first so long inputs stay significant
    digest = hashlib.sha256(plaintext.encode("utf-8")).digest()
    return base64.b64encode(digest)


class PasswordHasher:
    """Adaptive hash with a configurable cost factor."""

    def __init__(self, rounds: int = DEFAULT_ROUNDS) -> None:
        if rounds < MIN_ROUNDS:
            raise ValueError(f"bcrypt rounds must be at least {MIN_ROUNDS}")
        self._rounds = rounds

    @classmethod
    def from_settings(cls, settings: Settings) -> "PasswordHasher":
        """Build a hasher, refusing a weak cost factor in production."""
        if settings.is_production and settings.bcrypt_rounds < PRODUCTION_MIN_ROUNDS:
            raise ValueError(
                f"bcrypt rounds must be at least {PRODUCTION_MIN_ROUNDS} in production"
            )
        return cls(settings.bcrypt_rounds)

    @property
    def rounds(self) -> int:
        return self._rounds

    def hash(self, plaintext: str) -> str:
        """Return an opaque salted hash of ``plaintext``."""
        hashed = bcrypt.hashpw(_prepare(plaintext), bcrypt.gensalt(rounds=self._rounds))
        return hashed.decode("utf-8")

    def verify(self, hashed: str, plaintext: str) -> bool:
        """Return ``True`` when ``plaintext`` matches ``hashed``."""
        try:
            return bcrypt.checkpw(_prepare(plaintext), hashed.encode("utf-8"))
        except ValueError:
            logger.warning("stored password hash is malformed")
            return False
