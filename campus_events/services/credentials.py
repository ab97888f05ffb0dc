"""
Credential issuing and password hashing
"""

import asyncio
import logging
import secrets
from dataclasses import dataclass, field

import bcrypt

from campus_events.core.config import settings

logger = logging.getLogger(__name__)

# 16 random bytes = 128 bits of entropy, 22 url-safe characters
PASSWORD_BYTES = 16


@dataclass(frozen=True)
class IssuedCredential:
    password: str = field(repr=False)
    password_hash: str


def hash_password(password: str, rounds: int | None = None) -> str:
    salt = bcrypt.gensalt(rounds=rounds or settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # malformed stored hash
        return False


class CredentialIssuer:
    """Generates one-time passwords for newly minted organizer accounts"""

    def __init__(self, rounds: int | None = None):
        self.rounds = rounds

    def issue(self) -> IssuedCredential:
        password = secrets.token_urlsafe(PASSWORD_BYTES)
        return IssuedCredential(password=password, password_hash=hash_password(password, self.rounds))

    async def issue_async(self) -> IssuedCredential:
        """Same as ``issue`` with hashing moved off the event loop"""
        return await asyncio.to_thread(self.issue)
