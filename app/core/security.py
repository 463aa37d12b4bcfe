"""
Bearer-token verification.

Tokens are minted by the external identity provider and signed with the shared
SECRET_KEY. The ``sub`` claim carries the provider's user id, which maps to
``User.external_id``.
"""
from datetime import datetime, timedelta, timezone

from jose import jwt

from app.core.config import settings


def create_access_token(subject: str, expires_minutes: int = 60) -> str:
    """Mint a token the way the identity provider does. Used by scripts and tests."""
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    payload = {"sub": subject, "type": "access", "exp": expire}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> dict:
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
