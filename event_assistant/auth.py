"""Bearer-token decoding shared by the HTTP and command-stream adapters."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import jwt

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


class AuthenticationError(Exception):
    """Missing, invalid or expired caller credential."""


@dataclass(frozen=True)
class CallerIdentity:
    user_id: int
    role: str = "CLIENT"


def decode_token(token: str | None, secret: str, algorithms: list[str] | None = None) -> CallerIdentity:
    """
    Verify a JWT and extract the caller.

    Accepts the raw token or an ``Authorization`` style value with the
    ``Bearer`` prefix. The payload must carry an integer ``userId``.

    Raises:
        AuthenticationError: If the token is absent, invalid, expired or has no userId.
    """
    if not isinstance(token, str) or not token.strip():
        raise AuthenticationError("token is required and must be a non-empty string.")

    raw = token.strip()
    if raw.startswith(BEARER_PREFIX):
        raw = raw[len(BEARER_PREFIX) :].strip()

    try:
        payload = jwt.decode(raw, secret, algorithms=algorithms or ["HS256"])
    except jwt.InvalidTokenError as e:
        logger.info("Rejected token: %s", e)
        raise AuthenticationError("Invalid or expired token.") from e

    user_id = payload.get("userId")
    # bool is an int subclass and never a valid id
    if isinstance(user_id, bool) or not isinstance(user_id, int):
        raise AuthenticationError("Token does not contain a valid userId.")

    return CallerIdentity(user_id=user_id, role=str(payload.get("role", "CLIENT")))
