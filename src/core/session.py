"""Session state: the bearer token and the signed-in user decoded from it."""
import logging
from collections.abc import Callable
from dataclasses import dataclass

import jwt

logger = logging.getLogger(__name__)


@dataclass
class SessionUser:
    """User identity read from the token's claims (display only, not verified)."""

    id: str
    email: str
    name: str
    role: str


def decode_user(token: str, fallback_email: str = "") -> SessionUser | None:
    """
    Read the user from a JWT without verifying its signature.

    The backend owns verification; the client only needs the claims to show who
    is signed in.

    Returns:
        SessionUser, or None if the token is not a decodable JWT.
    """
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError:
        logger.warning("session_token_undecodable")
        return None
    return SessionUser(
        id=str(claims.get("user_id") or claims.get("sub") or ""),
        email=claims.get("email") or fallback_email,
        name=claims.get("name") or "User",
        role=claims.get("role") or "user",
    )


class Session:
    """
    Holds the bearer token attached to every outgoing request.

    One Session lives for the lifetime of the client; nothing is persisted.
    """

    def __init__(self, token: str | None = None) -> None:
        self.token: str | None = None
        self.user: SessionUser | None = None
        self._listeners: list[Callable[[str | None], None]] = []
        if token:
            self.set_token(token)

    @property
    def is_authenticated(self) -> bool:
        """True when a token is present (the server still decides if it is valid)."""
        return bool(self.token)

    def subscribe(self, listener: Callable[[str | None], None]) -> None:
        """Call ``listener(previous_token)`` whenever the token is replaced or cleared."""
        self._listeners.append(listener)

    def set_token(self, token: str, email: str = "") -> None:
        """Store a new token and decode the user from it."""
        previous = self.token
        self.token = token
        self.user = decode_user(token, fallback_email=email)
        logger.debug("session_token_set user_id=%s", self.user.id if self.user else None)
        if previous and previous != token:
            self._notify(previous)

    def clear(self) -> None:
        """Sign out: drop the token and user."""
        previous = self.token
        self.token = None
        self.user = None
        if previous:
            self._notify(previous)

    def get_token(self) -> str | None:
        """Token provider used by the HTTP client."""
        return self.token

    def _notify(self, previous: str) -> None:
        for listener in self._listeners:
            listener(previous)
