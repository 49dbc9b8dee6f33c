"""Sign-in against the backend."""
import logging

from core.http_client import ApiClient
from core.session import Session
from schemas.auth import AuthResponse, SignInRequest

logger = logging.getLogger(__name__)


async def sign_in(api: ApiClient, session: Session, credentials: SignInRequest) -> Session:
    """
    Exchange credentials for a token and store it in the session.

    Raises:
        ServerRejectionError: Wrong credentials (server message, or "Error en la sesión").
        TransportError: Backend unreachable.
    """
    body = await api.post(
        "/auth/login",
        json=credentials.model_dump(mode="json"),
        fallback="Error en la sesión",
    )
    token = AuthResponse.model_validate(body).token
    session.set_token(token, email=credentials.email)
    logger.info("session_signed_in email=%s", credentials.email)
    return session


def sign_out(session: Session) -> None:
    """Drop the session's token; listeners discard what was cached under it."""
    signed_in = session.user.email if session.user else None
    session.clear()
    logger.info("session_signed_out email=%s", signed_in)
