"""Tests for sign-in and sign-out."""
import json

import jwt
import pytest
import respx
from httpx import Response
from pydantic import ValidationError

from core.http_client import ApiClient
from core.session import Session
from schemas.auth import SignInRequest
from services.auth_service import sign_in, sign_out
from shared.api_errors import ServerRejectionError


@pytest.mark.asyncio
async def test__sign_in__stores_token_and_user(
    mock_api: respx.MockRouter, api: ApiClient,
) -> None:
    """A successful login stores the token and decodes the user from it."""
    token = jwt.encode(
        {"user_id": "u-1", "name": "Ana", "role": "admin"},
        "test-signing-secret-0123456789abcdef",
        algorithm="HS256",
    )
    mock_api.post("/auth/login").mock(return_value=Response(200, json={"token": token}))
    session = Session()

    result = await sign_in(
        api, session, SignInRequest(email="ana@keys.test", password="secret"),
    )

    assert result is session
    assert session.get_token() == token
    assert session.user is not None
    assert session.user.email == "ana@keys.test"
    assert session.user.role == "admin"
    assert json.loads(mock_api.calls[0].request.content) == {
        "email": "ana@keys.test",
        "password": "secret",
    }


@pytest.mark.asyncio
async def test__sign_in__wrong_credentials(mock_api: respx.MockRouter, api: ApiClient) -> None:
    """A rejected login leaves the session signed out."""
    mock_api.post("/auth/login").mock(
        return_value=Response(401, json={"message": "Credenciales inválidas"}),
    )
    session = Session()

    with pytest.raises(ServerRejectionError) as exc_info:
        await sign_in(api, session, SignInRequest(email="ana@keys.test", password="bad"))

    assert exc_info.value.message == "Credenciales inválidas"
    assert exc_info.value.category == "auth"
    assert not session.is_authenticated


@pytest.mark.asyncio
async def test__sign_in__fallback_message(mock_api: respx.MockRouter, api: ApiClient) -> None:
    """Without a server message the rejection reads 'Error en la sesión'."""
    mock_api.post("/auth/login").mock(return_value=Response(500))

    with pytest.raises(ServerRejectionError, match="Error en la sesión"):
        await sign_in(api, Session(), SignInRequest(email="ana@keys.test", password="x"))


def test__sign_in_request__invalid_email() -> None:
    """Malformed emails are rejected before any request."""
    with pytest.raises(ValidationError):
        SignInRequest(email="ana", password="x")


def test__sign_out__clears_session_and_notifies() -> None:
    """Signing out drops the token and tells listeners which token was retired."""
    retired: list[str | None] = []
    session = Session("admin_token")
    session.subscribe(retired.append)

    sign_out(session)

    assert not session.is_authenticated
    assert session.user is None
    assert retired == ["admin_token"]


def test__sign_out__already_signed_out() -> None:
    """Signing out twice notifies nobody the second time."""
    retired: list[str | None] = []
    session = Session()
    session.subscribe(retired.append)

    sign_out(session)

    assert retired == []
