from __future__ import annotations

import jwt
import pytest

from conftest import TEST_AUTH_SECRET, make_token
from sia.services import auth_service
from sia.services.errors import UnauthenticatedError


def test_shared_secret_token_produces_auth_context() -> None:
    token = make_token(
        "user-1",
        email="a@example.com",
        name="Ada",
        phone_number="+15551234567",
        sign_in_provider="google.com",
    )
    auth = auth_service.verify_id_token(token)
    assert auth.uid == "user-1"
    assert auth.email == "a@example.com"
    assert auth.name == "Ada"
    assert auth.phone_number == "+15551234567"
    assert auth.sign_in_provider == "google.com"


def test_wrong_secret_is_rejected() -> None:
    token = jwt.encode({"sub": "user-1"}, "some-other-secret-that-is-long-enough", algorithm="HS256")
    with pytest.raises(UnauthenticatedError) as exc:
        auth_service.verify_id_token(token)
    assert exc.value.detail == "Authentication required"
    assert exc.value.status_code == 401


def test_token_without_subject_is_rejected() -> None:
    token = jwt.encode({"email": "a@example.com"}, TEST_AUTH_SECRET, algorithm="HS256")
    with pytest.raises(UnauthenticatedError):
        auth_service.verify_id_token(token)


def test_unsupported_backend_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SIA_AUTH_BACKEND", "basic")
    with pytest.raises(UnauthenticatedError):
        auth_service.verify_id_token(make_token("user-1"))


def test_firebase_backend_requires_project_id(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SIA_AUTH_BACKEND", "firebase")
    monkeypatch.delenv("FIREBASE_PROJECT_ID", raising=False)
    with pytest.raises(UnauthenticatedError):
        auth_service.verify_id_token(make_token("user-1"))


@pytest.mark.asyncio
async def test_require_user_needs_bearer_scheme() -> None:
    with pytest.raises(UnauthenticatedError):
        await auth_service.require_user(f"Token {make_token('user-1')}")
    auth = await auth_service.require_user(f"Bearer {make_token('user-1')}")
    assert auth.uid == "user-1"


@pytest.mark.asyncio
async def test_optional_user_tolerates_missing_or_bad_tokens() -> None:
    assert await auth_service.optional_user(None) is None
    assert await auth_service.optional_user("Bearer garbage") is None
    auth = await auth_service.optional_user(f"Bearer {make_token('user-2')}")
    assert auth is not None and auth.uid == "user-2"
