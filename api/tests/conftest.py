"""Pytest configuration and fixtures."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Optional

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sia.adapters.sia_store import InMemorySiaStore  # noqa: E402
from sia.main import app  # noqa: E402
from sia.services.story_protocol_provider import SimulatedStoryProtocolProvider  # noqa: E402

TEST_AUTH_SECRET = "sia-test-secret-with-enough-length-for-hs256"


@pytest.fixture(autouse=True)
def _isolated_app_state(monkeypatch: pytest.MonkeyPatch) -> None:
    # Fresh store and simulated providers per test; env-driven config is reset.
    monkeypatch.setenv("SIA_AUTH_BACKEND", "shared_secret")
    monkeypatch.setenv("SIA_AUTH_SECRET", TEST_AUTH_SECRET)
    for key in (
        "DATABASE_URL",
        "SIA_STORE_PATH",
        "WALLET_PROVIDER_BACKEND",
        "STORY_PROTOCOL_BACKEND",
        "STORY_PROTOCOL_PRIVATE_KEY",
        "STORY_PROTOCOL_SPG_CONTRACT",
        "STORY_PROTOCOL_SIMULATED_DELAY_MS",
        "METADATA_STORAGE_DIR",
        "PUBLIC_APP_URL",
        "STORY_EXPLORER_URL",
        "WALLET_PROVISION_PAUSE_MS",
        "API_LOG_ALL_REQUESTS",
    ):
        os.environ.pop(key, None)

    app.state.sia_store = InMemorySiaStore()
    app.state.story_protocol_provider = SimulatedStoryProtocolProvider()
    if hasattr(app.state, "wallet_provider"):
        delattr(app.state, "wallet_provider")


def make_token(
    uid: str,
    *,
    email: Optional[str] = None,
    name: Optional[str] = None,
    phone_number: Optional[str] = None,
    sign_in_provider: Optional[str] = None,
) -> str:
    claims: dict = {"sub": uid}
    if email:
        claims["email"] = email
    if name:
        claims["name"] = name
    if phone_number:
        claims["phone_number"] = phone_number
    if sign_in_provider:
        claims["firebase"] = {"sign_in_provider": sign_in_provider}
    return jwt.encode(claims, TEST_AUTH_SECRET, algorithm="HS256")


def auth_headers(uid: str, **claims) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(uid, **claims)}"}


@pytest_asyncio.fixture
async def client():
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
