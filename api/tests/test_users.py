from __future__ import annotations

import pytest
from httpx import AsyncClient

from conftest import auth_headers
from sia.main import app
from sia.models.user import WALLET_CHAINS


@pytest.mark.asyncio
async def test_ensure_profile_is_idempotent(client: AsyncClient) -> None:
    headers = auth_headers("alice", email="alice@example.com", name="Alice", sign_in_provider="google.com")

    first = await client.post("/api/users/me", headers=headers)
    assert first.status_code == 201
    profile = first.json()
    assert profile["uid"] == "alice"
    assert profile["display_name"] == "Alice"
    assert profile["auth_providers"] == ["google.com"]
    assert profile["wallets"] == {}
    assert profile["phone"] == {"number": None, "is_verified": False, "verified_at": None}
    assert profile["wallets_status"] is None

    second = await client.post("/api/users/me", headers=headers)
    assert second.status_code == 200
    assert second.json()["created_at"] == profile["created_at"]


@pytest.mark.asyncio
async def test_password_sign_in_has_no_oauth_provider(client: AsyncClient) -> None:
    resp = await client.post("/api/users/me", headers=auth_headers("bob", sign_in_provider="password"))
    assert resp.status_code == 201
    assert resp.json()["auth_providers"] == []


@pytest.mark.asyncio
async def test_get_profile_404_before_creation(client: AsyncClient) -> None:
    resp = await client.get("/api/users/me", headers=auth_headers("nobody"))
    assert resp.status_code == 404
    assert resp.json()["detail"] == "User profile not found"


@pytest.mark.asyncio
async def test_phone_verification_requires_number(client: AsyncClient) -> None:
    resp = await client.post("/api/users/me/phone-verification", json={}, headers=auth_headers("alice"))
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Phone number is required"


@pytest.mark.asyncio
async def test_phone_verification_creates_wallets_for_every_chain(client: AsyncClient) -> None:
    headers = auth_headers("alice")
    await client.post("/api/users/me", headers=headers)

    resp = await client.post(
        "/api/users/me/phone-verification", json={"phone_number": "+15551234567"}, headers=headers
    )
    assert resp.status_code == 200
    assert resp.json()["success"] is True

    # The background task runs before the ASGI call completes.
    profile = (await client.get("/api/users/me", headers=headers)).json()
    assert profile["phone"]["number"] == "+15551234567"
    assert profile["phone"]["is_verified"] is True
    assert profile["wallets_status"] == "completed"
    assert set(profile["wallets"]) == set(WALLET_CHAINS)
    assert profile["wallets"]["ethereum"].startswith("0x")

    wallets = (await client.get("/api/users/me/wallets", headers=headers)).json()
    assert len(wallets["wallets"]) == len(WALLET_CHAINS)
    assert all(w["linked_phone"] == "+15551234567" for w in wallets["wallets"])


@pytest.mark.asyncio
async def test_phone_check_reports_merge_candidates(client: AsyncClient) -> None:
    await client.post(
        "/api/users/me/phone-verification", json={"phone_number": "+15550000001"}, headers=auth_headers("alice")
    )

    same_user = await client.get(
        "/api/users/phone-numbers/check", params={"phone_number": "+15550000001"}, headers=auth_headers("alice")
    )
    assert same_user.json() == {"exists": True, "can_merge": False}

    other_user = await client.get(
        "/api/users/phone-numbers/check", params={"phone_number": "+15550000001"}, headers=auth_headers("bob")
    )
    assert other_user.json() == {"exists": True, "can_merge": True}

    unknown = await client.get("/api/users/phone-numbers/check", params={"phone_number": "+15559999999"})
    assert unknown.json() == {"exists": False, "can_merge": False}

    empty = await client.get("/api/users/phone-numbers/check", params={"phone_number": ""})
    assert empty.status_code == 400


@pytest.mark.asyncio
async def test_provision_wallet_reuses_existing(client: AsyncClient) -> None:
    headers = auth_headers("carol")
    await client.post("/api/users/me", headers=headers)

    created = await client.post("/api/users/me/wallets", json={"chain_type": "solana"}, headers=headers)
    assert created.status_code == 200
    assert created.json()["exists"] is False

    again = await client.post("/api/users/me/wallets", json={"chain_type": "solana"}, headers=headers)
    assert again.json() == {**created.json(), "exists": True}


@pytest.mark.asyncio
async def test_provision_wallet_rejects_unsupported_chain(client: AsyncClient) -> None:
    headers = auth_headers("carol")
    await client.post("/api/users/me", headers=headers)
    resp = await client.post("/api/users/me/wallets", json={"chain_type": "tron"}, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Unsupported chain type. Supported: ethereum, solana"


@pytest.mark.asyncio
async def test_provision_all_reports_per_chain_status(client: AsyncClient) -> None:
    headers = auth_headers("dave")
    await client.post("/api/users/me", headers=headers)
    await client.post("/api/users/me/wallets", json={"chain_type": "ethereum"}, headers=headers)

    resp = await client.post("/api/users/me/wallets/provision-all", headers=headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    statuses = {r["chain_type"]: r["status"] for r in body["results"]}
    assert statuses == {"ethereum": "exists", "solana": "created"}


@pytest.mark.asyncio
async def test_misconfigured_wallet_backend_marks_creation_failed(
    client: AsyncClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("WALLET_PROVIDER_BACKEND", "privy")
    monkeypatch.delenv("PRIVY_APP_ID", raising=False)
    monkeypatch.delenv("PRIVY_APP_SECRET", raising=False)
    headers = auth_headers("erin")

    resp = await client.post(
        "/api/users/me/phone-verification", json={"phone_number": "+15557654321"}, headers=headers
    )
    assert resp.status_code == 200

    profile = app.state.sia_store.get_user("erin")
    assert profile.wallets_status.value == "failed"
    assert profile.wallets_error == "Failed to create any wallets"
    assert profile.wallets == {}
