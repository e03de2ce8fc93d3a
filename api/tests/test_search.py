from __future__ import annotations

import pytest
from httpx import AsyncClient

from conftest import auth_headers


async def _world(client: AsyncClient, uid: str, name: str, visibility: str, **fields) -> str:
    resp = await client.post(
        "/api/storyworlds",
        json={"name": name, "description": "A setting", "visibility": visibility, **fields},
        headers=auth_headers(uid),
    )
    return resp.json()["id"]


async def _asset(client: AsyncClient, uid: str, storyworld_id: str, name: str, asset_type: str = "LORE") -> str:
    resp = await client.post(
        "/api/assets",
        json={"storyworld_id": storyworld_id, "name": name, "type": asset_type},
        headers=auth_headers(uid),
    )
    return resp.json()["id"]


@pytest.mark.asyncio
async def test_search_matches_public_storyworlds_by_tag(client: AsyncClient) -> None:
    await _world(client, "alice", "Dragon Coast", "PUBLIC", genre="fantasy")
    await _world(client, "alice", "Dragon Den", "PRIVATE")

    resp = await client.get("/api/search", params={"q": "FANTASY", "type": "storyworlds"})
    assert resp.status_code == 200
    body = resp.json()
    assert [s["name"] for s in body["storyworlds"]] == ["Dragon Coast"]
    assert body["assets"] == []


@pytest.mark.asyncio
async def test_search_assets_respects_visibility(client: AsyncClient) -> None:
    public_world = await _world(client, "alice", "Open", "PUBLIC")
    private_world = await _world(client, "alice", "Closed", "PRIVATE")
    await _asset(client, "alice", public_world, "Dragon Scroll")
    await _asset(client, "alice", private_world, "Dragon Secret")

    anonymous = await client.get("/api/search", params={"q": "dragon", "type": "assets"})
    assert [a["name"] for a in anonymous.json()["assets"]] == ["Dragon Scroll"]

    owner = await client.get("/api/search", params={"q": "dragon", "type": "assets"}, headers=auth_headers("alice"))
    assert {a["name"] for a in owner.json()["assets"]} == {"Dragon Scroll", "Dragon Secret"}


@pytest.mark.asyncio
async def test_search_filters_by_asset_type_and_storyworld(client: AsyncClient) -> None:
    world = await _world(client, "alice", "Open", "PUBLIC")
    other = await _world(client, "alice", "Other", "PUBLIC")
    await _asset(client, "alice", world, "Ember Queen", "CHARACTER")
    await _asset(client, "alice", world, "Ember War", "STORYLINE")
    await _asset(client, "alice", other, "Ember Myth", "CHARACTER")

    resp = await client.get(
        "/api/search",
        params={"q": "ember", "type": "assets", "asset_type": "CHARACTER", "storyworld_id": world},
    )
    assert [a["name"] for a in resp.json()["assets"]] == ["Ember Queen"]


@pytest.mark.asyncio
async def test_search_requires_two_characters(client: AsyncClient) -> None:
    resp = await client.get("/api/search", params={"q": " x "})
    assert resp.status_code == 400
