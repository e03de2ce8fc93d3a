"""Error response shape.

- 422: FastAPI default; detail is an array of { loc, msg, type }.
- 400/401/403/404/409/500: a single top-level "detail" string.
"""

import pytest
from httpx import AsyncClient

from conftest import auth_headers
from sia.main import app


@pytest.mark.asyncio
async def test_422_keeps_fastapi_shape(client: AsyncClient):
    response = await client.post(
        "/api/storyworlds",
        json={"name": "World", "description": "desc", "visibility": "SECRET"},
        headers=auth_headers("alice"),
    )
    assert response.status_code == 422
    data = response.json()
    assert isinstance(data["detail"], list)
    for item in data["detail"]:
        assert {"loc", "msg", "type"} <= set(item)


@pytest.mark.asyncio
async def test_401_without_token(client: AsyncClient):
    response = await client.get("/api/users/me")
    assert response.status_code == 401
    assert response.json() == {"detail": "Authentication required"}


@pytest.mark.asyncio
async def test_401_with_malformed_token(client: AsyncClient):
    response = await client.get("/api/storyworlds", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert response.json() == {"detail": "Authentication required"}


@pytest.mark.asyncio
async def test_404_detail_is_string(client: AsyncClient):
    response = await client.get("/api/storyworlds/missing-id")
    assert response.status_code == 404
    assert response.json() == {"detail": "Storyworld not found"}


@pytest.mark.asyncio
async def test_400_detail_is_string(client: AsyncClient):
    response = await client.get("/api/search", params={"q": "a"})
    assert response.status_code == 400
    assert response.json() == {"detail": "Search query must be at least 2 characters"}


@pytest.mark.asyncio
async def test_unhandled_error_returns_generic_500(client: AsyncClient, monkeypatch: pytest.MonkeyPatch):
    def _explode(*args, **kwargs):
        raise RuntimeError("database exploded with secrets")

    monkeypatch.setattr(app.state.sia_store, "list_storyworlds", _explode)
    response = await client.get("/api/storyworlds/public")
    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error"}
