from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request, Response

from sia.adapters.sia_store import SiaStore
from sia.models.asset import Asset, AssetCreate, AssetType, AssetUpdate, LikeRequest
from sia.models.error import ErrorDetail
from sia.services import asset_service
from sia.services.auth_service import AuthContext, optional_user, require_user

router = APIRouter()


def get_store(request: Request) -> SiaStore:
    return request.app.state.sia_store


@router.post(
    "/assets",
    response_model=Asset,
    status_code=201,
    responses={400: {"model": ErrorDetail}, 403: {"model": ErrorDetail}},
)
async def create_asset(
    body: AssetCreate,
    auth: AuthContext = Depends(require_user),
    store: SiaStore = Depends(get_store),
) -> Asset:
    """Create a new asset in one of the caller's storyworlds."""
    return asset_service.create_asset(store, auth.uid, body)


@router.get("/assets", response_model=list[Asset])
async def list_my_assets(
    storyworld_id: Optional[str] = None,
    type: Optional[AssetType] = None,
    auth: AuthContext = Depends(require_user),
    store: SiaStore = Depends(get_store),
) -> list[Asset]:
    """List the caller's assets."""
    return asset_service.list_owned(store, auth.uid, storyworld_id=storyworld_id, asset_type=type)


@router.get(
    "/assets/{asset_id}",
    response_model=Asset,
    responses={403: {"model": ErrorDetail}, 404: {"model": ErrorDetail}},
)
async def get_asset(
    asset_id: str,
    auth: Optional[AuthContext] = Depends(optional_user),
    store: SiaStore = Depends(get_store),
) -> Asset:
    """Get asset by ID."""
    return asset_service.get_asset(store, asset_id, auth.uid if auth else None)


@router.patch(
    "/assets/{asset_id}",
    response_model=Asset,
    responses={400: {"model": ErrorDetail}, 403: {"model": ErrorDetail}},
)
async def update_asset(
    asset_id: str,
    body: AssetUpdate,
    auth: AuthContext = Depends(require_user),
    store: SiaStore = Depends(get_store),
) -> Asset:
    return asset_service.update_asset(store, asset_id, auth.uid, body)


@router.delete("/assets/{asset_id}", status_code=204, responses={403: {"model": ErrorDetail}})
async def delete_asset(
    asset_id: str,
    auth: AuthContext = Depends(require_user),
    store: SiaStore = Depends(get_store),
) -> Response:
    asset_service.delete_asset(store, asset_id, auth.uid)
    return Response(status_code=204)


@router.post(
    "/assets/{asset_id}/views",
    response_model=Asset,
    responses={403: {"model": ErrorDetail}, 404: {"model": ErrorDetail}},
)
async def record_view(
    asset_id: str,
    auth: Optional[AuthContext] = Depends(optional_user),
    store: SiaStore = Depends(get_store),
) -> Asset:
    return asset_service.record_view(store, asset_id, auth.uid if auth else None)


@router.post(
    "/assets/{asset_id}/likes",
    response_model=Asset,
    responses={401: {"model": ErrorDetail}, 403: {"model": ErrorDetail}, 404: {"model": ErrorDetail}},
)
async def toggle_like(
    asset_id: str,
    body: LikeRequest,
    auth: AuthContext = Depends(require_user),
    store: SiaStore = Depends(get_store),
) -> Asset:
    return asset_service.toggle_like(store, asset_id, auth.uid, body.increment)
