from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response

from sia.adapters.sia_store import SiaStore
from sia.models.asset import Asset, AssetType
from sia.models.error import ErrorDetail
from sia.models.storyworld import Storyworld, StoryworldCreate, StoryworldUpdate
from sia.services import asset_service, storyworld_service
from sia.services.auth_service import AuthContext, optional_user, require_user

router = APIRouter()


def get_store(request: Request) -> SiaStore:
    return request.app.state.sia_store


@router.post(
    "/storyworlds",
    response_model=Storyworld,
    status_code=201,
    responses={400: {"model": ErrorDetail}, 401: {"model": ErrorDetail}},
)
async def create_storyworld(
    body: StoryworldCreate,
    auth: AuthContext = Depends(require_user),
    store: SiaStore = Depends(get_store),
) -> Storyworld:
    """Create a new storyworld owned by the caller."""
    return storyworld_service.create_storyworld(store, auth.uid, body)


@router.get("/storyworlds", response_model=list[Storyworld], responses={401: {"model": ErrorDetail}})
async def list_my_storyworlds(
    auth: AuthContext = Depends(require_user),
    store: SiaStore = Depends(get_store),
) -> list[Storyworld]:
    return storyworld_service.list_owned(store, auth.uid)


@router.get("/storyworlds/public", response_model=list[Storyworld])
async def list_public_storyworlds(
    limit: int = Query(20, ge=1, le=100),
    skip: int = Query(0, ge=0),
    store: SiaStore = Depends(get_store),
) -> list[Storyworld]:
    return storyworld_service.list_public(store, limit=limit, skip=skip)


@router.get(
    "/storyworlds/{storyworld_id}",
    response_model=Storyworld,
    responses={403: {"model": ErrorDetail}, 404: {"model": ErrorDetail}},
)
async def get_storyworld(
    storyworld_id: str,
    auth: Optional[AuthContext] = Depends(optional_user),
    store: SiaStore = Depends(get_store),
) -> Storyworld:
    return storyworld_service.get_storyworld(store, storyworld_id, auth.uid if auth else None)


@router.patch(
    "/storyworlds/{storyworld_id}",
    response_model=Storyworld,
    responses={400: {"model": ErrorDetail}, 403: {"model": ErrorDetail}, 404: {"model": ErrorDetail}},
)
async def update_storyworld(
    storyworld_id: str,
    body: StoryworldUpdate,
    auth: AuthContext = Depends(require_user),
    store: SiaStore = Depends(get_store),
) -> Storyworld:
    return storyworld_service.update_storyworld(store, storyworld_id, auth.uid, body)


@router.delete(
    "/storyworlds/{storyworld_id}",
    status_code=204,
    responses={404: {"model": ErrorDetail}},
)
async def delete_storyworld(
    storyworld_id: str,
    auth: AuthContext = Depends(require_user),
    store: SiaStore = Depends(get_store),
) -> Response:
    storyworld_service.delete_storyworld(store, storyworld_id, auth.uid)
    return Response(status_code=204)


@router.get(
    "/storyworlds/{storyworld_id}/assets",
    response_model=list[Asset],
    responses={403: {"model": ErrorDetail}, 404: {"model": ErrorDetail}},
)
async def list_storyworld_assets(
    storyworld_id: str,
    type: Optional[AssetType] = None,
    auth: Optional[AuthContext] = Depends(optional_user),
    store: SiaStore = Depends(get_store),
) -> list[Asset]:
    """Assets of a public storyworld, or of one the caller owns."""
    return asset_service.list_for_storyworld(store, storyworld_id, auth.uid if auth else None, type)
