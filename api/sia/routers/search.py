from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from sia.adapters.sia_store import SiaStore
from sia.models.asset import AssetType
from sia.models.error import ErrorDetail
from sia.models.search import SearchResults, SearchScope
from sia.services import search_service
from sia.services.auth_service import AuthContext, optional_user

router = APIRouter()


def get_store(request: Request) -> SiaStore:
    return request.app.state.sia_store


@router.get("/search", response_model=SearchResults, responses={400: {"model": ErrorDetail}})
async def search(
    q: str = Query("", description="At least 2 characters"),
    type: SearchScope = SearchScope.BOTH,
    limit: int = Query(20, ge=1, le=100),
    storyworld_id: Optional[str] = None,
    asset_type: Optional[AssetType] = None,
    auth: Optional[AuthContext] = Depends(optional_user),
    store: SiaStore = Depends(get_store),
) -> SearchResults:
    """Search public storyworlds and visible assets by name, description or tag."""
    return search_service.search(
        store,
        q,
        scope=type,
        limit=limit,
        storyworld_id=storyworld_id,
        asset_type=asset_type,
        viewer_id=auth.uid if auth else None,
    )
