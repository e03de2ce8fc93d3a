from __future__ import annotations

from typing import Iterable, Optional

from sia.adapters.sia_store import SiaStore
from sia.models.asset import AssetType
from sia.models.search import SearchResults, SearchScope
from sia.models.storyworld import Visibility
from sia.services import asset_service
from sia.services.errors import InvalidArgumentError

MIN_QUERY_LENGTH = 2


def _matches(needle: str, name: str, description: str, tags: Iterable[str]) -> bool:
    if needle in name.lower() or needle in (description or "").lower():
        return True
    return any(needle in tag.lower() for tag in tags)


def search(
    store: SiaStore,
    query: Optional[str],
    scope: SearchScope = SearchScope.BOTH,
    limit: int = 20,
    storyworld_id: Optional[str] = None,
    asset_type: Optional[AssetType] = None,
    viewer_id: Optional[str] = None,
) -> SearchResults:
    """Case-insensitive match on name, description or tags.

    Storyworld hits are public only. Asset hits belong to the viewer or to a
    public storyworld.
    """
    text = (query or "").strip()
    if len(text) < MIN_QUERY_LENGTH:
        raise InvalidArgumentError("Search query must be at least 2 characters")
    needle = text.lower()
    limit = max(1, min(limit, 100))
    results = SearchResults(query=text)

    if scope in (SearchScope.BOTH, SearchScope.STORYWORLDS):
        storyworlds = [
            s
            for s in store.list_storyworlds(visibility=Visibility.PUBLIC)
            if _matches(needle, s.name, s.description, s.tags)
        ]
        storyworlds.sort(key=lambda s: s.updated_at, reverse=True)
        results.storyworlds = storyworlds[:limit]

    if scope in (SearchScope.BOTH, SearchScope.ASSETS):
        assets = [
            a
            for a in store.list_assets(storyworld_id=storyworld_id, asset_type=asset_type)
            if _matches(needle, a.name, a.description, a.tags)
            and (a.owner_id == viewer_id or asset_service.is_publicly_visible(store, a))
        ]
        assets.sort(key=lambda a: a.updated_at, reverse=True)
        results.assets = assets[:limit]

    return results
