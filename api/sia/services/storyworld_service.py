from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sia.adapters.sia_store import SiaStore
from sia.models.asset import AssetType
from sia.models.storyworld import (
    Storyworld,
    StoryworldCreate,
    StoryworldStats,
    StoryworldUpdate,
    Visibility,
)
from sia.services.errors import InvalidArgumentError, NotFoundError, PermissionDeniedError

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _newest_first(rows: list[Storyworld]) -> list[Storyworld]:
    return sorted(rows, key=lambda s: s.updated_at, reverse=True)


def _ai_context(payload: StoryworldCreate, now: datetime) -> Optional[dict[str, Any]]:
    if payload.ai_context:
        return {
            **payload.ai_context,
            "genre": payload.genre,
            "themes": list(payload.themes),
            "enhanced_at": now.isoformat(),
        }
    if payload.genre or payload.themes:
        return {
            "genre": payload.genre,
            "themes": list(payload.themes),
            "manually_enhanced": True,
            "enhanced_at": now.isoformat(),
        }
    return None


def create_storyworld(store: SiaStore, owner_id: str, payload: StoryworldCreate) -> Storyworld:
    name = payload.name.strip()
    description = payload.description.strip()
    if not name or not description:
        raise InvalidArgumentError("Name and description are required")

    tags = [t.strip() for t in payload.tags if t and t.strip()]
    if payload.genre:
        tags.append(payload.genre)
    tags.extend(t for t in payload.themes if t)
    now = _now()
    storyworld = Storyworld(
        owner_id=owner_id,
        name=name,
        description=description,
        cover_image_url=payload.cover_image_url,
        visibility=payload.visibility,
        genre=payload.genre,
        themes=list(payload.themes),
        tags=list(dict.fromkeys(tags)),
        ai_context=_ai_context(payload, now),
        created_at=now,
        updated_at=now,
    )
    store.save_storyworld(storyworld)
    logger.info("storyworld_created id=%s owner=%s visibility=%s", storyworld.id, owner_id, storyworld.visibility.value)
    return storyworld


def get_storyworld(store: SiaStore, storyworld_id: str, viewer_id: Optional[str]) -> Storyworld:
    storyworld = store.get_storyworld(storyworld_id)
    if storyworld is None:
        raise NotFoundError("Storyworld not found")
    if storyworld.visibility != Visibility.PUBLIC and storyworld.owner_id != viewer_id:
        raise PermissionDeniedError("Insufficient permissions")
    return storyworld


def get_owned_storyworld(store: SiaStore, storyworld_id: str, owner_id: str) -> Optional[Storyworld]:
    storyworld = store.get_storyworld(storyworld_id)
    if storyworld is None or storyworld.owner_id != owner_id:
        return None
    return storyworld


def list_owned(store: SiaStore, owner_id: str) -> list[Storyworld]:
    return _newest_first(store.list_storyworlds(owner_id=owner_id))


def list_public(store: SiaStore, limit: int = 20, skip: int = 0) -> list[Storyworld]:
    rows = _newest_first(store.list_storyworlds(visibility=Visibility.PUBLIC))
    return rows[max(0, skip): max(0, skip) + max(0, limit)]


def update_storyworld(
    store: SiaStore, storyworld_id: str, owner_id: str, changes: StoryworldUpdate
) -> Storyworld:
    storyworld = store.get_storyworld(storyworld_id)
    if storyworld is None:
        raise NotFoundError("Storyworld not found")
    if storyworld.owner_id != owner_id:
        raise PermissionDeniedError("Insufficient permissions")
    update = changes.model_dump(exclude_unset=True, exclude_none=True)
    for key in ("name", "description"):
        if key in update:
            update[key] = update[key].strip()
            if not update[key]:
                raise InvalidArgumentError("Name and description are required")
    update["updated_at"] = _now()
    updated = Storyworld.model_validate({**storyworld.model_dump(), **update})
    return store.save_storyworld(updated)


def delete_storyworld(store: SiaStore, storyworld_id: str, owner_id: str) -> None:
    if get_owned_storyworld(store, storyworld_id, owner_id) is None:
        raise NotFoundError("Storyworld not found")
    store.delete_storyworld(storyworld_id)
    logger.info("storyworld_deleted id=%s owner=%s", storyworld_id, owner_id)


def update_stats(store: SiaStore, storyworld_id: str, stats: StoryworldStats) -> None:
    """Overwrite cached stats. Failures are logged, never raised."""
    try:
        storyworld = store.get_storyworld(storyworld_id)
        if storyworld is None:
            return
        store.save_storyworld(storyworld.model_copy(update={"stats": stats, "updated_at": _now()}))
    except Exception:
        logger.exception("storyworld_stats_update_failed id=%s", storyworld_id)


def recompute_stats(store: SiaStore, storyworld_id: str) -> None:
    try:
        assets = store.list_assets(storyworld_id=storyworld_id)
    except Exception:
        logger.exception("storyworld_stats_query_failed id=%s", storyworld_id)
        return
    stats = StoryworldStats(
        total_assets=len(assets),
        characters=sum(1 for a in assets if a.type == AssetType.CHARACTER),
        storylines=sum(1 for a in assets if a.type == AssetType.STORYLINE),
        lore_entries=sum(1 for a in assets if a.type == AssetType.LORE),
    )
    update_stats(store, storyworld_id, stats)
