from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from sia.adapters.sia_store import SiaStore
from sia.models.asset import (
    Asset,
    AssetCreate,
    AssetType,
    AssetUpdate,
    IPStatus,
)
from sia.models.storyworld import Visibility
from sia.services import storyworld_service
from sia.services.errors import InvalidArgumentError, NotFoundError, PermissionDeniedError

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _newest_first(rows: list[Asset]) -> list[Asset]:
    return sorted(rows, key=lambda a: a.updated_at, reverse=True)


def default_content(asset_type: AssetType, description: str) -> dict[str, Any]:
    if asset_type == AssetType.CHARACTER:
        return {"description": description, "traits": [], "relationships": [], "backstory": ""}
    if asset_type == AssetType.STORYLINE:
        return {"tiptap_json": {}, "plain_text": description}
    if asset_type == AssetType.LORE:
        return {"description": description, "category": "general"}
    return {}


def _refresh_stats(store: SiaStore, storyworld_ids: Iterable[str]) -> None:
    for storyworld_id in dict.fromkeys(storyworld_ids):
        storyworld_service.recompute_stats(store, storyworld_id)


def create_asset(store: SiaStore, owner_id: str, payload: AssetCreate) -> Asset:
    name = payload.name.strip()
    storyworld_id = payload.storyworld_id.strip()
    if not storyworld_id or not name or payload.type is None:
        raise InvalidArgumentError("Storyworld ID, name, and type are required")
    if storyworld_service.get_owned_storyworld(store, storyworld_id, owner_id) is None:
        raise PermissionDeniedError("Invalid storyworld or insufficient permissions")

    description = payload.description.strip()
    now = _now()
    asset = Asset(
        owner_id=owner_id,
        storyworld_ids=[storyworld_id],
        name=name,
        type=payload.type,
        description=description,
        content=payload.content if payload.content is not None else default_content(payload.type, description),
        tags=list(payload.tags),
        media=payload.media,
        created_at=now,
        updated_at=now,
    )
    store.save_asset(asset)
    _refresh_stats(store, asset.storyworld_ids)
    logger.info("asset_created id=%s type=%s storyworld=%s", asset.id, asset.type.value, storyworld_id)
    return asset


def is_publicly_visible(store: SiaStore, asset: Asset) -> bool:
    for storyworld_id in asset.storyworld_ids:
        storyworld = store.get_storyworld(storyworld_id)
        if storyworld is not None and storyworld.visibility == Visibility.PUBLIC:
            return True
    return False


def get_asset(store: SiaStore, asset_id: str, viewer_id: Optional[str]) -> Asset:
    asset = store.get_asset(asset_id)
    if asset is None:
        raise NotFoundError("Asset not found")
    if asset.owner_id != viewer_id and not is_publicly_visible(store, asset):
        raise PermissionDeniedError("Insufficient permissions")
    return asset


def get_owned_asset(store: SiaStore, asset_id: str, owner_id: str) -> Asset:
    asset = store.get_asset(asset_id)
    if asset is None:
        raise NotFoundError("Asset not found")
    if asset.owner_id != owner_id:
        raise PermissionDeniedError("You do not own this asset")
    return asset


def list_owned(
    store: SiaStore,
    owner_id: str,
    storyworld_id: Optional[str] = None,
    asset_type: Optional[AssetType] = None,
) -> list[Asset]:
    return _newest_first(store.list_assets(owner_id=owner_id, storyworld_id=storyworld_id, asset_type=asset_type))


def list_for_storyworld(
    store: SiaStore, storyworld_id: str, viewer_id: Optional[str], asset_type: Optional[AssetType] = None
) -> list[Asset]:
    storyworld_service.get_storyworld(store, storyworld_id, viewer_id)
    return _newest_first(store.list_assets(storyworld_id=storyworld_id, asset_type=asset_type))


def update_asset(store: SiaStore, asset_id: str, owner_id: str, changes: AssetUpdate) -> Asset:
    asset = store.get_asset(asset_id)
    if asset is None or asset.owner_id != owner_id:
        raise PermissionDeniedError("Invalid asset or insufficient permissions")

    update = changes.model_dump(exclude_unset=True, exclude_none=True)
    if "name" in update:
        update["name"] = update["name"].strip()
        if not update["name"]:
            raise InvalidArgumentError("Name is required")
    if "storyworld_ids" in update:
        ids = [s.strip() for s in update["storyworld_ids"] if s and s.strip()]
        if not ids:
            raise InvalidArgumentError("At least one storyworld is required")
        for storyworld_id in ids:
            if storyworld_service.get_owned_storyworld(store, storyworld_id, owner_id) is None:
                raise PermissionDeniedError("Invalid storyworld or insufficient permissions")
        update["storyworld_ids"] = list(dict.fromkeys(ids))
    update["updated_at"] = _now()

    updated = Asset.model_validate({**asset.model_dump(), **update})
    store.save_asset(updated)
    if updated.storyworld_ids != asset.storyworld_ids:
        _refresh_stats(store, [*asset.storyworld_ids, *updated.storyworld_ids])
    return updated


def delete_asset(store: SiaStore, asset_id: str, owner_id: str) -> None:
    asset = store.get_asset(asset_id)
    if asset is None or asset.owner_id != owner_id:
        raise PermissionDeniedError("Invalid asset or insufficient permissions")
    store.delete_asset(asset_id)
    _refresh_stats(store, asset.storyworld_ids)
    logger.info("asset_deleted id=%s owner=%s", asset_id, owner_id)


def record_view(store: SiaStore, asset_id: str, viewer_id: Optional[str]) -> Asset:
    asset = get_asset(store, asset_id, viewer_id)
    return store.save_asset(asset.model_copy(update={"views": asset.views + 1}))


def toggle_like(store: SiaStore, asset_id: str, viewer_id: str, increment: bool) -> Asset:
    asset = get_asset(store, asset_id, viewer_id)
    likes = asset.likes + 1 if increment else max(0, asset.likes - 1)
    return store.save_asset(asset.model_copy(update={"likes": likes}))


def set_ip_status(store: SiaStore, asset_id: str, ip_status: IPStatus, **fields: Any) -> Optional[Asset]:
    asset = store.get_asset(asset_id)
    if asset is None:
        return None
    return store.save_asset(
        asset.model_copy(update={"ip_status": ip_status, "updated_at": _now(), **fields})
    )


def registered_ips(store: SiaStore, owner_id: Optional[str] = None) -> list[Asset]:
    rows = [
        a
        for a in store.list_assets(owner_id=owner_id)
        if a.ip_status == IPStatus.REGISTERED and a.story_protocol is not None and a.story_protocol.ip_id
    ]
    return sorted(rows, key=lambda a: a.story_protocol.registered_at, reverse=True)
