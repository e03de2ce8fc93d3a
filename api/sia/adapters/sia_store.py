"""SiaStore abstraction + in-memory backend.

Holds user profiles, the phone index, custody wallet records, storyworlds,
assets and IP registrations. ``SqlSiaStore`` (sql_store.py) implements the
same protocol on SQLAlchemy.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from typing import Callable, Optional, Protocol

from sia.models.asset import Asset, AssetType
from sia.models.ip_registration import IPRegistration, RegistrationStatus
from sia.models.storyworld import Storyworld, Visibility
from sia.models.user import UserProfile, WalletRecord
from sia.services.errors import ConflictError

logger = logging.getLogger(__name__)

RegistrationMutator = Callable[[IPRegistration], IPRegistration]
UserMutator = Callable[[UserProfile], UserProfile]


class SiaStore(Protocol):
    """Protocol for document storage. Implementations: InMemorySiaStore, SqlSiaStore."""

    backend: str

    def ping(self) -> bool:
        ...

    # --- users ---

    def get_user(self, uid: str) -> Optional[UserProfile]:
        ...

    def save_user(self, profile: UserProfile) -> UserProfile:
        ...

    def update_user(self, uid: str, mutate: UserMutator) -> Optional[UserProfile]:
        """Apply ``mutate`` to the stored profile as a single write. None when missing."""
        ...

    def get_phone_owner(self, phone_number: str) -> Optional[str]:
        ...

    def set_phone_owner(self, phone_number: str, uid: str) -> None:
        ...

    def save_wallet(self, wallet: WalletRecord) -> WalletRecord:
        ...

    def list_wallets(self, uid: str) -> list[WalletRecord]:
        ...

    # --- storyworlds ---

    def save_storyworld(self, storyworld: Storyworld) -> Storyworld:
        ...

    def get_storyworld(self, storyworld_id: str) -> Optional[Storyworld]:
        ...

    def delete_storyworld(self, storyworld_id: str) -> bool:
        ...

    def list_storyworlds(
        self, owner_id: Optional[str] = None, visibility: Optional[Visibility] = None
    ) -> list[Storyworld]:
        ...

    # --- assets ---

    def save_asset(self, asset: Asset) -> Asset:
        ...

    def get_asset(self, asset_id: str) -> Optional[Asset]:
        ...

    def delete_asset(self, asset_id: str) -> bool:
        ...

    def list_assets(
        self,
        owner_id: Optional[str] = None,
        storyworld_id: Optional[str] = None,
        asset_type: Optional[AssetType] = None,
    ) -> list[Asset]:
        ...

    # --- IP registrations ---

    def create_registration(self, registration: IPRegistration) -> IPRegistration:
        """Insert a registration. Raises ConflictError when the asset already has one."""
        ...

    def replace_registration(self, registration: IPRegistration) -> IPRegistration:
        """Drop any registration for the same asset, then insert ``registration``."""
        ...

    def get_registration(self, registration_id: str) -> Optional[IPRegistration]:
        ...

    def get_registration_by_asset(self, asset_id: str) -> Optional[IPRegistration]:
        ...

    def update_registration(
        self, registration_id: str, mutate: RegistrationMutator
    ) -> Optional[IPRegistration]:
        """Read-modify-write one registration as a single writer. None when missing."""
        ...

    def list_registrations(
        self,
        user_id: Optional[str] = None,
        status: Optional[RegistrationStatus] = None,
        storyworld_id: Optional[str] = None,
    ) -> list[IPRegistration]:
        ...


class InMemorySiaStore:
    """In-memory SiaStore. Optional JSON persistence for restart."""

    backend = "memory"

    def __init__(self, persist_path: Optional[str] = None) -> None:
        self._lock = threading.RLock()
        self._users: dict[str, UserProfile] = {}
        self._phone_index: dict[str, str] = {}
        self._wallets: dict[tuple[str, str], WalletRecord] = {}
        self._storyworlds: dict[str, Storyworld] = {}
        self._assets: dict[str, Asset] = {}
        self._registrations: dict[str, IPRegistration] = {}
        self._registration_by_asset: dict[str, str] = {}
        self._persist_path = persist_path

        if persist_path and os.path.isfile(persist_path):
            self._load()

    def _load(self) -> None:
        if not self._persist_path:
            return
        try:
            with open(self._persist_path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as exc:
            logger.warning("sia_store_load_failed path=%s error=%s", self._persist_path, exc)
            return
        for row in data.get("users", []):
            profile = UserProfile.model_validate(row)
            self._users[profile.uid] = profile
        self._phone_index.update(data.get("phone_index") or {})
        for row in data.get("wallets", []):
            wallet = WalletRecord.model_validate(row)
            self._wallets[(wallet.user_id, wallet.chain_type)] = wallet
        for row in data.get("storyworlds", []):
            storyworld = Storyworld.model_validate(row)
            self._storyworlds[storyworld.id] = storyworld
        for row in data.get("assets", []):
            asset = Asset.model_validate(row)
            self._assets[asset.id] = asset
        for row in data.get("registrations", []):
            registration = IPRegistration.model_validate(row)
            self._registrations[registration.id] = registration
            self._registration_by_asset[registration.asset_id] = registration.id

    def save(self) -> None:
        """Persist to JSON if path set."""
        if not self._persist_path:
            return
        os.makedirs(os.path.dirname(self._persist_path) or ".", exist_ok=True)
        with self._lock:
            data = {
                "users": [u.model_dump(mode="json") for u in self._users.values()],
                "phone_index": dict(self._phone_index),
                "wallets": [w.model_dump(mode="json") for w in self._wallets.values()],
                "storyworlds": [s.model_dump(mode="json") for s in self._storyworlds.values()],
                "assets": [a.model_dump(mode="json") for a in self._assets.values()],
                "registrations": [r.model_dump(mode="json") for r in self._registrations.values()],
            }
        with open(self._persist_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=0)

    def ping(self) -> bool:
        return True

    # --- users ---

    def get_user(self, uid: str) -> Optional[UserProfile]:
        return self._users.get(uid)

    def save_user(self, profile: UserProfile) -> UserProfile:
        with self._lock:
            self._users[profile.uid] = profile
        self.save()
        return profile

    def update_user(self, uid: str, mutate: UserMutator) -> Optional[UserProfile]:
        with self._lock:
            current = self._users.get(uid)
            if current is None:
                return None
            updated = mutate(current)
            self._users[uid] = updated
        self.save()
        return updated

    def get_phone_owner(self, phone_number: str) -> Optional[str]:
        return self._phone_index.get(phone_number)

    def set_phone_owner(self, phone_number: str, uid: str) -> None:
        with self._lock:
            self._phone_index[phone_number] = uid
        self.save()

    def save_wallet(self, wallet: WalletRecord) -> WalletRecord:
        with self._lock:
            self._wallets[(wallet.user_id, wallet.chain_type)] = wallet
        self.save()
        return wallet

    def list_wallets(self, uid: str) -> list[WalletRecord]:
        return [w for (owner, _chain), w in self._wallets.items() if owner == uid]

    # --- storyworlds ---

    def save_storyworld(self, storyworld: Storyworld) -> Storyworld:
        with self._lock:
            self._storyworlds[storyworld.id] = storyworld
        self.save()
        return storyworld

    def get_storyworld(self, storyworld_id: str) -> Optional[Storyworld]:
        return self._storyworlds.get(storyworld_id)

    def delete_storyworld(self, storyworld_id: str) -> bool:
        with self._lock:
            removed = self._storyworlds.pop(storyworld_id, None) is not None
        if removed:
            self.save()
        return removed

    def list_storyworlds(
        self, owner_id: Optional[str] = None, visibility: Optional[Visibility] = None
    ) -> list[Storyworld]:
        rows = list(self._storyworlds.values())
        if owner_id is not None:
            rows = [s for s in rows if s.owner_id == owner_id]
        if visibility is not None:
            rows = [s for s in rows if s.visibility == visibility]
        return rows

    # --- assets ---

    def save_asset(self, asset: Asset) -> Asset:
        with self._lock:
            self._assets[asset.id] = asset
        self.save()
        return asset

    def get_asset(self, asset_id: str) -> Optional[Asset]:
        return self._assets.get(asset_id)

    def delete_asset(self, asset_id: str) -> bool:
        with self._lock:
            removed = self._assets.pop(asset_id, None) is not None
        if removed:
            self.save()
        return removed

    def list_assets(
        self,
        owner_id: Optional[str] = None,
        storyworld_id: Optional[str] = None,
        asset_type: Optional[AssetType] = None,
    ) -> list[Asset]:
        rows = list(self._assets.values())
        if owner_id is not None:
            rows = [a for a in rows if a.owner_id == owner_id]
        if storyworld_id is not None:
            rows = [a for a in rows if storyworld_id in a.storyworld_ids]
        if asset_type is not None:
            rows = [a for a in rows if a.type == asset_type]
        return rows

    # --- IP registrations ---

    def create_registration(self, registration: IPRegistration) -> IPRegistration:
        with self._lock:
            if registration.asset_id in self._registration_by_asset:
                raise ConflictError("Registration already exists for this asset")
            self._registrations[registration.id] = registration
            self._registration_by_asset[registration.asset_id] = registration.id
        self.save()
        return registration

    def replace_registration(self, registration: IPRegistration) -> IPRegistration:
        with self._lock:
            previous_id = self._registration_by_asset.pop(registration.asset_id, None)
            if previous_id is not None:
                self._registrations.pop(previous_id, None)
            self._registrations[registration.id] = registration
            self._registration_by_asset[registration.asset_id] = registration.id
        self.save()
        return registration

    def get_registration(self, registration_id: str) -> Optional[IPRegistration]:
        return self._registrations.get(registration_id)

    def get_registration_by_asset(self, asset_id: str) -> Optional[IPRegistration]:
        registration_id = self._registration_by_asset.get(asset_id)
        if registration_id is None:
            return None
        return self._registrations.get(registration_id)

    def update_registration(
        self, registration_id: str, mutate: RegistrationMutator
    ) -> Optional[IPRegistration]:
        with self._lock:
            current = self._registrations.get(registration_id)
            if current is None:
                return None
            updated = mutate(current)
            self._registrations[registration_id] = updated
        self.save()
        return updated

    def list_registrations(
        self,
        user_id: Optional[str] = None,
        status: Optional[RegistrationStatus] = None,
        storyworld_id: Optional[str] = None,
    ) -> list[IPRegistration]:
        rows = list(self._registrations.values())
        if user_id is not None:
            rows = [r for r in rows if r.user_id == user_id]
        if status is not None:
            rows = [r for r in rows if r.status == status]
        if storyworld_id is not None:
            rows = [r for r in rows if r.storyworld_id == storyworld_id]
        return rows
