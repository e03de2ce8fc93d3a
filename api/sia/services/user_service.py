"""User profiles, phone verification and the phone index."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from sia.adapters.sia_store import SiaStore
from sia.models.user import (
    OAUTH_PROVIDERS,
    PhoneCheckResponse,
    PhoneStatus,
    UserProfile,
    WalletsStatus,
)
from sia.services.auth_service import AuthContext
from sia.services.errors import InvalidArgumentError, NotFoundError

logger = logging.getLogger(__name__)


def mask_phone(phone_number: Optional[str]) -> str:
    if not phone_number:
        return "none"
    return f"{phone_number[:6]}***"


def _auth_providers(auth: AuthContext) -> list[str]:
    provider = auth.sign_in_provider
    if provider and provider in OAUTH_PROVIDERS:
        return [provider]
    return []


def ensure_profile(store: SiaStore, auth: AuthContext) -> tuple[UserProfile, bool]:
    """Create the profile on first sign-in. Returns (profile, created)."""
    existing = store.get_user(auth.uid)
    if existing is not None:
        return existing, False
    profile = UserProfile(
        uid=auth.uid,
        display_name=auth.name,
        email=auth.email,
        photo_url=auth.picture,
        auth_providers=_auth_providers(auth),
    )
    store.save_user(profile)
    logger.info("user_profile_created uid=%s providers=%s", auth.uid, profile.auth_providers)
    return profile, True


def get_profile(store: SiaStore, uid: str) -> UserProfile:
    profile = store.get_user(uid)
    if profile is None:
        raise NotFoundError("User profile not found")
    return profile


def verify_phone(store: SiaStore, auth: AuthContext, phone_number: Optional[str]) -> UserProfile:
    """Mark the caller's phone as verified and flag wallet creation as started.

    Wallet creation itself is scheduled by the caller (see WalletService).
    """
    phone = (phone_number or "").strip()
    if not phone:
        raise InvalidArgumentError("Phone number is required")

    ensure_profile(store, auth)
    now = datetime.now(timezone.utc)

    def _mark_verified(profile: UserProfile) -> UserProfile:
        return profile.model_copy(
            update={
                "phone": PhoneStatus(number=phone, is_verified=True, verified_at=now),
                "wallets_status": WalletsStatus.CREATING,
                "wallets_error": None,
                "updated_at": now,
            }
        )

    profile = store.update_user(auth.uid, _mark_verified)
    if profile is None:
        raise NotFoundError("User profile not found")
    store.set_phone_owner(phone, auth.uid)
    logger.info("phone_verified uid=%s phone=%s", auth.uid, mask_phone(phone))
    return profile


def check_phone_number(store: SiaStore, phone_number: Optional[str], caller_uid: Optional[str]) -> PhoneCheckResponse:
    phone = (phone_number or "").strip()
    if not phone:
        raise InvalidArgumentError("Phone number is required")
    owner = store.get_phone_owner(phone)
    exists = owner is not None
    return PhoneCheckResponse(exists=exists, can_merge=exists and owner != caller_uid)
