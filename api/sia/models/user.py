from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


WALLET_CHAINS: tuple[str, ...] = ("ethereum", "solana", "stellar", "cosmos", "sui", "tron")
PROVISIONABLE_CHAINS: tuple[str, ...] = ("ethereum", "solana")
OAUTH_PROVIDERS: frozenset[str] = frozenset({"google.com", "apple.com", "facebook.com"})


class WalletsStatus(str, Enum):
    CREATING = "creating"
    COMPLETED = "completed"
    FAILED = "failed"


class PhoneStatus(BaseModel):
    number: Optional[str] = None
    is_verified: bool = False
    verified_at: Optional[datetime] = None


class UserProfile(BaseModel):
    uid: str
    display_name: Optional[str] = None
    email: Optional[str] = None
    photo_url: Optional[str] = None
    auth_providers: list[str] = Field(default_factory=list)
    phone: PhoneStatus = Field(default_factory=PhoneStatus)
    wallets: dict[str, str] = Field(default_factory=dict, description="chain -> address")
    wallets_status: Optional[WalletsStatus] = None
    wallets_error: Optional[str] = None
    wallets_created_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    model_config = ConfigDict(from_attributes=True)


class WalletRecord(BaseModel):
    """Custody wallet held by the wallet provider on behalf of a user."""

    user_id: str
    chain_type: str
    address: str
    wallet_id: str
    linked_phone: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)


class PhoneVerificationRequest(BaseModel):
    phone_number: Optional[str] = None


class PhoneVerificationResponse(BaseModel):
    success: bool
    message: str


class PhoneCheckResponse(BaseModel):
    exists: bool
    can_merge: bool


class WalletProvisionRequest(BaseModel):
    chain_type: str = "ethereum"


class WalletProvisionResponse(BaseModel):
    address: str
    chain_type: str
    exists: bool


class WalletProvisionResult(BaseModel):
    chain_type: str
    status: str  # exists | created | failed
    address: Optional[str] = None
    error: Optional[str] = None


class WalletProvisionAllResponse(BaseModel):
    success: bool
    results: list[WalletProvisionResult]


class UserWallets(BaseModel):
    wallets: list[WalletRecord]
    addresses: dict[str, str]
    wallets_status: Optional[WalletsStatus] = None
    wallets_error: Optional[str] = None
