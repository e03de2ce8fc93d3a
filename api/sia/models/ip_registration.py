"""IP registration records and their status lifecycle."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from sia.models.ip_metadata import IPMetadata, MetadataAttribute


def _new_id() -> str:
    return str(uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RegistrationStatus(str, Enum):
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    GENERATING_METADATA = "GENERATING_METADATA"
    UPLOADING_METADATA = "UPLOADING_METADATA"
    REGISTERING_IP = "REGISTERING_IP"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


IN_FLIGHT_STATUSES: frozenset[RegistrationStatus] = frozenset(
    {
        RegistrationStatus.PENDING,
        RegistrationStatus.GENERATING_METADATA,
        RegistrationStatus.UPLOADING_METADATA,
        RegistrationStatus.REGISTERING_IP,
    }
)
TERMINAL_STATUSES: frozenset[RegistrationStatus] = frozenset(
    {RegistrationStatus.COMPLETED, RegistrationStatus.CANCELLED}
)


class WalletType(str, Enum):
    PRIVY = "privy"
    EXTERNAL = "external"


class TransactionStep(str, Enum):
    MINT_NFT = "MINT_NFT"
    UPLOAD_METADATA = "UPLOAD_METADATA"
    REGISTER_IP = "REGISTER_IP"
    SET_LICENSE_TERMS = "SET_LICENSE_TERMS"


class TransactionState(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    FAILED = "FAILED"


class CustomMetadata(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    attributes: list[MetadataAttribute] = Field(default_factory=list)


class StatusHistoryEntry(BaseModel):
    status: RegistrationStatus
    timestamp: datetime = Field(default_factory=_utcnow)
    message: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None
    tx_hash: Optional[str] = None
    block_number: Optional[int] = None
    ip_id: Optional[str] = None
    token_id: Optional[str] = None
    metadata_uri: Optional[str] = None
    wallet_address: Optional[str] = None


class RegistrationTransaction(BaseModel):
    step: TransactionStep
    status: TransactionState
    tx_hash: Optional[str] = None
    block_number: Optional[int] = None
    error: Optional[str] = None
    receipt: Optional[dict[str, Any]] = None
    timestamp: datetime = Field(default_factory=_utcnow)


class IPRegistration(BaseModel):
    id: str = Field(default_factory=_new_id)
    asset_id: str
    user_id: str
    storyworld_id: Optional[str] = None
    pil_template: str
    custom_metadata: Optional[CustomMetadata] = None
    ai_prompt: Optional[str] = None
    status: RegistrationStatus = RegistrationStatus.DRAFT
    status_history: list[StatusHistoryEntry] = Field(default_factory=list)

    ip_id: Optional[str] = None
    token_id: Optional[str] = None
    tx_hash: Optional[str] = None
    block_number: Optional[int] = None
    metadata_uri: Optional[str] = None
    ipfs_hash: Optional[str] = None
    license_terms_id: Optional[str] = None

    wallet_address: Optional[str] = None
    wallet_type: Optional[WalletType] = None
    gas_sponsored: bool = False
    paymaster_used: bool = False
    privy_user_id: Optional[str] = None

    transactions: list[RegistrationTransaction] = Field(default_factory=list)
    enhanced_metadata: Optional[IPMetadata] = None
    last_error: Optional[str] = None
    retry_count: int = 0

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class StatusDetails(BaseModel):
    """Optional result fields recorded alongside a status transition."""

    message: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None
    ip_id: Optional[str] = None
    token_id: Optional[str] = None
    tx_hash: Optional[str] = None
    block_number: Optional[int] = None
    metadata_uri: Optional[str] = None
    ipfs_hash: Optional[str] = None
    license_terms_id: Optional[str] = None
    gas_sponsored: Optional[bool] = None
    paymaster_used: Optional[bool] = None
    wallet_address: Optional[str] = None
    wallet_type: Optional[WalletType] = None
    privy_user_id: Optional[str] = None
    enhanced_metadata: Optional[IPMetadata] = None
    error: Optional[str] = None


class RegistrationStats(BaseModel):
    total: int = 0
    completed: int = 0
    pending: int = 0
    failed: int = 0
    gas_sponsored: int = 0
    total_value_protected: float = 0


class RegistrationPage(BaseModel):
    registrations: list[IPRegistration]
    total: int
    has_more: bool
