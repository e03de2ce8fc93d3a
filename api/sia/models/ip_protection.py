"""Request/response schemas for the IP protection endpoints."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field

from sia.models.asset import Asset, AssetType, IPStatus
from sia.models.ip_registration import (
    CustomMetadata,
    IPRegistration,
    RegistrationStats,
    RegistrationStatus,
    RegistrationTransaction,
)

DEFAULT_PIL_TEMPLATE = "non-commercial-social-remixing"


class RegisterIPRequest(BaseModel):
    asset_id: str
    pil_template: str = DEFAULT_PIL_TEMPLATE
    custom_metadata: Optional[CustomMetadata] = None
    ai_prompt: Optional[str] = None


class RegisterIPResponse(BaseModel):
    success: bool = True
    asset_id: str
    ip_id: str
    tx_hash: str
    metadata_uri: str
    pil_template: str
    gas_sponsored: bool
    explorer_url: str


class BatchRegisterRequest(BaseModel):
    asset_ids: list[str] = Field(default_factory=list)
    pil_template: str = DEFAULT_PIL_TEMPLATE
    ai_prompt: Optional[str] = None


class BatchRegisterItem(BaseModel):
    asset_id: str
    success: bool
    ip_id: Optional[str] = None
    tx_hash: Optional[str] = None
    error: Optional[str] = None


class BatchRegisterSummary(BaseModel):
    total: int
    successful: int
    failed: int
    success_rate: int


class BatchRegisterResponse(BaseModel):
    success: bool
    results: list[BatchRegisterItem]
    summary: BatchRegisterSummary


class Pagination(BaseModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class IPAssetsSummary(BaseModel):
    total_assets: int
    total_revenue: float
    total_royalties: float
    assets_by_type: dict[str, int]


class UserIPAssetsResponse(BaseModel):
    assets: list[Asset]
    pagination: Pagination
    summary: IPAssetsSummary


class IPAssetInfoResponse(BaseModel):
    asset_id: Optional[str] = None
    ip_id: str
    ip_info: dict[str, Any]
    explorer_url: str


class CreateRegistrationRequest(BaseModel):
    asset_id: str
    pil_template: str = DEFAULT_PIL_TEMPLATE
    custom_metadata: Optional[CustomMetadata] = None
    ai_prompt: Optional[str] = None


class CreateRegistrationResponse(BaseModel):
    registration: IPRegistration
    existing: bool


class ProcessRegistrationResponse(BaseModel):
    registration_id: str
    status: RegistrationStatus
    message: str


class UserRegistrationsResponse(BaseModel):
    registrations: list[IPRegistration]
    pagination: Pagination
    stats: RegistrationStats


class AssetSummary(BaseModel):
    id: str
    name: str
    type: AssetType
    ip_status: IPStatus
    storyworld_ids: list[str]


class LifecycleResponse(BaseModel):
    registration: IPRegistration
    asset: Optional[AssetSummary] = None


class WalletInfo(BaseModel):
    address: Optional[str] = None
    type: str = "smart_wallet"
    privy_user_id: Optional[str] = None


class PrivyProtectionRequest(BaseModel):
    wallet_info: WalletInfo = Field(default_factory=WalletInfo)


class PrivyProtectionResponse(BaseModel):
    success: bool = True
    registration_id: str
    status: RegistrationStatus
    ip_id: Optional[str] = None
    token_id: Optional[str] = None
    tx_hash: Optional[str] = None
    metadata_uri: Optional[str] = None
    transactions: list[RegistrationTransaction]


class EncodedTransaction(BaseModel):
    to: str
    data: str
    value: str = "0"


class TransactionDataResponse(BaseModel):
    registration_id: str
    chain_id: int
    transaction: EncodedTransaction


class TransactionStatusRequest(BaseModel):
    tx_hash: str = ""
    block_number: Optional[int] = None
    success: bool
    error: Optional[str] = None
