from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from sia.models.license import LicenseTerms


def _new_id() -> str:
    return str(uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AssetType(str, Enum):
    CHARACTER = "CHARACTER"
    STORYLINE = "STORYLINE"
    LORE = "LORE"
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"
    AUDIO = "AUDIO"


class AssetStatus(str, Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    REGISTERED = "REGISTERED"


class IPStatus(str, Enum):
    UNREGISTERED = "UNREGISTERED"
    PENDING = "PENDING"
    REGISTERED = "REGISTERED"
    FAILED = "FAILED"


class AssetMedia(BaseModel):
    url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    mime_type: Optional[str] = None
    size: Optional[int] = None
    duration: Optional[float] = None


class StoryProtocolRecord(BaseModel):
    """On-chain IP identity attached to an asset once registered."""

    ip_id: str
    tx_hash: Optional[str] = None
    token_id: Optional[str] = None
    metadata_uri: Optional[str] = None
    pil_template: str
    license_terms: LicenseTerms
    commercial_use: bool = False
    derivative_ids: list[str] = Field(default_factory=list)
    parent_ip_ids: list[str] = Field(default_factory=list)
    total_revenue: float = 0
    total_royalties_earned: float = 0
    registered_at: datetime = Field(default_factory=_utcnow)


class AssetCreate(BaseModel):
    storyworld_id: str = ""
    name: str = ""
    type: Optional[AssetType] = None
    description: str = ""
    content: Optional[dict[str, Any]] = None
    tags: list[str] = Field(default_factory=list)
    media: Optional[AssetMedia] = None


class AssetUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    tags: Optional[list[str]] = None
    content: Optional[dict[str, Any]] = None
    status: Optional[AssetStatus] = None
    media: Optional[AssetMedia] = None
    storyworld_ids: Optional[list[str]] = None


class LikeRequest(BaseModel):
    increment: bool = True


class Asset(BaseModel):
    id: str = Field(default_factory=_new_id)
    owner_id: str
    storyworld_ids: list[str]
    name: str
    type: AssetType
    description: str = ""
    content: dict[str, Any] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)
    media: Optional[AssetMedia] = None
    status: AssetStatus = AssetStatus.DRAFT
    ip_status: IPStatus = IPStatus.UNREGISTERED
    story_protocol: Optional[StoryProtocolRecord] = None
    views: int = 0
    likes: int = 0
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    model_config = ConfigDict(from_attributes=True)
