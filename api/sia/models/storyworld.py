from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


def _new_id() -> str:
    return str(uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Visibility(str, Enum):
    PRIVATE = "PRIVATE"
    PUBLIC = "PUBLIC"


class StoryworldStats(BaseModel):
    total_assets: int = 0
    characters: int = 0
    storylines: int = 0
    lore_entries: int = 0


class StoryworldBase(BaseModel):
    name: str
    description: str
    cover_image_url: Optional[str] = None
    visibility: Visibility = Visibility.PRIVATE
    genre: Optional[str] = None
    themes: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)


class StoryworldCreate(StoryworldBase):
    name: str = ""
    description: str = ""
    ai_context: Optional[dict[str, Any]] = None


class StoryworldUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    cover_image_url: Optional[str] = None
    visibility: Optional[Visibility] = None
    genre: Optional[str] = None
    themes: Optional[list[str]] = None
    tags: Optional[list[str]] = None


class Storyworld(StoryworldBase):
    id: str = Field(default_factory=_new_id)
    owner_id: str
    ai_context: Optional[dict[str, Any]] = None
    stats: StoryworldStats = Field(default_factory=StoryworldStats)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    model_config = ConfigDict(from_attributes=True)
