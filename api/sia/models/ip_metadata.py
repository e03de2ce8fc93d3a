"""IP metadata documents attached to Story Protocol registrations."""

from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel, Field


class MetadataCreator(BaseModel):
    name: str
    role: str
    address: Optional[str] = None


class MetadataAttribute(BaseModel):
    trait_type: str
    value: Union[str, int, float]


class IPMetadata(BaseModel):
    title: str
    description: str
    ip_type: str
    creators: list[MetadataCreator] = Field(default_factory=list)
    created_at: str
    image: Optional[str] = None
    animation_url: Optional[str] = None
    external_url: Optional[str] = None
    attributes: list[MetadataAttribute] = Field(default_factory=list)

    def trait_types(self) -> set[str]:
        return {attr.trait_type for attr in self.attributes}


class StoryworldContext(BaseModel):
    name: str
    description: str = ""
    genre: Optional[str] = None
    themes: list[str] = Field(default_factory=list)


class MetadataPreviewRequest(BaseModel):
    asset_id: str
    ai_prompt: Optional[str] = None
    custom_attributes: list[MetadataAttribute] = Field(default_factory=list)


class MetadataPreview(BaseModel):
    title: str
    description: str
    attribute_count: int
    has_image: bool
    has_animation: bool


class MetadataPreviewResponse(BaseModel):
    metadata: IPMetadata
    preview: MetadataPreview
