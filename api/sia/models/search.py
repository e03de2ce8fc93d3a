from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from sia.models.asset import Asset
from sia.models.storyworld import Storyworld


class SearchScope(str, Enum):
    BOTH = "both"
    STORYWORLDS = "storyworlds"
    ASSETS = "assets"


class SearchResults(BaseModel):
    query: str
    storyworlds: list[Storyworld] = Field(default_factory=list)
    assets: list[Asset] = Field(default_factory=list)
