"""Programmable IP License (PIL) templates."""

from __future__ import annotations

from pydantic import BaseModel


class LicenseTerms(BaseModel):
    allow_derivatives: bool
    commercial_use: bool
    royalty_percentage: float = 0
    territory: str = "GLOBAL"
    attribution: bool = True


class PILTemplate(BaseModel):
    id: str
    name: str
    description: str
    terms: LicenseTerms


class PILTemplateList(BaseModel):
    templates: list[PILTemplate]
    default_template: str
