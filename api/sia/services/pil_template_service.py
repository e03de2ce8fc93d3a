"""Predefined Programmable IP License templates."""

from __future__ import annotations

from sia.models.license import LicenseTerms, PILTemplate, PILTemplateList

DEFAULT_TEMPLATE_ID = "non-commercial-social-remixing"

_TEMPLATES: tuple[PILTemplate, ...] = (
    PILTemplate(
        id="non-commercial-social-remixing",
        name="Non-Commercial Social Remixing",
        description="Free to use for non-commercial purposes with attribution. Allows remixing and derivatives.",
        terms=LicenseTerms(allow_derivatives=True, commercial_use=False, royalty_percentage=0),
    ),
    PILTemplate(
        id="commercial-use",
        name="Commercial Use",
        description="Allows commercial usage with revenue sharing. No derivatives allowed.",
        terms=LicenseTerms(allow_derivatives=False, commercial_use=True, royalty_percentage=10),
    ),
    PILTemplate(
        id="commercial-remix",
        name="Commercial Remix",
        description="Commercial use and remixing allowed with revenue sharing on derivatives.",
        terms=LicenseTerms(allow_derivatives=True, commercial_use=True, royalty_percentage=5),
    ),
    PILTemplate(
        id="creative-commons-attribution",
        name="Creative Commons Attribution",
        description="Open license similar to CC-BY. Commercial and non-commercial use with attribution.",
        terms=LicenseTerms(allow_derivatives=True, commercial_use=True, royalty_percentage=0),
    ),
)
_BY_ID = {t.id: t for t in _TEMPLATES}


def list_templates() -> PILTemplateList:
    return PILTemplateList(templates=list(_TEMPLATES), default_template=DEFAULT_TEMPLATE_ID)


def license_terms(template_id: str) -> LicenseTerms:
    """Terms for ``template_id``; unknown ids fall back to non-commercial remixing."""
    template = _BY_ID.get(template_id) or _BY_ID[DEFAULT_TEMPLATE_ID]
    return template.terms.model_copy()
