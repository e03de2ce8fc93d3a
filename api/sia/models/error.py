"""Error response schema for 400, 401, 403, 404, 409 and 500. 422 uses the FastAPI default."""

from pydantic import BaseModel


class ErrorDetail(BaseModel):
    """Single top-level field detail (string). No extra keys."""

    detail: str
