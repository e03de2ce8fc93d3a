"""Content-addressed storage for IP metadata documents."""

from __future__ import annotations

import hashlib
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import BaseModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredMetadata:
    uri: str
    ipfs_hash: str


def _storage_dir() -> Path | None:
    raw = (os.getenv("METADATA_STORAGE_DIR") or "").strip()
    return Path(raw) if raw else None


def canonical_json(document: Any) -> str:
    if isinstance(document, BaseModel):
        document = document.model_dump(mode="json", exclude_none=True)
    return json.dumps(document, sort_keys=True, separators=(",", ":"))


def content_hash(document: Any) -> str:
    digest = hashlib.sha256(canonical_json(document).encode("utf-8")).hexdigest()
    return f"Qm{digest[:44]}"


def upload(key: str, document: Any) -> StoredMetadata:
    """Store ``document`` and return its ipfs URI. Same document, same URI."""
    body = canonical_json(document)
    ipfs_hash = content_hash(document)
    directory = _storage_dir()
    if directory is not None:
        directory.mkdir(parents=True, exist_ok=True)
        (directory / f"{ipfs_hash}.json").write_text(body, encoding="utf-8")
    logger.info("metadata_uploaded key=%s hash=%s bytes=%s", key, ipfs_hash, len(body))
    return StoredMetadata(uri=f"ipfs://{ipfs_hash}", ipfs_hash=ipfs_hash)
