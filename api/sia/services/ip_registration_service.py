"""IP registration records and their status lifecycle.

DRAFT -> PENDING -> GENERATING_METADATA -> UPLOADING_METADATA -> REGISTERING_IP -> COMPLETED,
with FAILED and CANCELLED exits. FAILED may go back to PENDING (retry).
Every status change appends one status_history entry.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from sia.adapters.sia_store import SiaStore
from sia.models.ip_registration import (
    IN_FLIGHT_STATUSES,
    CustomMetadata,
    IPRegistration,
    RegistrationPage,
    RegistrationStats,
    RegistrationStatus,
    RegistrationTransaction,
    StatusDetails,
    StatusHistoryEntry,
)
from sia.services.errors import InvalidTransitionError, NotFoundError

logger = logging.getLogger(__name__)

VALUE_PROTECTED_PER_REGISTRATION = 3.70

ALLOWED_TRANSITIONS: dict[RegistrationStatus, frozenset[RegistrationStatus]] = {
    RegistrationStatus.DRAFT: frozenset({RegistrationStatus.PENDING, RegistrationStatus.CANCELLED}),
    RegistrationStatus.PENDING: frozenset(
        {
            RegistrationStatus.GENERATING_METADATA,
            RegistrationStatus.UPLOADING_METADATA,
            RegistrationStatus.FAILED,
            RegistrationStatus.CANCELLED,
        }
    ),
    RegistrationStatus.GENERATING_METADATA: frozenset(
        {RegistrationStatus.UPLOADING_METADATA, RegistrationStatus.FAILED}
    ),
    RegistrationStatus.UPLOADING_METADATA: frozenset(
        {RegistrationStatus.REGISTERING_IP, RegistrationStatus.FAILED}
    ),
    RegistrationStatus.REGISTERING_IP: frozenset({RegistrationStatus.COMPLETED, RegistrationStatus.FAILED}),
    RegistrationStatus.FAILED: frozenset({RegistrationStatus.PENDING, RegistrationStatus.CANCELLED}),
    RegistrationStatus.COMPLETED: frozenset(),
    RegistrationStatus.CANCELLED: frozenset(),
}

# StatusDetails fields copied onto the record when provided.
_RESULT_FIELDS = (
    "ip_id",
    "token_id",
    "tx_hash",
    "block_number",
    "metadata_uri",
    "ipfs_hash",
    "license_terms_id",
    "gas_sponsored",
    "paymaster_used",
    "wallet_address",
    "wallet_type",
    "privy_user_id",
    "enhanced_metadata",
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def can_transition(current: RegistrationStatus, target: RegistrationStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def create_registration(
    store: SiaStore,
    *,
    asset_id: str,
    user_id: str,
    pil_template: str,
    storyworld_id: Optional[str] = None,
    custom_metadata: Optional[CustomMetadata] = None,
    ai_prompt: Optional[str] = None,
    replace_existing: bool = False,
) -> IPRegistration:
    now = _now()
    registration = IPRegistration(
        asset_id=asset_id,
        user_id=user_id,
        storyworld_id=storyworld_id,
        pil_template=pil_template,
        custom_metadata=custom_metadata,
        ai_prompt=ai_prompt,
        status=RegistrationStatus.DRAFT,
        status_history=[
            StatusHistoryEntry(status=RegistrationStatus.DRAFT, timestamp=now, message="Registration record created")
        ],
        created_at=now,
        updated_at=now,
    )
    if replace_existing:
        store.replace_registration(registration)
    else:
        store.create_registration(registration)
    logger.info("ip_registration_created id=%s asset=%s user=%s", registration.id, asset_id, user_id)
    return registration


def apply_status(
    registration: IPRegistration,
    status: RegistrationStatus,
    details: Optional[StatusDetails] = None,
) -> IPRegistration:
    """Pure transition: validated copy of ``registration`` in ``status``."""
    if not can_transition(registration.status, status):
        raise InvalidTransitionError(registration.status.value, status.value)
    return _with_history_entry(registration, status, details)


def _with_history_entry(
    registration: IPRegistration,
    status: RegistrationStatus,
    details: Optional[StatusDetails],
) -> IPRegistration:
    details = details or StatusDetails()
    now = _now()
    update: dict = {"status": status, "updated_at": now}
    for field in _RESULT_FIELDS:
        value = getattr(details, field)
        if value is not None:
            update[field] = value
    if details.error is not None:
        update["last_error"] = details.error
    if status == RegistrationStatus.COMPLETED:
        update["completed_at"] = now
    entry = StatusHistoryEntry(
        status=status,
        timestamp=now,
        message=details.message,
        metadata=details.metadata,
        tx_hash=details.tx_hash,
        block_number=details.block_number,
        ip_id=details.ip_id,
        token_id=details.token_id,
        metadata_uri=details.metadata_uri,
        wallet_address=details.wallet_address,
    )
    update["status_history"] = [*registration.status_history, entry]
    return registration.model_copy(update=update)


def update_status(
    store: SiaStore,
    registration_id: str,
    status: RegistrationStatus,
    details: Optional[StatusDetails] = None,
) -> IPRegistration:
    updated = store.update_registration(registration_id, lambda r: apply_status(r, status, details))
    if updated is None:
        raise NotFoundError("Registration not found")
    logger.info(
        "ip_registration_status id=%s status=%s message=%s",
        registration_id,
        status.value,
        (details.message if details else None) or "",
    )
    return updated


def annotate(store: SiaStore, registration_id: str, details: StatusDetails) -> IPRegistration:
    """Record progress in the current status: one history entry, result fields copied."""
    updated = store.update_registration(
        registration_id, lambda r: _with_history_entry(r, r.status, details)
    )
    if updated is None:
        raise NotFoundError("Registration not found")
    return updated


def increment_retry_count(store: SiaStore, registration_id: str) -> IPRegistration:
    updated = store.update_registration(
        registration_id,
        lambda r: r.model_copy(update={"retry_count": r.retry_count + 1, "updated_at": _now()}),
    )
    if updated is None:
        raise NotFoundError("Registration not found")
    return updated


def append_transaction(
    store: SiaStore, registration_id: str, transaction: RegistrationTransaction
) -> IPRegistration:
    updated = store.update_registration(
        registration_id,
        lambda r: r.model_copy(update={"transactions": [*r.transactions, transaction], "updated_at": _now()}),
    )
    if updated is None:
        raise NotFoundError("Registration not found")
    return updated


def get_registration(store: SiaStore, registration_id: str) -> IPRegistration:
    registration = store.get_registration(registration_id)
    if registration is None:
        raise NotFoundError("Registration not found")
    return registration


def get_by_asset(store: SiaStore, asset_id: str) -> Optional[IPRegistration]:
    return store.get_registration_by_asset(asset_id)


def list_for_user(
    store: SiaStore,
    user_id: str,
    status: Optional[RegistrationStatus] = None,
    storyworld_id: Optional[str] = None,
    limit: int = 20,
    offset: int = 0,
) -> RegistrationPage:
    rows = sorted(
        store.list_registrations(user_id=user_id, status=status, storyworld_id=storyworld_id),
        key=lambda r: r.created_at,
        reverse=True,
    )
    limit = max(1, limit)
    offset = max(0, offset)
    page = rows[offset: offset + limit]
    return RegistrationPage(registrations=page, total=len(rows), has_more=offset + len(page) < len(rows))


def list_by_status(store: SiaStore, status: RegistrationStatus, limit: int = 100) -> list[IPRegistration]:
    rows = sorted(store.list_registrations(status=status), key=lambda r: r.created_at)
    return rows[: max(1, limit)]


def user_stats(store: SiaStore, user_id: str) -> RegistrationStats:
    rows = store.list_registrations(user_id=user_id)
    completed = sum(1 for r in rows if r.status == RegistrationStatus.COMPLETED)
    return RegistrationStats(
        total=len(rows),
        completed=completed,
        pending=sum(1 for r in rows if r.status in IN_FLIGHT_STATUSES),
        failed=sum(1 for r in rows if r.status == RegistrationStatus.FAILED),
        gas_sponsored=sum(1 for r in rows if r.gas_sponsored),
        total_value_protected=round(completed * VALUE_PROTECTED_PER_REGISTRATION, 2),
    )
