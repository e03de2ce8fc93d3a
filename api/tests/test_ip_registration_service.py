from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from sia.adapters.sia_store import InMemorySiaStore
from sia.models.ip_registration import (
    TERMINAL_STATUSES,
    RegistrationStatus,
    RegistrationTransaction,
    StatusDetails,
    TransactionState,
    TransactionStep,
)
from sia.services import ip_registration_service
from sia.services.errors import ConflictError, InvalidTransitionError, NotFoundError

S = RegistrationStatus


def _create(store: InMemorySiaStore, asset_id: str = "asset-1", user_id: str = "alice", **kwargs):
    return ip_registration_service.create_registration(
        store, asset_id=asset_id, user_id=user_id, pil_template="commercial-use", **kwargs
    )


def test_create_registration_starts_in_draft_with_history() -> None:
    store = InMemorySiaStore()
    registration = _create(store, storyworld_id="sw-1")

    assert registration.status == S.DRAFT
    assert [h.status for h in registration.status_history] == [S.DRAFT]
    assert registration.status_history[0].message == "Registration record created"
    assert store.get_registration_by_asset("asset-1").id == registration.id


def test_one_registration_per_asset() -> None:
    store = InMemorySiaStore()
    _create(store)
    with pytest.raises(ConflictError):
        _create(store)

    replacement = _create(store, replace_existing=True)
    assert store.get_registration_by_asset("asset-1").id == replacement.id


def test_happy_path_appends_one_history_entry_per_transition() -> None:
    store = InMemorySiaStore()
    registration = _create(store)
    path = [S.PENDING, S.GENERATING_METADATA, S.UPLOADING_METADATA, S.REGISTERING_IP, S.COMPLETED]

    for status in path:
        ip_registration_service.update_status(store, registration.id, status, StatusDetails(message=status.value))

    final = store.get_registration(registration.id)
    assert final.status == S.COMPLETED
    assert [h.status for h in final.status_history] == [S.DRAFT, *path]
    assert final.completed_at is not None


def test_result_fields_are_copied_onto_record() -> None:
    store = InMemorySiaStore()
    registration = _create(store)
    ip_registration_service.update_status(store, registration.id, S.PENDING)
    ip_registration_service.update_status(
        store,
        registration.id,
        S.FAILED,
        StatusDetails(message="Registration failed", error="rpc timeout", tx_hash="0xabc"),
    )

    failed = store.get_registration(registration.id)
    assert failed.last_error == "rpc timeout"
    assert failed.tx_hash == "0xabc"
    assert failed.status_history[-1].tx_hash == "0xabc"


@pytest.mark.parametrize(
    "current,target",
    [
        (S.DRAFT, S.COMPLETED),
        (S.DRAFT, S.REGISTERING_IP),
        (S.GENERATING_METADATA, S.PENDING),
        (S.COMPLETED, S.PENDING),
        (S.CANCELLED, S.PENDING),
    ],
)
def test_invalid_transitions_are_rejected(current: RegistrationStatus, target: RegistrationStatus) -> None:
    assert not ip_registration_service.can_transition(current, target)


def test_update_status_raises_conflict_on_invalid_transition() -> None:
    store = InMemorySiaStore()
    registration = _create(store)

    with pytest.raises(InvalidTransitionError) as exc:
        ip_registration_service.update_status(store, registration.id, S.COMPLETED)
    assert exc.value.status_code == 409
    assert exc.value.detail == "Invalid status transition: DRAFT -> COMPLETED"
    assert len(store.get_registration(registration.id).status_history) == 1


def test_failed_registration_can_be_retried() -> None:
    assert ip_registration_service.can_transition(S.FAILED, S.PENDING)


def test_missing_registration_is_not_found() -> None:
    with pytest.raises(NotFoundError):
        ip_registration_service.update_status(InMemorySiaStore(), "nope", S.PENDING)


def test_list_for_user_paginates_newest_first_and_stats() -> None:
    store = InMemorySiaStore()
    ids = [_create(store, asset_id=f"asset-{i}").id for i in range(3)]
    base = datetime(2026, 1, 1, tzinfo=timezone.utc)
    for offset, registration_id in enumerate(ids):
        store.update_registration(
            registration_id, lambda r, o=offset: r.model_copy(update={"created_at": base + timedelta(minutes=o)})
        )
    _create(store, asset_id="asset-other", user_id="bob")
    for status in (S.PENDING, S.GENERATING_METADATA, S.UPLOADING_METADATA, S.REGISTERING_IP):
        ip_registration_service.update_status(store, ids[0], status)
    ip_registration_service.update_status(
        store, ids[0], S.COMPLETED, StatusDetails(gas_sponsored=True)
    )

    page = ip_registration_service.list_for_user(store, "alice", limit=2)
    assert page.total == 3
    assert page.has_more is True
    assert [r.id for r in page.registrations] == [ids[2], ids[1]]

    stats = ip_registration_service.user_stats(store, "alice")
    assert stats.total == 3
    assert stats.completed == 1
    assert stats.gas_sponsored == 1
    assert stats.total_value_protected == 3.7

    completed = ip_registration_service.list_for_user(store, "alice", status=S.COMPLETED)
    assert [r.id for r in completed.registrations] == [ids[0]]


def test_retry_count_and_transactions() -> None:
    store = InMemorySiaStore()
    registration = _create(store)
    ip_registration_service.increment_retry_count(store, registration.id)
    updated = ip_registration_service.append_transaction(
        store,
        registration.id,
        RegistrationTransaction(step=TransactionStep.REGISTER_IP, status=TransactionState.CONFIRMED, tx_hash="0x1"),
    )
    assert updated.retry_count == 1
    assert [t.tx_hash for t in updated.transactions] == ["0x1"]


def test_list_by_status_is_oldest_first() -> None:
    store = InMemorySiaStore()
    ids = [_create(store, asset_id=f"asset-{i}").id for i in range(3)]
    base = datetime(2026, 1, 1, tzinfo=timezone.utc)
    for offset, registration_id in zip((2, 0, 1), ids):
        store.update_registration(
            registration_id, lambda r, o=offset: r.model_copy(update={"created_at": base + timedelta(minutes=o)})
        )
    ip_registration_service.update_status(store, ids[2], S.PENDING)

    drafts = ip_registration_service.list_by_status(store, S.DRAFT)
    assert [r.id for r in drafts] == [ids[1], ids[0]]
    assert [r.id for r in ip_registration_service.list_by_status(store, S.DRAFT, limit=1)] == [ids[1]]


def test_terminal_statuses_have_no_exits() -> None:
    for terminal in TERMINAL_STATUSES:
        assert not any(ip_registration_service.can_transition(terminal, target) for target in RegistrationStatus)
