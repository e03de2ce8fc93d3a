from __future__ import annotations

import pytest

from sia.adapters.sia_store import InMemorySiaStore
from sia.adapters.sql_store import SqlSiaStore
from sia.models.asset import Asset, AssetType, IPStatus
from sia.models.ip_registration import IPRegistration, RegistrationStatus
from sia.models.storyworld import Storyworld, Visibility
from sia.models.user import UserProfile, WalletRecord
from sia.services.errors import ConflictError


@pytest.fixture(params=["memory", "sql"])
def store(request, tmp_path):
    if request.param == "sql":
        return SqlSiaStore(f"sqlite+pysqlite:///{tmp_path / 'sia.db'}")
    return InMemorySiaStore()


def test_sql_store_requires_url() -> None:
    with pytest.raises(ValueError):
        SqlSiaStore("")


def test_ping(store) -> None:
    assert store.ping() is True


def test_users_phone_index_and_wallets(store) -> None:
    store.save_user(UserProfile(uid="alice", email="a@example.com"))
    assert store.get_user("alice").email == "a@example.com"
    assert store.get_user("nobody") is None

    updated = store.update_user("alice", lambda p: p.model_copy(update={"display_name": "Alice"}))
    assert updated.display_name == "Alice"
    assert store.get_user("alice").display_name == "Alice"
    assert store.update_user("nobody", lambda p: p) is None

    store.set_phone_owner("+15550001", "alice")
    store.set_phone_owner("+15550001", "bob")
    assert store.get_phone_owner("+15550001") == "bob"
    assert store.get_phone_owner("+15550002") is None

    store.save_wallet(WalletRecord(user_id="alice", chain_type="ethereum", address="0x1", wallet_id="w1"))
    store.save_wallet(WalletRecord(user_id="alice", chain_type="ethereum", address="0x2", wallet_id="w2"))
    store.save_wallet(WalletRecord(user_id="alice", chain_type="solana", address="So1", wallet_id="w3"))
    wallets = {w.chain_type: w.address for w in store.list_wallets("alice")}
    assert wallets == {"ethereum": "0x2", "solana": "So1"}
    assert store.list_wallets("bob") == []


def test_storyworld_filters(store) -> None:
    private = store.save_storyworld(Storyworld(owner_id="alice", name="Aether", description="x"))
    public = store.save_storyworld(
        Storyworld(owner_id="bob", name="Dune Sea", description="y", visibility=Visibility.PUBLIC)
    )

    assert [s.id for s in store.list_storyworlds(owner_id="alice")] == [private.id]
    assert [s.id for s in store.list_storyworlds(visibility=Visibility.PUBLIC)] == [public.id]
    assert len(store.list_storyworlds()) == 2

    assert store.delete_storyworld(private.id) is True
    assert store.delete_storyworld(private.id) is False
    assert store.get_storyworld(private.id) is None


def test_asset_membership_and_filters(store) -> None:
    kael = store.save_asset(
        Asset(owner_id="alice", storyworld_ids=["sw-1", "sw-2"], name="Kael", type=AssetType.CHARACTER)
    )
    store.save_asset(Asset(owner_id="alice", storyworld_ids=["sw-1"], name="Fall", type=AssetType.STORYLINE))
    store.save_asset(Asset(owner_id="bob", storyworld_ids=["sw-2"], name="Rook", type=AssetType.CHARACTER))

    assert {a.name for a in store.list_assets(storyworld_id="sw-1")} == {"Kael", "Fall"}
    assert {a.name for a in store.list_assets(storyworld_id="sw-2", owner_id="alice")} == {"Kael"}
    assert {a.name for a in store.list_assets(asset_type=AssetType.CHARACTER)} == {"Kael", "Rook"}

    store.save_asset(kael.model_copy(update={"storyworld_ids": ["sw-2"], "ip_status": IPStatus.PENDING}))
    assert {a.name for a in store.list_assets(storyworld_id="sw-1")} == {"Fall"}
    assert store.get_asset(kael.id).ip_status == IPStatus.PENDING

    assert store.delete_asset(kael.id) is True
    assert store.get_asset(kael.id) is None
    assert {a.name for a in store.list_assets(storyworld_id="sw-2")} == {"Rook"}


def test_one_registration_per_asset(store) -> None:
    first = store.create_registration(IPRegistration(asset_id="a1", user_id="alice", pil_template="commercial-use"))
    with pytest.raises(ConflictError):
        store.create_registration(IPRegistration(asset_id="a1", user_id="alice", pil_template="commercial-use"))

    replacement = store.replace_registration(
        IPRegistration(asset_id="a1", user_id="alice", pil_template="commercial-remix")
    )
    assert store.get_registration(first.id) is None
    assert store.get_registration_by_asset("a1").id == replacement.id


def test_registration_update_and_listing(store) -> None:
    mine = store.create_registration(
        IPRegistration(asset_id="a1", user_id="alice", storyworld_id="sw-1", pil_template="commercial-use")
    )
    store.create_registration(IPRegistration(asset_id="a2", user_id="alice", pil_template="commercial-use"))
    store.create_registration(IPRegistration(asset_id="a3", user_id="bob", pil_template="commercial-use"))

    updated = store.update_registration(
        mine.id, lambda r: r.model_copy(update={"status": RegistrationStatus.PENDING})
    )
    assert updated.status == RegistrationStatus.PENDING
    assert store.get_registration(mine.id).status == RegistrationStatus.PENDING
    assert store.update_registration("missing", lambda r: r) is None

    assert len(store.list_registrations(user_id="alice")) == 2
    assert [r.id for r in store.list_registrations(status=RegistrationStatus.PENDING)] == [mine.id]
    assert [r.id for r in store.list_registrations(storyworld_id="sw-1")] == [mine.id]


def test_memory_store_persists_to_json(tmp_path) -> None:
    path = str(tmp_path / "store.json")
    store = InMemorySiaStore(path)
    store.save_user(UserProfile(uid="alice"))
    store.create_registration(IPRegistration(asset_id="a1", user_id="alice", pil_template="commercial-use"))
    store.save()

    reloaded = InMemorySiaStore(path)
    assert reloaded.get_user("alice") is not None
    assert reloaded.get_registration_by_asset("a1") is not None
