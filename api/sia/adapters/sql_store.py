"""SQLAlchemy-backed SiaStore (PostgreSQL in production, SQLite locally).

Each document is stored as a JSON payload next to the columns it is
filtered by. Asset/storyworld membership lives in a link table.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator, Optional

from sqlalchemy import DateTime, String, Text, create_engine, delete, select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import NullPool

from sia.adapters.sia_store import RegistrationMutator, UserMutator
from sia.models.asset import Asset, AssetType
from sia.models.ip_registration import IPRegistration, RegistrationStatus
from sia.models.storyworld import Storyworld, Visibility
from sia.models.user import UserProfile, WalletRecord
from sia.services.errors import ConflictError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class UserRecord(Base):
    __tablename__ = "users"

    uid: Mapped[str] = mapped_column(String, primary_key=True)
    payload_json: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class PhoneIndexRecord(Base):
    __tablename__ = "phone_index"

    phone_number: Mapped[str] = mapped_column(String, primary_key=True)
    uid: Mapped[str] = mapped_column(String, nullable=False, index=True)


class WalletRow(Base):
    __tablename__ = "wallets"

    user_id: Mapped[str] = mapped_column(String, primary_key=True)
    chain_type: Mapped[str] = mapped_column(String, primary_key=True)
    payload_json: Mapped[str] = mapped_column(Text, nullable=False)


class StoryworldRecord(Base):
    __tablename__ = "storyworlds"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    owner_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    visibility: Mapped[str] = mapped_column(String, nullable=False, index=True)
    payload_json: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)


class AssetRecord(Base):
    __tablename__ = "assets"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    owner_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    asset_type: Mapped[str] = mapped_column(String, nullable=False, index=True)
    ip_status: Mapped[str] = mapped_column(String, nullable=False, index=True)
    payload_json: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)


class AssetStoryworldLink(Base):
    __tablename__ = "asset_storyworlds"

    asset_id: Mapped[str] = mapped_column(String, primary_key=True)
    storyworld_id: Mapped[str] = mapped_column(String, primary_key=True, index=True)


class IPRegistrationRecord(Base):
    __tablename__ = "ip_registrations"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    asset_id: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    storyworld_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    status: Mapped[str] = mapped_column(String, nullable=False, index=True)
    payload_json: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


def _create_engine(url: str):
    kwargs: dict[str, Any] = {"pool_pre_ping": True}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        kwargs["poolclass"] = NullPool
    return create_engine(url, **kwargs)


class SqlSiaStore:
    """SQL SiaStore. Tables are created on first use."""

    backend = "sql"

    def __init__(self, database_url: str) -> None:
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlSiaStore")
        self.engine = _create_engine(database_url)
        self.SessionLocal = sessionmaker(
            bind=self.engine, autocommit=False, autoflush=False, expire_on_commit=False
        )
        Base.metadata.create_all(bind=self.engine)

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def ping(self) -> bool:
        with self._session() as session:
            session.execute(text("SELECT 1"))
        return True

    # --- users ---

    def get_user(self, uid: str) -> Optional[UserProfile]:
        with self._session() as session:
            row = session.get(UserRecord, uid)
            return UserProfile.model_validate_json(row.payload_json) if row else None

    def save_user(self, profile: UserProfile) -> UserProfile:
        with self._session() as session:
            row = session.get(UserRecord, profile.uid)
            if row is None:
                row = UserRecord(uid=profile.uid)
                session.add(row)
            row.payload_json = profile.model_dump_json()
            row.updated_at = profile.updated_at
        return profile

    def update_user(self, uid: str, mutate: UserMutator) -> Optional[UserProfile]:
        with self._session() as session:
            row = session.execute(
                select(UserRecord).where(UserRecord.uid == uid).with_for_update()
            ).scalar_one_or_none()
            if row is None:
                return None
            updated = mutate(UserProfile.model_validate_json(row.payload_json))
            row.payload_json = updated.model_dump_json()
            row.updated_at = updated.updated_at
        return updated

    def get_phone_owner(self, phone_number: str) -> Optional[str]:
        with self._session() as session:
            row = session.get(PhoneIndexRecord, phone_number)
            return row.uid if row else None

    def set_phone_owner(self, phone_number: str, uid: str) -> None:
        with self._session() as session:
            row = session.get(PhoneIndexRecord, phone_number)
            if row is None:
                session.add(PhoneIndexRecord(phone_number=phone_number, uid=uid))
            else:
                row.uid = uid

    def save_wallet(self, wallet: WalletRecord) -> WalletRecord:
        with self._session() as session:
            row = session.get(WalletRow, (wallet.user_id, wallet.chain_type))
            if row is None:
                row = WalletRow(user_id=wallet.user_id, chain_type=wallet.chain_type)
                session.add(row)
            row.payload_json = wallet.model_dump_json()
        return wallet

    def list_wallets(self, uid: str) -> list[WalletRecord]:
        with self._session() as session:
            rows = session.execute(select(WalletRow).where(WalletRow.user_id == uid)).scalars().all()
            return [WalletRecord.model_validate_json(r.payload_json) for r in rows]

    # --- storyworlds ---

    def save_storyworld(self, storyworld: Storyworld) -> Storyworld:
        with self._session() as session:
            row = session.get(StoryworldRecord, storyworld.id)
            if row is None:
                row = StoryworldRecord(id=storyworld.id)
                session.add(row)
            row.owner_id = storyworld.owner_id
            row.visibility = storyworld.visibility.value
            row.payload_json = storyworld.model_dump_json()
            row.updated_at = storyworld.updated_at
        return storyworld

    def get_storyworld(self, storyworld_id: str) -> Optional[Storyworld]:
        with self._session() as session:
            row = session.get(StoryworldRecord, storyworld_id)
            return Storyworld.model_validate_json(row.payload_json) if row else None

    def delete_storyworld(self, storyworld_id: str) -> bool:
        with self._session() as session:
            result = session.execute(delete(StoryworldRecord).where(StoryworldRecord.id == storyworld_id))
            return bool(result.rowcount)

    def list_storyworlds(
        self, owner_id: Optional[str] = None, visibility: Optional[Visibility] = None
    ) -> list[Storyworld]:
        stmt = select(StoryworldRecord)
        if owner_id is not None:
            stmt = stmt.where(StoryworldRecord.owner_id == owner_id)
        if visibility is not None:
            stmt = stmt.where(StoryworldRecord.visibility == visibility.value)
        with self._session() as session:
            rows = session.execute(stmt).scalars().all()
            return [Storyworld.model_validate_json(r.payload_json) for r in rows]

    # --- assets ---

    def save_asset(self, asset: Asset) -> Asset:
        with self._session() as session:
            row = session.get(AssetRecord, asset.id)
            if row is None:
                row = AssetRecord(id=asset.id)
                session.add(row)
            row.owner_id = asset.owner_id
            row.asset_type = asset.type.value
            row.ip_status = asset.ip_status.value
            row.payload_json = asset.model_dump_json()
            row.updated_at = asset.updated_at
            session.execute(delete(AssetStoryworldLink).where(AssetStoryworldLink.asset_id == asset.id))
            for storyworld_id in dict.fromkeys(asset.storyworld_ids):
                session.add(AssetStoryworldLink(asset_id=asset.id, storyworld_id=storyworld_id))
        return asset

    def get_asset(self, asset_id: str) -> Optional[Asset]:
        with self._session() as session:
            row = session.get(AssetRecord, asset_id)
            return Asset.model_validate_json(row.payload_json) if row else None

    def delete_asset(self, asset_id: str) -> bool:
        with self._session() as session:
            session.execute(delete(AssetStoryworldLink).where(AssetStoryworldLink.asset_id == asset_id))
            result = session.execute(delete(AssetRecord).where(AssetRecord.id == asset_id))
            return bool(result.rowcount)

    def list_assets(
        self,
        owner_id: Optional[str] = None,
        storyworld_id: Optional[str] = None,
        asset_type: Optional[AssetType] = None,
    ) -> list[Asset]:
        stmt = select(AssetRecord)
        if storyworld_id is not None:
            stmt = stmt.join(AssetStoryworldLink, AssetStoryworldLink.asset_id == AssetRecord.id).where(
                AssetStoryworldLink.storyworld_id == storyworld_id
            )
        if owner_id is not None:
            stmt = stmt.where(AssetRecord.owner_id == owner_id)
        if asset_type is not None:
            stmt = stmt.where(AssetRecord.asset_type == asset_type.value)
        with self._session() as session:
            rows = session.execute(stmt).scalars().all()
            return [Asset.model_validate_json(r.payload_json) for r in rows]

    # --- IP registrations ---

    def _write_registration(self, row: IPRegistrationRecord, registration: IPRegistration) -> None:
        row.asset_id = registration.asset_id
        row.user_id = registration.user_id
        row.storyworld_id = registration.storyworld_id
        row.status = registration.status.value
        row.payload_json = registration.model_dump_json()
        row.created_at = registration.created_at
        row.updated_at = registration.updated_at

    def create_registration(self, registration: IPRegistration) -> IPRegistration:
        try:
            with self._session() as session:
                row = IPRegistrationRecord(id=registration.id)
                self._write_registration(row, registration)
                session.add(row)
        except IntegrityError as exc:
            raise ConflictError("Registration already exists for this asset") from exc
        return registration

    def replace_registration(self, registration: IPRegistration) -> IPRegistration:
        with self._session() as session:
            session.execute(
                delete(IPRegistrationRecord).where(IPRegistrationRecord.asset_id == registration.asset_id)
            )
            session.flush()
            row = IPRegistrationRecord(id=registration.id)
            self._write_registration(row, registration)
            session.add(row)
        return registration

    def get_registration(self, registration_id: str) -> Optional[IPRegistration]:
        with self._session() as session:
            row = session.get(IPRegistrationRecord, registration_id)
            return IPRegistration.model_validate_json(row.payload_json) if row else None

    def get_registration_by_asset(self, asset_id: str) -> Optional[IPRegistration]:
        with self._session() as session:
            row = session.execute(
                select(IPRegistrationRecord).where(IPRegistrationRecord.asset_id == asset_id)
            ).scalar_one_or_none()
            return IPRegistration.model_validate_json(row.payload_json) if row else None

    def update_registration(
        self, registration_id: str, mutate: RegistrationMutator
    ) -> Optional[IPRegistration]:
        with self._session() as session:
            row = session.execute(
                select(IPRegistrationRecord)
                .where(IPRegistrationRecord.id == registration_id)
                .with_for_update()
            ).scalar_one_or_none()
            if row is None:
                return None
            updated = mutate(IPRegistration.model_validate_json(row.payload_json))
            self._write_registration(row, updated)
        return updated

    def list_registrations(
        self,
        user_id: Optional[str] = None,
        status: Optional[RegistrationStatus] = None,
        storyworld_id: Optional[str] = None,
    ) -> list[IPRegistration]:
        stmt = select(IPRegistrationRecord)
        if user_id is not None:
            stmt = stmt.where(IPRegistrationRecord.user_id == user_id)
        if status is not None:
            stmt = stmt.where(IPRegistrationRecord.status == status.value)
        if storyworld_id is not None:
            stmt = stmt.where(IPRegistrationRecord.storyworld_id == storyworld_id)
        with self._session() as session:
            rows = session.execute(stmt).scalars().all()
            return [IPRegistration.model_validate_json(r.payload_json) for r in rows]
