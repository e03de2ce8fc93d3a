"""Custody wallet provisioning for phone-verified users."""

from __future__ import annotations

import asyncio
import logging
import os
from datetime import datetime, timezone
from typing import Optional

from sia.adapters.sia_store import SiaStore
from sia.models.user import (
    PROVISIONABLE_CHAINS,
    WALLET_CHAINS,
    UserProfile,
    UserWallets,
    WalletProvisionAllResponse,
    WalletProvisionResponse,
    WalletProvisionResult,
    WalletRecord,
    WalletsStatus,
)
from sia.services.errors import InvalidArgumentError, NotFoundError
from sia.services.privy_wallet_provider import ProvisionedWallet, WalletProvider, provider_from_env
from sia.services.user_service import mask_phone

logger = logging.getLogger(__name__)


def _short_address(address: str) -> str:
    if len(address) <= 12:
        return address
    return f"{address[:6]}...{address[-4:]}"


def _provision_pause_seconds() -> float:
    raw = (os.getenv("WALLET_PROVISION_PAUSE_MS") or "0").strip()
    try:
        return max(0.0, float(raw)) / 1000.0
    except ValueError:
        return 0.0


class WalletService:
    """Create and look up custody wallets.

    Default backend is simulated. To create real wallets set:
    - WALLET_PROVIDER_BACKEND=privy
    - PRIVY_APP_ID
    - PRIVY_APP_SECRET
    """

    def __init__(self, store: SiaStore, provider: WalletProvider | None = None):
        self.store = store
        self._provider: WalletProvider = provider or provider_from_env()

    def _existing_chains(self, uid: str, profile: Optional[UserProfile]) -> dict[str, str]:
        existing = {w.chain_type: w.address for w in self.store.list_wallets(uid)}
        if profile is not None:
            for chain, address in profile.wallets.items():
                if address:
                    existing.setdefault(chain, address)
        return existing

    async def _create_one(self, chain: str, idempotency_key: str) -> Optional[ProvisionedWallet]:
        try:
            return await self._provider.create_wallet(chain_type=chain, idempotency_key=idempotency_key)
        except Exception as exc:
            logger.warning("wallet_create_failed chain=%s error=%s", chain, exc)
            return None

    def _record(self, uid: str, wallet: ProvisionedWallet, phone: Optional[str]) -> WalletRecord:
        return self.store.save_wallet(
            WalletRecord(
                user_id=uid,
                chain_type=wallet.chain_type,
                address=wallet.address,
                wallet_id=wallet.wallet_id,
                linked_phone=phone,
            )
        )

    def _set_status(self, uid: str, status: WalletsStatus, error: Optional[str] = None) -> None:
        now = datetime.now(timezone.utc)
        self.store.update_user(
            uid,
            lambda p: p.model_copy(update={"wallets_status": status, "wallets_error": error, "updated_at": now}),
        )

    async def create_wallets_for_verified_phone(self, uid: str, phone_number: str) -> WalletsStatus:
        """Create every missing chain wallet for a verified phone. Runs as a background task."""
        try:
            profile = self.store.get_user(uid)
            existing = self._existing_chains(uid, profile)
            missing = [chain for chain in WALLET_CHAINS if chain not in existing]
            if not missing:
                self._set_status(uid, WalletsStatus.COMPLETED)
                logger.info("wallets_already_exist uid=%s", uid)
                return WalletsStatus.COMPLETED

            created = await asyncio.gather(
                *(self._create_one(chain, f"{phone_number}-{chain}") for chain in missing)
            )
            wallets = [w for w in created if w is not None]
            if not wallets:
                self._set_status(uid, WalletsStatus.FAILED, "Failed to create any wallets")
                logger.error("wallets_create_none uid=%s phone=%s", uid, mask_phone(phone_number))
                return WalletsStatus.FAILED

            for wallet in wallets:
                self._record(uid, wallet, phone_number)
            now = datetime.now(timezone.utc)
            addresses = {w.chain_type: w.address for w in wallets}

            def _apply(p: UserProfile) -> UserProfile:
                return p.model_copy(
                    update={
                        "wallets": {**p.wallets, **addresses},
                        "wallets_status": WalletsStatus.COMPLETED,
                        "wallets_error": None,
                        "wallets_created_at": now,
                        "updated_at": now,
                    }
                )

            self.store.update_user(uid, _apply)
            logger.info(
                "wallets_created uid=%s phone=%s chains=%s",
                uid,
                mask_phone(phone_number),
                ",".join(sorted(addresses)),
            )
            return WalletsStatus.COMPLETED
        except Exception as exc:
            logger.exception("wallets_create_error uid=%s", uid)
            self._set_status(uid, WalletsStatus.FAILED, str(exc))
            return WalletsStatus.FAILED

    async def provision_wallet(self, uid: str, chain_type: str = "ethereum") -> WalletProvisionResponse:
        chain = (chain_type or "ethereum").strip().lower()
        if chain not in PROVISIONABLE_CHAINS:
            raise InvalidArgumentError(
                f"Unsupported chain type. Supported: {', '.join(PROVISIONABLE_CHAINS)}"
            )
        profile = self.store.get_user(uid)
        if profile is None:
            raise NotFoundError("User profile not found")
        existing = self._existing_chains(uid, profile)
        if chain in existing:
            return WalletProvisionResponse(address=existing[chain], chain_type=chain, exists=True)

        wallet = await self._provider.create_wallet(
            chain_type=chain, idempotency_key=f"{uid}-{chain}"
        )
        self._record(uid, wallet, profile.phone.number)
        now = datetime.now(timezone.utc)
        self.store.update_user(
            uid,
            lambda p: p.model_copy(update={"wallets": {**p.wallets, chain: wallet.address}, "updated_at": now}),
        )
        logger.info("wallet_provisioned uid=%s chain=%s address=%s", uid, chain, _short_address(wallet.address))
        return WalletProvisionResponse(address=wallet.address, chain_type=chain, exists=False)

    async def provision_all_wallets(self, uid: str) -> WalletProvisionAllResponse:
        profile = self.store.get_user(uid)
        if profile is None:
            raise NotFoundError("User profile not found")
        existing = self._existing_chains(uid, profile)
        pause = _provision_pause_seconds()
        results: list[WalletProvisionResult] = []
        created: dict[str, str] = {}

        for index, chain in enumerate(PROVISIONABLE_CHAINS):
            if chain in existing:
                results.append(WalletProvisionResult(chain_type=chain, status="exists", address=existing[chain]))
                continue
            if index and pause:
                await asyncio.sleep(pause)
            try:
                wallet = await self._provider.create_wallet(
                    chain_type=chain, idempotency_key=f"{uid}-{chain}"
                )
            except Exception as exc:
                logger.warning("wallet_provision_failed uid=%s chain=%s error=%s", uid, chain, exc)
                results.append(WalletProvisionResult(chain_type=chain, status="failed", error=str(exc)))
                continue
            self._record(uid, wallet, profile.phone.number)
            created[chain] = wallet.address
            results.append(WalletProvisionResult(chain_type=chain, status="created", address=wallet.address))

        if created:
            now = datetime.now(timezone.utc)
            self.store.update_user(
                uid,
                lambda p: p.model_copy(update={"wallets": {**p.wallets, **created}, "updated_at": now}),
            )
        return WalletProvisionAllResponse(
            success=any(r.status != "failed" for r in results),
            results=results,
        )

    def list_wallets(self, uid: str) -> UserWallets:
        profile = self.store.get_user(uid)
        if profile is None:
            raise NotFoundError("User profile not found")
        records = sorted(self.store.list_wallets(uid), key=lambda w: w.chain_type)
        return UserWallets(
            wallets=records,
            addresses=dict(profile.wallets),
            wallets_status=profile.wallets_status,
            wallets_error=profile.wallets_error,
        )
