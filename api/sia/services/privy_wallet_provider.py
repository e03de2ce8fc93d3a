from __future__ import annotations

import base64
import hashlib
import logging
import os
from dataclasses import dataclass
from typing import Protocol

import httpx

from sia.services.errors import ExternalServiceError

logger = logging.getLogger(__name__)

EVM_CHAINS = frozenset({"ethereum"})
_BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"


@dataclass(frozen=True)
class ProvisionedWallet:
    wallet_id: str
    address: str
    chain_type: str


class WalletProvider(Protocol):
    async def create_wallet(self, *, chain_type: str, idempotency_key: str) -> ProvisionedWallet:
        ...


@dataclass(frozen=True)
class PrivyConfig:
    app_id: str
    app_secret: str
    api_url: str = "https://api.privy.io"
    timeout_seconds: float = 15.0

    @classmethod
    def from_env(cls) -> PrivyConfig:
        required = {
            "PRIVY_APP_ID": (os.getenv("PRIVY_APP_ID") or "").strip(),
            "PRIVY_APP_SECRET": (os.getenv("PRIVY_APP_SECRET") or "").strip(),
        }
        missing = [name for name, value in required.items() if not value]
        if missing:
            joined = ",".join(sorted(missing))
            raise ValueError(f"missing_required_env:{joined}")
        return cls(
            app_id=required["PRIVY_APP_ID"],
            app_secret=required["PRIVY_APP_SECRET"],
            api_url=(os.getenv("PRIVY_API_URL") or "https://api.privy.io").strip().rstrip("/"),
            timeout_seconds=float((os.getenv("PRIVY_TIMEOUT_SECONDS") or "15").strip()),
        )


class PrivyWalletProvider:
    """Create server-custodied wallets through the Privy REST API."""

    def __init__(self, config: PrivyConfig):
        self._config = config

    def _headers(self, idempotency_key: str) -> dict[str, str]:
        raw = f"{self._config.app_id}:{self._config.app_secret}".encode("utf-8")
        return {
            "authorization": f"Basic {base64.b64encode(raw).decode('ascii')}",
            "privy-app-id": self._config.app_id,
            "privy-idempotency-key": idempotency_key,
            "content-type": "application/json",
        }

    async def create_wallet(self, *, chain_type: str, idempotency_key: str) -> ProvisionedWallet:
        url = f"{self._config.api_url}/v1/wallets"
        async with httpx.AsyncClient(timeout=self._config.timeout_seconds) as client:
            try:
                response = await client.post(
                    url,
                    json={"chain_type": chain_type},
                    headers=self._headers(idempotency_key),
                )
            except httpx.HTTPError as exc:
                raise ExternalServiceError(f"privy_request_failed:{exc.__class__.__name__}") from exc
        if response.status_code >= 300:
            raise ExternalServiceError(f"privy_http_{response.status_code}:{response.text[:200]}")
        body = response.json()
        address = str(body.get("address") or "").strip()
        wallet_id = str(body.get("id") or "").strip()
        if not address or not wallet_id:
            raise ExternalServiceError("privy_response_missing_wallet")
        return ProvisionedWallet(
            wallet_id=wallet_id,
            address=address,
            chain_type=str(body.get("chain_type") or chain_type),
        )


def _base58(digest: bytes) -> str:
    value = int.from_bytes(digest, "big")
    chars: list[str] = []
    while value:
        value, rem = divmod(value, 58)
        chars.append(_BASE58_ALPHABET[rem])
    return "".join(reversed(chars)) or "1"


class SimulatedWalletProvider:
    async def create_wallet(self, *, chain_type: str, idempotency_key: str) -> ProvisionedWallet:
        digest = hashlib.sha256(f"wallet:{idempotency_key}".encode("utf-8")).digest()
        if chain_type in EVM_CHAINS:
            address = f"0x{digest.hex()[:40]}"
        else:
            address = _base58(digest)
        return ProvisionedWallet(
            wallet_id=f"sim-{digest.hex()[:24]}",
            address=address,
            chain_type=chain_type,
        )


class MisconfiguredWalletProvider:
    def __init__(self, error_message: str):
        self._error_message = error_message

    async def create_wallet(self, *, chain_type: str, idempotency_key: str) -> ProvisionedWallet:
        raise ExternalServiceError(self._error_message)


def provider_from_env() -> WalletProvider:
    backend = (os.getenv("WALLET_PROVIDER_BACKEND") or "simulated").strip().lower()
    if backend in {"", "simulated", "mock"}:
        return SimulatedWalletProvider()
    if backend == "privy":
        try:
            return PrivyWalletProvider(PrivyConfig.from_env())
        except ValueError as exc:
            logger.error("wallet_provider_misconfigured backend=privy error=%s", exc)
            return MisconfiguredWalletProvider(f"privy_misconfigured:{exc}")
    return MisconfiguredWalletProvider(f"unsupported_wallet_backend:{backend}")
