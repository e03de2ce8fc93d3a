from __future__ import annotations

import asyncio
import hashlib
import logging
import os
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

from sia.models.ip_protection import EncodedTransaction
from sia.services import pil_template_service
from sia.services.errors import ExternalServiceError

logger = logging.getLogger(__name__)

_PRIVATE_KEY_RE = re.compile(r"^0x[a-fA-F0-9]{64}$")
_HEX_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")
DEFAULT_SPG_CONTRACT = "0xc32A8a0FF3beDDDa58393d022aF433e78739FAbc"


def is_evm_address(value: str) -> bool:
    return bool(_HEX_ADDRESS_RE.fullmatch(value or ""))


@dataclass(frozen=True)
class StoryProtocolConfig:
    rpc_url: str = "https://aeneid.storyrpc.io"
    chain_id: int = 1315
    spg_contract: str = DEFAULT_SPG_CONTRACT
    private_key: Optional[str] = None
    paymaster_url: Optional[str] = None
    simulated_delay_seconds: float = 0.0

    @property
    def mock_mode(self) -> bool:
        return not (self.private_key and _PRIVATE_KEY_RE.fullmatch(self.private_key))

    @classmethod
    def from_env(cls) -> StoryProtocolConfig:
        spg_contract = (os.getenv("STORY_PROTOCOL_SPG_CONTRACT") or DEFAULT_SPG_CONTRACT).strip()
        if not _HEX_ADDRESS_RE.fullmatch(spg_contract):
            raise ValueError("invalid_spg_contract_address")
        delay_ms = float((os.getenv("STORY_PROTOCOL_SIMULATED_DELAY_MS") or "0").strip())
        config = cls(
            rpc_url=(os.getenv("STORY_PROTOCOL_RPC_URL") or "https://aeneid.storyrpc.io").strip(),
            chain_id=int((os.getenv("STORY_PROTOCOL_CHAIN_ID") or "1315").strip()),
            spg_contract=spg_contract,
            private_key=(os.getenv("STORY_PROTOCOL_PRIVATE_KEY") or "").strip() or None,
            paymaster_url=(os.getenv("STORY_PROTOCOL_PAYMASTER_URL") or "").strip() or None,
            simulated_delay_seconds=max(0.0, delay_ms) / 1000.0,
        )
        if config.mock_mode:
            logger.warning("story_protocol_mock_mode reason=missing_or_invalid_private_key chain_id=%s", config.chain_id)
        return config


@dataclass(frozen=True)
class RegistrationReceipt:
    ip_id: str
    tx_hash: str
    token_id: str
    block_number: int
    gas_sponsored: bool


class StoryProtocolProvider(Protocol):
    chain_id: int

    async def register_ip(self, *, asset_id: str, metadata_uri: str, pil_template: str) -> RegistrationReceipt:
        ...

    async def get_ip_asset_info(self, ip_id: str) -> dict[str, Any]:
        ...

    def build_mint_and_register_tx(
        self, *, registration_id: str, wallet_address: str, metadata_uri: str
    ) -> EncodedTransaction:
        ...


def _digest(seed: str) -> str:
    return hashlib.sha256(seed.encode("utf-8")).hexdigest()


class SimulatedStoryProtocolProvider:
    """Deterministic stand-in for Story Protocol's SPG registration flow."""

    def __init__(self, config: StoryProtocolConfig | None = None):
        self._config = config or StoryProtocolConfig()
        self.chain_id = self._config.chain_id

    async def register_ip(self, *, asset_id: str, metadata_uri: str, pil_template: str) -> RegistrationReceipt:
        if self._config.simulated_delay_seconds:
            await asyncio.sleep(self._config.simulated_delay_seconds)
        seed = f"{self.chain_id}:{asset_id}:{metadata_uri}:{pil_template}"
        ip_digest = _digest(f"ip:{seed}")
        tx_digest = _digest(f"tx:{seed}")
        receipt = RegistrationReceipt(
            ip_id=f"0x{ip_digest[:40]}",
            tx_hash=f"0x{tx_digest}",
            token_id=str(int(ip_digest[40:48], 16) % 10_000),
            block_number=1_000_000 + int(tx_digest[:6], 16),
            gas_sponsored=True,
        )
        logger.info("ip_registered_simulated asset=%s ip_id=%s tx=%s", asset_id, receipt.ip_id, receipt.tx_hash)
        return receipt

    async def get_ip_asset_info(self, ip_id: str) -> dict[str, Any]:
        return {
            "ip_id": ip_id,
            "owner": f"0x{_digest(f'owner:{ip_id}')[:40]}",
            "metadata_uri": f"ipfs://Qm{_digest(f'metadata:{ip_id}')[:44]}",
            "license_terms": pil_template_service.license_terms(
                pil_template_service.DEFAULT_TEMPLATE_ID
            ).model_dump(),
            "derivatives": [],
            "total_revenue": "0",
            "registered_at": datetime.now(timezone.utc).isoformat(),
            "status": "ACTIVE",
        }

    def build_mint_and_register_tx(
        self, *, registration_id: str, wallet_address: str, metadata_uri: str
    ) -> EncodedTransaction:
        if not is_evm_address(wallet_address):
            raise ValueError("invalid_wallet_address")
        selector = _digest("mintAndRegisterIp(address,address,(string,bytes32,string,bytes32))")[:8]
        words = (
            self._config.spg_contract[2:].lower().rjust(64, "0"),
            wallet_address[2:].lower().rjust(64, "0"),
            _digest(f"uri:{metadata_uri}"),
            _digest(f"registration:{registration_id}"),
        )
        return EncodedTransaction(to=self._config.spg_contract, data=f"0x{selector}{''.join(words)}", value="0")


class MisconfiguredStoryProtocolProvider:
    chain_id = 0

    def __init__(self, error_message: str):
        self._error_message = error_message

    async def register_ip(self, *, asset_id: str, metadata_uri: str, pil_template: str) -> RegistrationReceipt:
        raise ExternalServiceError(self._error_message)

    async def get_ip_asset_info(self, ip_id: str) -> dict[str, Any]:
        raise ExternalServiceError(self._error_message)

    def build_mint_and_register_tx(
        self, *, registration_id: str, wallet_address: str, metadata_uri: str
    ) -> EncodedTransaction:
        raise ExternalServiceError(self._error_message)


def provider_from_env() -> StoryProtocolProvider:
    backend = (os.getenv("STORY_PROTOCOL_BACKEND") or "simulated").strip().lower()
    if backend in {"", "simulated", "mock"}:
        try:
            return SimulatedStoryProtocolProvider(StoryProtocolConfig.from_env())
        except ValueError as exc:
            return MisconfiguredStoryProtocolProvider(f"story_protocol_misconfigured:{exc}")
    return MisconfiguredStoryProtocolProvider(f"unsupported_story_protocol_backend:{backend}")
