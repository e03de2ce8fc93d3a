"""Asset IP protection on Story Protocol.

Two flows share the same building blocks:
- register_asset_as_ip: synchronous one-shot registration on the asset.
- create_ip_registration + start_processing/run_pipeline: tracked registration
  records walking the status lifecycle, processed in the background.
Privy custody wallets use protect_with_privy and the client-side transaction
helpers (transaction_data / update_transaction_status).
"""

from __future__ import annotations

import logging
import os
from collections import Counter
from datetime import datetime, timezone
from typing import Optional

from sia.adapters.sia_store import SiaStore
from sia.models.asset import Asset, IPStatus, StoryProtocolRecord
from sia.models.ip_metadata import IPMetadata, MetadataPreviewRequest, MetadataPreviewResponse, StoryworldContext
from sia.models.ip_protection import (
    AssetSummary,
    BatchRegisterItem,
    BatchRegisterRequest,
    BatchRegisterResponse,
    BatchRegisterSummary,
    CreateRegistrationRequest,
    CreateRegistrationResponse,
    IPAssetInfoResponse,
    IPAssetsSummary,
    LifecycleResponse,
    Pagination,
    PrivyProtectionResponse,
    ProcessRegistrationResponse,
    RegisterIPRequest,
    RegisterIPResponse,
    TransactionDataResponse,
    TransactionStatusRequest,
    UserIPAssetsResponse,
    UserRegistrationsResponse,
    WalletInfo,
)
from sia.models.ip_registration import (
    CustomMetadata,
    IPRegistration,
    RegistrationStatus,
    RegistrationTransaction,
    StatusDetails,
    TransactionState,
    TransactionStep,
    WalletType,
)
from sia.services import (
    asset_service,
    ip_metadata_service,
    ip_registration_service,
    metadata_storage_service,
    pil_template_service,
)
from sia.services.errors import (
    ConflictError,
    ExternalServiceError,
    FailedPreconditionError,
    InvalidArgumentError,
    NotFoundError,
    PermissionDeniedError,
    ServiceError,
)
from sia.services.story_protocol_provider import StoryProtocolProvider, is_evm_address, provider_from_env

logger = logging.getLogger(__name__)

MAX_BATCH_SIZE = 10
CANCELLABLE_STATUSES = frozenset(
    {RegistrationStatus.DRAFT, RegistrationStatus.PENDING, RegistrationStatus.FAILED}
)


def _explorer_url() -> str:
    return (os.getenv("STORY_EXPLORER_URL") or "https://aeneid.storyscan.io").strip().rstrip("/")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def story_protocol_record(
    *,
    ip_id: str,
    tx_hash: Optional[str],
    token_id: Optional[str],
    metadata_uri: Optional[str],
    pil_template: str,
) -> StoryProtocolRecord:
    return StoryProtocolRecord(
        ip_id=ip_id,
        tx_hash=tx_hash,
        token_id=token_id,
        metadata_uri=metadata_uri,
        pil_template=pil_template,
        license_terms=pil_template_service.license_terms(pil_template),
        commercial_use="commercial" in pil_template,
        registered_at=_now(),
    )


class IPProtectionService:
    """Orchestrate metadata, storage and Story Protocol registration for assets.

    Default backend is simulated (STORY_PROTOCOL_BACKEND=simulated).
    """

    def __init__(self, store: SiaStore, provider: StoryProtocolProvider | None = None):
        self.store = store
        self._provider: StoryProtocolProvider = provider or provider_from_env()

    # --- helpers ---

    def _owned_registration(self, uid: str, registration_id: str) -> IPRegistration:
        registration = ip_registration_service.get_registration(self.store, registration_id)
        if registration.user_id != uid:
            raise PermissionDeniedError("You do not own this registration")
        return registration

    def _context_for(self, asset: Asset, storyworld_id: Optional[str] = None) -> Optional[StoryworldContext]:
        storyworld_id = storyworld_id or (asset.storyworld_ids[0] if asset.storyworld_ids else None)
        if not storyworld_id:
            return None
        return ip_metadata_service.storyworld_context(self.store.get_storyworld(storyworld_id))

    def _build_metadata(
        self,
        asset: Asset,
        *,
        storyworld_id: Optional[str] = None,
        ai_prompt: Optional[str] = None,
        custom_metadata: Optional[CustomMetadata] = None,
    ) -> IPMetadata:
        metadata = ip_metadata_service.generate_enhanced_metadata(
            asset, self._context_for(asset, storyworld_id), ai_prompt
        )
        metadata = ip_metadata_service.apply_custom_metadata(metadata, custom_metadata)
        errors = ip_metadata_service.validate_metadata(metadata)
        if errors:
            raise InvalidArgumentError(f"Invalid metadata: {', '.join(errors)}")
        return metadata

    def _mark_asset_registered(self, asset_id: str, record: StoryProtocolRecord) -> None:
        asset_service.set_ip_status(self.store, asset_id, IPStatus.REGISTERED, story_protocol=record)

    def _ensure_not_registered(self, asset_id: str) -> None:
        asset = self.store.get_asset(asset_id)
        if asset is not None and asset.ip_status == IPStatus.REGISTERED:
            raise ConflictError("Asset is already registered as IP")

    def _set_asset_ip_status(self, asset_id: str, ip_status: IPStatus) -> None:
        try:
            asset_service.set_ip_status(self.store, asset_id, ip_status)
        except Exception:
            logger.exception("asset_ip_status_update_failed asset=%s status=%s", asset_id, ip_status.value)

    # --- metadata ---

    def preview_metadata(self, uid: str, request: MetadataPreviewRequest) -> MetadataPreviewResponse:
        asset = asset_service.get_owned_asset(self.store, request.asset_id, uid)
        metadata = ip_metadata_service.generate_enhanced_metadata(asset, self._context_for(asset), request.ai_prompt)
        metadata.attributes.extend(request.custom_attributes)
        return MetadataPreviewResponse(metadata=metadata, preview=ip_metadata_service.preview(metadata))

    # --- synchronous registration ---

    async def register_asset_as_ip(self, uid: str, request: RegisterIPRequest) -> RegisterIPResponse:
        asset = asset_service.get_owned_asset(self.store, request.asset_id, uid)
        if asset.ip_status == IPStatus.REGISTERED:
            raise ConflictError("Asset is already registered as IP")
        if asset.ip_status == IPStatus.PENDING:
            raise ConflictError("IP registration already in progress for this asset")

        asset_service.set_ip_status(self.store, asset.id, IPStatus.PENDING)
        try:
            metadata = self._build_metadata(
                asset, ai_prompt=request.ai_prompt, custom_metadata=request.custom_metadata
            )
            stored = metadata_storage_service.upload(f"ip-metadata/{asset.id}", metadata)
            receipt = await self._provider.register_ip(
                asset_id=asset.id, metadata_uri=stored.uri, pil_template=request.pil_template
            )
            self._mark_asset_registered(
                asset.id,
                story_protocol_record(
                    ip_id=receipt.ip_id,
                    tx_hash=receipt.tx_hash,
                    token_id=receipt.token_id,
                    metadata_uri=stored.uri,
                    pil_template=request.pil_template,
                ),
            )
        except ServiceError:
            self._set_asset_ip_status(asset.id, IPStatus.UNREGISTERED)
            raise
        except Exception as exc:
            logger.exception("ip_register_failed asset=%s user=%s", asset.id, uid)
            self._set_asset_ip_status(asset.id, IPStatus.UNREGISTERED)
            raise ExternalServiceError("Failed to register asset as IP on Story Protocol") from exc

        logger.info("ip_register_completed asset=%s user=%s ip_id=%s", asset.id, uid, receipt.ip_id)
        return RegisterIPResponse(
            asset_id=asset.id,
            ip_id=receipt.ip_id,
            tx_hash=receipt.tx_hash,
            metadata_uri=stored.uri,
            pil_template=request.pil_template,
            gas_sponsored=receipt.gas_sponsored,
            explorer_url=f"{_explorer_url()}/tx/{receipt.tx_hash}",
        )

    async def batch_register(self, uid: str, request: BatchRegisterRequest) -> BatchRegisterResponse:
        if not request.asset_ids:
            raise InvalidArgumentError("asset_ids must be a non-empty list")
        if len(request.asset_ids) > MAX_BATCH_SIZE:
            raise InvalidArgumentError(f"Maximum {MAX_BATCH_SIZE} assets can be registered in a single batch")

        results: list[BatchRegisterItem] = []
        for asset_id in request.asset_ids:
            try:
                outcome = await self.register_asset_as_ip(
                    uid,
                    RegisterIPRequest(asset_id=asset_id, pil_template=request.pil_template, ai_prompt=request.ai_prompt),
                )
            except ServiceError as exc:
                results.append(BatchRegisterItem(asset_id=asset_id, success=False, error=exc.detail))
                continue
            results.append(
                BatchRegisterItem(asset_id=asset_id, success=True, ip_id=outcome.ip_id, tx_hash=outcome.tx_hash)
            )

        successful = sum(1 for r in results if r.success)
        total = len(results)
        return BatchRegisterResponse(
            success=successful > 0,
            results=results,
            summary=BatchRegisterSummary(
                total=total,
                successful=successful,
                failed=total - successful,
                success_rate=round(successful / total * 100),
            ),
        )

    # --- registered assets ---

    def user_ip_assets(
        self, uid: str, storyworld_id: Optional[str] = None, limit: int = 50, offset: int = 0
    ) -> UserIPAssetsResponse:
        rows = asset_service.registered_ips(self.store, owner_id=uid)
        if storyworld_id:
            rows = [a for a in rows if storyworld_id in a.storyworld_ids]
        limit = max(1, limit)
        offset = max(0, offset)
        page = rows[offset: offset + limit]
        by_type = Counter(a.type.value for a in rows)
        return UserIPAssetsResponse(
            assets=page,
            pagination=Pagination(
                total=len(rows), limit=limit, offset=offset, has_more=offset + len(page) < len(rows)
            ),
            summary=IPAssetsSummary(
                total_assets=len(rows),
                total_revenue=sum(a.story_protocol.total_revenue for a in rows),
                total_royalties=sum(a.story_protocol.total_royalties_earned for a in rows),
                assets_by_type=dict(by_type),
            ),
        )

    async def ip_asset_info(
        self, uid: str, asset_id: Optional[str] = None, ip_id: Optional[str] = None
    ) -> IPAssetInfoResponse:
        if not asset_id and not ip_id:
            raise InvalidArgumentError("Either asset_id or ip_id is required")
        if asset_id:
            asset = asset_service.get_owned_asset(self.store, asset_id, uid)
            if asset.ip_status != IPStatus.REGISTERED or asset.story_protocol is None:
                raise FailedPreconditionError("Asset is not registered as IP")
            ip_id = asset.story_protocol.ip_id
        info = await self._provider.get_ip_asset_info(ip_id)
        return IPAssetInfoResponse(
            asset_id=asset_id,
            ip_id=ip_id,
            ip_info=info,
            explorer_url=f"{_explorer_url()}/address/{ip_id}",
        )

    # --- tracked registrations ---

    def create_ip_registration(self, uid: str, request: CreateRegistrationRequest) -> CreateRegistrationResponse:
        asset = asset_service.get_owned_asset(self.store, request.asset_id, uid)
        existing = ip_registration_service.get_by_asset(self.store, asset.id)
        if existing is not None and existing.status != RegistrationStatus.CANCELLED:
            return CreateRegistrationResponse(registration=existing, existing=True)
        if asset.ip_status == IPStatus.REGISTERED:
            raise ConflictError("Asset is already registered as IP")

        registration = ip_registration_service.create_registration(
            self.store,
            asset_id=asset.id,
            user_id=uid,
            pil_template=request.pil_template,
            storyworld_id=asset.storyworld_ids[0] if asset.storyworld_ids else None,
            custom_metadata=request.custom_metadata,
            ai_prompt=request.ai_prompt,
            replace_existing=existing is not None,
        )
        asset_service.set_ip_status(self.store, asset.id, IPStatus.PENDING)
        return CreateRegistrationResponse(registration=registration, existing=False)

    def start_processing(self, uid: str, registration_id: str) -> ProcessRegistrationResponse:
        """Move to PENDING; the caller schedules run_pipeline in the background."""
        registration = self._owned_registration(uid, registration_id)
        self._ensure_not_registered(registration.asset_id)
        retry = registration.status == RegistrationStatus.FAILED
        ip_registration_service.update_status(
            self.store,
            registration.id,
            RegistrationStatus.PENDING,
            StatusDetails(
                message="Registration resubmitted for processing" if retry else "Registration submitted for processing"
            ),
        )
        asset_service.set_ip_status(self.store, registration.asset_id, IPStatus.PENDING)
        return ProcessRegistrationResponse(
            registration_id=registration.id,
            status=RegistrationStatus.PENDING,
            message="IP registration processing started",
        )

    async def run_pipeline(self, registration_id: str) -> Optional[IPRegistration]:
        """PENDING -> GENERATING_METADATA -> UPLOADING_METADATA -> REGISTERING_IP -> COMPLETED."""
        registration = self.store.get_registration(registration_id)
        if registration is None:
            logger.warning("ip_pipeline_missing_registration id=%s", registration_id)
            return None
        try:
            asset = self.store.get_asset(registration.asset_id)
            if asset is None:
                raise NotFoundError("Asset not found")

            ip_registration_service.update_status(
                self.store,
                registration_id,
                RegistrationStatus.GENERATING_METADATA,
                StatusDetails(message="Generating enhanced metadata with AI"),
            )
            metadata = self._build_metadata(
                asset,
                storyworld_id=registration.storyworld_id,
                ai_prompt=registration.ai_prompt,
                custom_metadata=registration.custom_metadata,
            )

            ip_registration_service.update_status(
                self.store,
                registration_id,
                RegistrationStatus.UPLOADING_METADATA,
                StatusDetails(message="Uploading metadata to IPFS", enhanced_metadata=metadata),
            )
            stored = metadata_storage_service.upload(f"ip-metadata/{asset.id}", metadata)

            ip_registration_service.update_status(
                self.store,
                registration_id,
                RegistrationStatus.REGISTERING_IP,
                StatusDetails(
                    message="Registering IP on Story Protocol",
                    metadata_uri=stored.uri,
                    ipfs_hash=stored.ipfs_hash,
                ),
            )
            receipt = await self._provider.register_ip(
                asset_id=asset.id, metadata_uri=stored.uri, pil_template=registration.pil_template
            )
            ip_registration_service.append_transaction(
                self.store,
                registration_id,
                RegistrationTransaction(
                    step=TransactionStep.REGISTER_IP,
                    status=TransactionState.CONFIRMED,
                    tx_hash=receipt.tx_hash,
                    block_number=receipt.block_number,
                    receipt={"ip_id": receipt.ip_id, "token_id": receipt.token_id},
                ),
            )
            completed = ip_registration_service.update_status(
                self.store,
                registration_id,
                RegistrationStatus.COMPLETED,
                StatusDetails(
                    message="IP registration completed successfully",
                    ip_id=receipt.ip_id,
                    token_id=receipt.token_id,
                    tx_hash=receipt.tx_hash,
                    block_number=receipt.block_number,
                    gas_sponsored=receipt.gas_sponsored,
                ),
            )
            self._mark_asset_registered(
                asset.id,
                story_protocol_record(
                    ip_id=receipt.ip_id,
                    tx_hash=receipt.tx_hash,
                    token_id=receipt.token_id,
                    metadata_uri=stored.uri,
                    pil_template=registration.pil_template,
                ),
            )
            logger.info("ip_pipeline_completed id=%s asset=%s ip_id=%s", registration_id, asset.id, receipt.ip_id)
            return completed
        except Exception as exc:
            logger.exception("ip_pipeline_failed id=%s", registration_id)
            return self._fail(registration, str(exc))

    def _fail(self, registration: IPRegistration, error: str) -> Optional[IPRegistration]:
        try:
            ip_registration_service.update_status(
                self.store,
                registration.id,
                RegistrationStatus.FAILED,
                StatusDetails(message="Registration failed", error=error),
            )
            failed = ip_registration_service.increment_retry_count(self.store, registration.id)
        except ServiceError as exc:
            logger.error("ip_pipeline_fail_transition_rejected id=%s error=%s", registration.id, exc.detail)
            return self.store.get_registration(registration.id)
        self._set_asset_ip_status(registration.asset_id, IPStatus.FAILED)
        return failed

    def registration_status(self, uid: str, registration_id: str) -> IPRegistration:
        return self._owned_registration(uid, registration_id)

    def registration_for_asset(self, uid: str, asset_id: str) -> IPRegistration:
        asset_service.get_owned_asset(self.store, asset_id, uid)
        registration = ip_registration_service.get_by_asset(self.store, asset_id)
        if registration is None:
            raise NotFoundError("Registration not found")
        return registration

    def user_registrations(
        self,
        uid: str,
        status: Optional[RegistrationStatus] = None,
        storyworld_id: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> UserRegistrationsResponse:
        page = ip_registration_service.list_for_user(
            self.store, uid, status=status, storyworld_id=storyworld_id, limit=limit, offset=offset
        )
        return UserRegistrationsResponse(
            registrations=page.registrations,
            pagination=Pagination(total=page.total, limit=max(1, limit), offset=max(0, offset), has_more=page.has_more),
            stats=ip_registration_service.user_stats(self.store, uid),
        )

    def lifecycle(self, uid: str, registration_id: str) -> LifecycleResponse:
        registration = self._owned_registration(uid, registration_id)
        asset = self.store.get_asset(registration.asset_id)
        summary = None
        if asset is not None:
            summary = AssetSummary(
                id=asset.id,
                name=asset.name,
                type=asset.type,
                ip_status=asset.ip_status,
                storyworld_ids=list(asset.storyworld_ids),
            )
        return LifecycleResponse(registration=registration, asset=summary)

    def cancel(self, uid: str, registration_id: str) -> IPRegistration:
        registration = self._owned_registration(uid, registration_id)
        if registration.status not in CANCELLABLE_STATUSES:
            raise ConflictError(f"Registration cannot be cancelled in status {registration.status.value}")
        cancelled = ip_registration_service.update_status(
            self.store,
            registration.id,
            RegistrationStatus.CANCELLED,
            StatusDetails(message="Registration cancelled by user"),
        )
        asset = self.store.get_asset(registration.asset_id)
        if asset is not None and asset.ip_status != IPStatus.REGISTERED:
            self._set_asset_ip_status(registration.asset_id, IPStatus.UNREGISTERED)
        return cancelled

    # --- Privy custody wallet flow ---

    async def protect_with_privy(
        self, uid: str, registration_id: str, wallet_info: WalletInfo
    ) -> PrivyProtectionResponse:
        registration = self._owned_registration(uid, registration_id)
        address = (wallet_info.address or "").strip()
        if not address:
            raise InvalidArgumentError("Wallet address is required")
        self._ensure_not_registered(registration.asset_id)

        starting = StatusDetails(message="Starting IP protection with Privy wallet", wallet_address=address)
        if registration.status == RegistrationStatus.PENDING:
            ip_registration_service.annotate(self.store, registration.id, starting)
        else:
            ip_registration_service.update_status(
                self.store, registration.id, RegistrationStatus.PENDING, starting
            )
        try:
            custom = registration.custom_metadata
            document = {
                "name": (custom.title if custom and custom.title else None) or "Untitled Asset",
                "description": (custom.description if custom and custom.description else None) or "",
                "attributes": [a.model_dump() for a in custom.attributes] if custom else [],
                "created_by": "SIA Platform",
                "protected_by": "Story Protocol",
                "license": registration.pil_template,
                "created_at": _now().isoformat(),
            }
            stored = metadata_storage_service.upload(f"ip-metadata/{registration.asset_id}", document)
            ip_registration_service.update_status(
                self.store,
                registration.id,
                RegistrationStatus.UPLOADING_METADATA,
                StatusDetails(
                    message="Metadata uploaded to IPFS",
                    metadata_uri=stored.uri,
                    ipfs_hash=stored.ipfs_hash,
                    wallet_address=address,
                ),
            )
            encoded = self._provider.build_mint_and_register_tx(
                registration_id=registration.id, wallet_address=address, metadata_uri=stored.uri
            )
            ip_registration_service.update_status(
                self.store,
                registration.id,
                RegistrationStatus.REGISTERING_IP,
                StatusDetails(message="Submitting mint and register transaction", wallet_address=address),
            )
            receipt = await self._provider.register_ip(
                asset_id=registration.asset_id, metadata_uri=stored.uri, pil_template=registration.pil_template
            )
            ip_registration_service.append_transaction(
                self.store,
                registration.id,
                RegistrationTransaction(
                    step=TransactionStep.REGISTER_IP,
                    status=TransactionState.CONFIRMED,
                    tx_hash=receipt.tx_hash,
                    block_number=receipt.block_number,
                    receipt={
                        "ip_id": receipt.ip_id,
                        "token_id": receipt.token_id,
                        "encoded_tx_data": encoded.data,
                    },
                ),
            )
            completed = ip_registration_service.update_status(
                self.store,
                registration.id,
                RegistrationStatus.COMPLETED,
                StatusDetails(
                    message="IP protection completed with Privy wallet",
                    ip_id=receipt.ip_id,
                    token_id=receipt.token_id,
                    tx_hash=receipt.tx_hash,
                    block_number=receipt.block_number,
                    metadata_uri=stored.uri,
                    gas_sponsored=receipt.gas_sponsored,
                    wallet_address=address,
                    wallet_type=WalletType.PRIVY,
                    privy_user_id=wallet_info.privy_user_id,
                ),
            )
        except Exception as exc:
            logger.exception("privy_protection_failed id=%s", registration.id)
            self._fail(registration, str(exc))
            if isinstance(exc, ServiceError):
                raise
            raise ExternalServiceError(f"IP protection failed: {exc}") from exc

        self._mark_asset_registered(
            registration.asset_id,
            story_protocol_record(
                ip_id=receipt.ip_id,
                tx_hash=receipt.tx_hash,
                token_id=receipt.token_id,
                metadata_uri=stored.uri,
                pil_template=registration.pil_template,
            ),
        )
        return PrivyProtectionResponse(
            registration_id=completed.id,
            status=completed.status,
            ip_id=completed.ip_id,
            token_id=completed.token_id,
            tx_hash=completed.tx_hash,
            metadata_uri=completed.metadata_uri,
            transactions=completed.transactions,
        )

    def transaction_data(
        self, uid: str, registration_id: str, wallet_address: Optional[str] = None
    ) -> TransactionDataResponse:
        """Encoded mint-and-register transaction for client-side signing.

        A DRAFT/PENDING/FAILED registration is first walked to REGISTERING_IP
        (metadata uploaded, wallet recorded) so the client can report the
        outcome through update_transaction_status.
        """
        registration = self._owned_registration(uid, registration_id)
        address = (wallet_address or registration.wallet_address or "").strip()
        if not address:
            raise InvalidArgumentError("Wallet address is required")
        if not is_evm_address(address):
            raise InvalidArgumentError("Invalid wallet address")

        if registration.status in CANCELLABLE_STATUSES:
            self._ensure_not_registered(registration.asset_id)
            registration = self._prepare_client_transaction(registration, address)
        elif registration.status != RegistrationStatus.REGISTERING_IP:
            raise FailedPreconditionError(
                f"Transaction data unavailable in status {registration.status.value}"
            )

        try:
            encoded = self._provider.build_mint_and_register_tx(
                registration_id=registration.id,
                wallet_address=address,
                metadata_uri=registration.metadata_uri or "",
            )
        except ValueError as exc:
            raise InvalidArgumentError("Invalid wallet address") from exc
        return TransactionDataResponse(
            registration_id=registration.id, chain_id=self._provider.chain_id, transaction=encoded
        )

    def _prepare_client_transaction(self, registration: IPRegistration, address: str) -> IPRegistration:
        if registration.status != RegistrationStatus.PENDING:
            ip_registration_service.update_status(
                self.store,
                registration.id,
                RegistrationStatus.PENDING,
                StatusDetails(message="Preparing client-side transaction", wallet_address=address),
            )
        asset = self.store.get_asset(registration.asset_id)
        if asset is None:
            raise NotFoundError("Asset not found")
        metadata = self._build_metadata(
            asset,
            storyworld_id=registration.storyworld_id,
            ai_prompt=registration.ai_prompt,
            custom_metadata=registration.custom_metadata,
        )
        stored = metadata_storage_service.upload(f"ip-metadata/{asset.id}", metadata)
        ip_registration_service.update_status(
            self.store,
            registration.id,
            RegistrationStatus.UPLOADING_METADATA,
            StatusDetails(
                message="Metadata uploaded to IPFS",
                metadata_uri=stored.uri,
                ipfs_hash=stored.ipfs_hash,
                enhanced_metadata=metadata,
            ),
        )
        asset_service.set_ip_status(self.store, asset.id, IPStatus.PENDING)
        return ip_registration_service.update_status(
            self.store,
            registration.id,
            RegistrationStatus.REGISTERING_IP,
            StatusDetails(
                message="Awaiting client-side transaction",
                wallet_address=address,
                wallet_type=WalletType.PRIVY,
            ),
        )

    def update_transaction_status(
        self, uid: str, registration_id: str, request: TransactionStatusRequest
    ) -> IPRegistration:
        registration = self._owned_registration(uid, registration_id)
        tx_hash = request.tx_hash.strip()
        if not tx_hash:
            raise InvalidArgumentError("Transaction hash is required")

        if request.success:
            updated = ip_registration_service.update_status(
                self.store,
                registration.id,
                RegistrationStatus.COMPLETED,
                StatusDetails(
                    message="Transaction confirmed on blockchain",
                    tx_hash=tx_hash,
                    block_number=request.block_number,
                    gas_sponsored=True,
                    paymaster_used=True,
                ),
            )
            state = TransactionState.CONFIRMED
        else:
            updated = ip_registration_service.update_status(
                self.store,
                registration.id,
                RegistrationStatus.FAILED,
                StatusDetails(
                    message="Transaction failed on blockchain",
                    tx_hash=tx_hash,
                    block_number=request.block_number,
                    error=request.error or "Transaction failed",
                ),
            )
            state = TransactionState.FAILED

        updated = ip_registration_service.append_transaction(
            self.store,
            registration.id,
            RegistrationTransaction(
                step=TransactionStep.REGISTER_IP,
                status=state,
                tx_hash=tx_hash,
                block_number=request.block_number,
                error=None if request.success else (request.error or "Transaction failed"),
            ),
        )
        if request.success:
            if updated.ip_id:
                self._mark_asset_registered(
                    registration.asset_id,
                    story_protocol_record(
                        ip_id=updated.ip_id,
                        tx_hash=tx_hash,
                        token_id=updated.token_id,
                        metadata_uri=updated.metadata_uri,
                        pil_template=registration.pil_template,
                    ),
                )
            else:
                self._set_asset_ip_status(registration.asset_id, IPStatus.REGISTERED)
        else:
            self._set_asset_ip_status(registration.asset_id, IPStatus.FAILED)
        return updated
