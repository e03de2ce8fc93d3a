"""Story Protocol IP protection endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request

from sia.models.error import ErrorDetail
from sia.models.ip_metadata import MetadataPreviewRequest, MetadataPreviewResponse
from sia.models.ip_protection import (
    BatchRegisterRequest,
    BatchRegisterResponse,
    CreateRegistrationRequest,
    CreateRegistrationResponse,
    IPAssetInfoResponse,
    LifecycleResponse,
    PrivyProtectionRequest,
    PrivyProtectionResponse,
    ProcessRegistrationResponse,
    RegisterIPRequest,
    RegisterIPResponse,
    TransactionDataResponse,
    TransactionStatusRequest,
    UserIPAssetsResponse,
    UserRegistrationsResponse,
)
from sia.models.ip_registration import IPRegistration, RegistrationStatus
from sia.models.license import PILTemplateList
from sia.services import pil_template_service
from sia.services.auth_service import AuthContext, require_user
from sia.services.ip_protection_service import IPProtectionService

router = APIRouter()

_OWNED = {
    400: {"model": ErrorDetail},
    401: {"model": ErrorDetail},
    403: {"model": ErrorDetail},
    404: {"model": ErrorDetail},
    409: {"model": ErrorDetail},
}


def get_ip_service(request: Request) -> IPProtectionService:
    return IPProtectionService(
        request.app.state.sia_store,
        provider=request.app.state.story_protocol_provider,
    )


@router.get("/ip/pil-templates", response_model=PILTemplateList, responses={401: {"model": ErrorDetail}})
async def get_pil_templates(auth: AuthContext = Depends(require_user)) -> PILTemplateList:
    return pil_template_service.list_templates()


@router.post("/ip/metadata", response_model=MetadataPreviewResponse, responses=_OWNED)
async def generate_ip_metadata(
    body: MetadataPreviewRequest,
    auth: AuthContext = Depends(require_user),
    service: IPProtectionService = Depends(get_ip_service),
) -> MetadataPreviewResponse:
    """Preview the metadata an asset would be registered with."""
    return service.preview_metadata(auth.uid, body)


@router.post(
    "/ip/register",
    response_model=RegisterIPResponse,
    responses={**_OWNED, 502: {"model": ErrorDetail}},
)
async def register_asset_as_ip(
    body: RegisterIPRequest,
    auth: AuthContext = Depends(require_user),
    service: IPProtectionService = Depends(get_ip_service),
) -> RegisterIPResponse:
    """Register an asset on Story Protocol in a single request."""
    return await service.register_asset_as_ip(auth.uid, body)


@router.post("/ip/register/batch", response_model=BatchRegisterResponse, responses=_OWNED)
async def batch_register(
    body: BatchRegisterRequest,
    auth: AuthContext = Depends(require_user),
    service: IPProtectionService = Depends(get_ip_service),
) -> BatchRegisterResponse:
    return await service.batch_register(auth.uid, body)


@router.get("/ip/assets", response_model=UserIPAssetsResponse, responses={401: {"model": ErrorDetail}})
async def get_user_ip_assets(
    storyworld_id: Optional[str] = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    auth: AuthContext = Depends(require_user),
    service: IPProtectionService = Depends(get_ip_service),
) -> UserIPAssetsResponse:
    return service.user_ip_assets(auth.uid, storyworld_id=storyworld_id, limit=limit, offset=offset)


@router.get("/ip/assets/info", response_model=IPAssetInfoResponse, responses=_OWNED)
async def get_ip_asset_info(
    asset_id: Optional[str] = None,
    ip_id: Optional[str] = None,
    auth: AuthContext = Depends(require_user),
    service: IPProtectionService = Depends(get_ip_service),
) -> IPAssetInfoResponse:
    return await service.ip_asset_info(auth.uid, asset_id=asset_id, ip_id=ip_id)


@router.post("/ip/registrations", response_model=CreateRegistrationResponse, status_code=201, responses=_OWNED)
async def create_ip_registration(
    body: CreateRegistrationRequest,
    auth: AuthContext = Depends(require_user),
    service: IPProtectionService = Depends(get_ip_service),
) -> CreateRegistrationResponse:
    """Create a tracked registration record (or return the asset's existing one)."""
    return service.create_ip_registration(auth.uid, body)


@router.get("/ip/registrations", response_model=UserRegistrationsResponse, responses={401: {"model": ErrorDetail}})
async def get_user_ip_registrations(
    status: Optional[RegistrationStatus] = None,
    storyworld_id: Optional[str] = None,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    auth: AuthContext = Depends(require_user),
    service: IPProtectionService = Depends(get_ip_service),
) -> UserRegistrationsResponse:
    return service.user_registrations(
        auth.uid, status=status, storyworld_id=storyworld_id, limit=limit, offset=offset
    )


@router.get("/ip/registrations/by-asset/{asset_id}", response_model=IPRegistration, responses=_OWNED)
async def get_registration_for_asset(
    asset_id: str,
    auth: AuthContext = Depends(require_user),
    service: IPProtectionService = Depends(get_ip_service),
) -> IPRegistration:
    return service.registration_for_asset(auth.uid, asset_id)


@router.get("/ip/registrations/{registration_id}", response_model=IPRegistration, responses=_OWNED)
async def get_ip_registration_status(
    registration_id: str,
    auth: AuthContext = Depends(require_user),
    service: IPProtectionService = Depends(get_ip_service),
) -> IPRegistration:
    return service.registration_status(auth.uid, registration_id)


@router.post(
    "/ip/registrations/{registration_id}/process",
    response_model=ProcessRegistrationResponse,
    status_code=202,
    responses=_OWNED,
)
async def process_ip_registration(
    registration_id: str,
    background_tasks: BackgroundTasks,
    auth: AuthContext = Depends(require_user),
    service: IPProtectionService = Depends(get_ip_service),
) -> ProcessRegistrationResponse:
    """Submit a registration; metadata generation and registration run in the background."""
    accepted = service.start_processing(auth.uid, registration_id)
    background_tasks.add_task(service.run_pipeline, registration_id)
    return accepted


@router.get("/ip/registrations/{registration_id}/lifecycle", response_model=LifecycleResponse, responses=_OWNED)
async def get_ip_registration_lifecycle(
    registration_id: str,
    auth: AuthContext = Depends(require_user),
    service: IPProtectionService = Depends(get_ip_service),
) -> LifecycleResponse:
    return service.lifecycle(auth.uid, registration_id)


@router.post("/ip/registrations/{registration_id}/cancel", response_model=IPRegistration, responses=_OWNED)
async def cancel_ip_registration(
    registration_id: str,
    auth: AuthContext = Depends(require_user),
    service: IPProtectionService = Depends(get_ip_service),
) -> IPRegistration:
    return service.cancel(auth.uid, registration_id)


@router.post(
    "/ip/registrations/{registration_id}/privy-protection",
    response_model=PrivyProtectionResponse,
    responses={**_OWNED, 502: {"model": ErrorDetail}},
)
async def start_ip_protection_with_privy(
    registration_id: str,
    body: PrivyProtectionRequest,
    auth: AuthContext = Depends(require_user),
    service: IPProtectionService = Depends(get_ip_service),
) -> PrivyProtectionResponse:
    return await service.protect_with_privy(auth.uid, registration_id, body.wallet_info)


@router.get(
    "/ip/registrations/{registration_id}/transaction-data",
    response_model=TransactionDataResponse,
    responses=_OWNED,
)
async def get_transaction_data_for_privy(
    registration_id: str,
    wallet_address: Optional[str] = None,
    auth: AuthContext = Depends(require_user),
    service: IPProtectionService = Depends(get_ip_service),
) -> TransactionDataResponse:
    """Encoded mint-and-register transaction for the client wallet to sign."""
    return service.transaction_data(auth.uid, registration_id, wallet_address)


@router.post(
    "/ip/registrations/{registration_id}/transaction-status",
    response_model=IPRegistration,
    responses=_OWNED,
)
async def update_transaction_status(
    registration_id: str,
    body: TransactionStatusRequest,
    auth: AuthContext = Depends(require_user),
    service: IPProtectionService = Depends(get_ip_service),
) -> IPRegistration:
    return service.update_transaction_status(auth.uid, registration_id, body)
