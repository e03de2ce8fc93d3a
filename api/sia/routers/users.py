from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, Response

from sia.adapters.sia_store import SiaStore
from sia.models.error import ErrorDetail
from sia.models.user import (
    PhoneCheckResponse,
    PhoneVerificationRequest,
    PhoneVerificationResponse,
    UserProfile,
    UserWallets,
    WalletProvisionAllResponse,
    WalletProvisionRequest,
    WalletProvisionResponse,
)
from sia.services import user_service
from sia.services.auth_service import AuthContext, optional_user, require_user
from sia.services.wallet_service import WalletService

router = APIRouter()


def get_store(request: Request) -> SiaStore:
    return request.app.state.sia_store


def get_wallet_service(request: Request) -> WalletService:
    return WalletService(
        request.app.state.sia_store,
        provider=getattr(request.app.state, "wallet_provider", None),
    )


@router.post(
    "/users/me",
    response_model=UserProfile,
    status_code=201,
    responses={200: {"model": UserProfile}, 401: {"model": ErrorDetail}},
)
async def ensure_profile(
    response: Response,
    auth: AuthContext = Depends(require_user),
    store: SiaStore = Depends(get_store),
) -> UserProfile:
    """Create the caller's profile on first sign-in; return it unchanged afterwards."""
    profile, created = user_service.ensure_profile(store, auth)
    if not created:
        response.status_code = 200
    return profile


@router.get(
    "/users/me",
    response_model=UserProfile,
    responses={401: {"model": ErrorDetail}, 404: {"model": ErrorDetail}},
)
async def get_profile(auth: AuthContext = Depends(require_user), store: SiaStore = Depends(get_store)) -> UserProfile:
    return user_service.get_profile(store, auth.uid)


@router.post(
    "/users/me/phone-verification",
    response_model=PhoneVerificationResponse,
    responses={400: {"model": ErrorDetail}, 401: {"model": ErrorDetail}},
)
async def verify_phone(
    body: PhoneVerificationRequest,
    background_tasks: BackgroundTasks,
    auth: AuthContext = Depends(require_user),
    store: SiaStore = Depends(get_store),
    wallets: WalletService = Depends(get_wallet_service),
) -> PhoneVerificationResponse:
    """Mark the phone verified and start custody wallet creation in the background."""
    profile = user_service.verify_phone(store, auth, body.phone_number)
    background_tasks.add_task(wallets.create_wallets_for_verified_phone, auth.uid, profile.phone.number)
    return PhoneVerificationResponse(success=True, message="Phone verified and wallet creation started")


@router.get(
    "/users/phone-numbers/check",
    response_model=PhoneCheckResponse,
    responses={400: {"model": ErrorDetail}},
)
async def check_phone_number(
    phone_number: str = Query("", description="E.164 phone number"),
    auth: Optional[AuthContext] = Depends(optional_user),
    store: SiaStore = Depends(get_store),
) -> PhoneCheckResponse:
    return user_service.check_phone_number(store, phone_number, auth.uid if auth else None)


@router.get(
    "/users/me/wallets",
    response_model=UserWallets,
    responses={401: {"model": ErrorDetail}, 404: {"model": ErrorDetail}},
)
async def list_wallets(
    auth: AuthContext = Depends(require_user),
    wallets: WalletService = Depends(get_wallet_service),
) -> UserWallets:
    return wallets.list_wallets(auth.uid)


@router.post(
    "/users/me/wallets",
    response_model=WalletProvisionResponse,
    responses={400: {"model": ErrorDetail}, 401: {"model": ErrorDetail}, 502: {"model": ErrorDetail}},
)
async def provision_wallet(
    body: WalletProvisionRequest,
    auth: AuthContext = Depends(require_user),
    wallets: WalletService = Depends(get_wallet_service),
) -> WalletProvisionResponse:
    """Return the caller's wallet for a chain, creating it if needed."""
    return await wallets.provision_wallet(auth.uid, body.chain_type)


@router.post(
    "/users/me/wallets/provision-all",
    response_model=WalletProvisionAllResponse,
    responses={401: {"model": ErrorDetail}},
)
async def provision_all_wallets(
    auth: AuthContext = Depends(require_user),
    wallets: WalletService = Depends(get_wallet_service),
) -> WalletProvisionAllResponse:
    return await wallets.provision_all_wallets(auth.uid)
