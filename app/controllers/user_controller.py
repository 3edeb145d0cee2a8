from fastapi import APIRouter, HTTPException, Depends, status
from app.schemas.auth import ConfirmedTokenRequest
from app.schemas.common import ApiResponse
from app.schemas.user import (
    ProfileResponse,
    ProfileUpdateRequest,
    ProfileUpdateResponse,
    CreditResponse,
    LinkConfirmedResponse,
)
from app.services.user_service import (
    get_profile,
    update_profile,
    get_credit,
    link_confirmed,
    sync_with_confirmed,
)
from app.utils.dependencies import get_current_user_id

router = APIRouter(prefix="/user", tags=["User"])


def _error(e: Exception) -> HTTPException:
    if isinstance(e, LookupError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/profile", response_model=ApiResponse[ProfileResponse])
async def get_profile_endpoint(user_id: str = Depends(get_current_user_id)):
    """Profile from 1Confirmed, or the local copy when 1Confirmed is unavailable"""
    try:
        profile, message, warning = await get_profile(user_id)
    except (ValueError, LookupError) as e:
        raise _error(e)

    return ApiResponse(data=ProfileResponse(**profile), message=message, warning=warning)


@router.put("/profile", response_model=ApiResponse[ProfileUpdateResponse])
async def update_profile_endpoint(
    request: ProfileUpdateRequest,
    user_id: str = Depends(get_current_user_id)
):
    """Update name, phone and language"""
    try:
        updated = await update_profile(
            user_id=user_id,
            name=request.name,
            phone=request.phone,
            language=request.language,
        )
    except (ValueError, LookupError) as e:
        raise _error(e)

    return ApiResponse(data=ProfileUpdateResponse(**updated), message="Profile updated successfully")


@router.get("/credit", response_model=ApiResponse[CreditResponse])
async def get_credit_endpoint(user_id: str = Depends(get_current_user_id)):
    """Credit balance, refreshed from 1Confirmed when possible"""
    try:
        credit, message = await get_credit(user_id)
    except LookupError as e:
        raise _error(e)
    return ApiResponse(data=CreditResponse(credit=credit), message=message)


@router.post("/link-confirmed", response_model=ApiResponse[LinkConfirmedResponse])
async def link_confirmed_endpoint(
    request: ConfirmedTokenRequest,
    user_id: str = Depends(get_current_user_id)
):
    """Attach an existing 1Confirmed account to the logged-in user"""
    try:
        linked = await link_confirmed(user_id, request.confirmed_token)
    except (ValueError, LookupError) as e:
        raise _error(e)

    return ApiResponse(data=LinkConfirmedResponse(**linked), message="1Confirmed account linked successfully")


@router.get("/sync-confirmed", response_model=ApiResponse[dict])
async def sync_confirmed_endpoint(user_id: str = Depends(get_current_user_id)):
    """Pull credit and verification flags from 1Confirmed"""
    try:
        synced = await sync_with_confirmed(user_id)
    except (ValueError, LookupError) as e:
        raise _error(e)

    if not synced:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Failed to sync with 1Confirmed"
        )

    return ApiResponse(message="Successfully synced with 1Confirmed")
