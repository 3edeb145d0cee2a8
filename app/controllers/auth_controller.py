from fastapi import APIRouter, HTTPException, Depends, status
import logging
from app.schemas.auth import (
    RegisterRequest,
    LoginRequest,
    ConfirmedTokenRequest,
    SessionUserResponse,
    UserSummaryResponse,
    SyncedUserResponse,
)
from app.schemas.common import ApiResponse
from app.services.auth_service import (
    register_user,
    authenticate_user,
    build_session_payload,
    sync_user_by_confirmed_token,
)
from app.services.confirmed_service import ConfirmedAPIError
from app.utils.security import create_access_token
from app.utils.dependencies import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["Authentication"])


@router.post("/register", response_model=ApiResponse[SessionUserResponse], status_code=status.HTTP_201_CREATED)
async def register_endpoint(request: RegisterRequest):
    """Register through 1Confirmed and open a local session"""
    try:
        user = await register_user(
            name=request.name,
            email=request.email,
            phone=request.phone,
            password=request.password,
            c_password=request.c_password,
            country_code=request.country_code,
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except ConfirmedAPIError as e:
        if e.is_upstream_response:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={
                    "message": "1Confirmed registration failed",
                    "error": e.message,
                    "details": e.details,
                }
            )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="External service unavailable. Please try again later."
        )

    token = create_access_token(user["id"], confirmed_id=user["confirmed_user_id"])
    return ApiResponse(
        data=SessionUserResponse(**build_session_payload(user, token)),
        message="User Created Successfully",
    )


@router.post("/login", response_model=ApiResponse[SessionUserResponse])
async def login_endpoint(request: LoginRequest):
    """Login with email and password"""
    user = await authenticate_user(email=request.email, password=request.password)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials"
        )

    token = create_access_token(user["id"], confirmed_id=user["confirmed_user_id"])
    return ApiResponse(
        data=SessionUserResponse(**build_session_payload(user, token)),
        message="Login successful",
    )


@router.post("/sync-confirmed", response_model=ApiResponse[SyncedUserResponse])
async def sync_confirmed_endpoint(request: ConfirmedTokenRequest):
    """Refresh the local user holding this 1Confirmed token"""
    if not request.confirmed_token:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Confirmed token required"
        )

    try:
        user = await sync_user_by_confirmed_token(request.confirmed_token)
    except ConfirmedAPIError as e:
        logger.error(f"❌ Sync failed: {e.message}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Sync failed"
        )

    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    return ApiResponse(
        data=SyncedUserResponse(**user),
        message="User synchronized with 1Confirmed successfully",
    )


@router.get("/profile", response_model=ApiResponse[UserSummaryResponse])
async def profile_endpoint(user: dict = Depends(get_current_user)):
    """Locally cached summary of the logged-in user"""
    return ApiResponse(
        data=UserSummaryResponse(**user),
        message="Profile retrieved successfully",
    )
