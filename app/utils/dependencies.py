from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.utils.security import decode_access_token, TokenExpiredError
from app.services.auth_service import get_user_by_id
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def _unauthorized(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=message,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> dict:
    """Decode the Bearer token and load the user it was issued for"""
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Access denied. No token provided.")

    try:
        payload = decode_access_token(credentials.credentials)
    except TokenExpiredError:
        raise _unauthorized("Token expired.")

    if payload is None:
        raise _unauthorized("Invalid token.")

    user_id = payload.get("sub")
    if not user_id:
        raise _unauthorized("Invalid token.")

    user = await get_user_by_id(user_id)
    if not user:
        logger.warning(f"Token subject {user_id} has no matching user")
        raise _unauthorized("Invalid token. User not found.")

    return user


async def get_current_user_id(user: dict = Depends(get_current_user)) -> str:
    """Owner id used to scope every property / prospect query"""
    return user["id"]
