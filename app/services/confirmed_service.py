"""
1Confirmed Service - HTTP client for the external identity / credit provider
Registration and profile reads are proxied here; callers decide whether a
failure is fatal or falls back to cached local data.
"""
from typing import Dict, Optional
import httpx
import logging
from app.config import settings

logger = logging.getLogger(__name__)


class ConfirmedAPIError(Exception):
    """
    Provider call failed.
    status_code / details are set when the provider answered with an error
    body; both are None for transport failures (timeout, DNS, refused).
    """

    def __init__(self, message: str, status_code: Optional[int] = None, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details

    @property
    def is_upstream_response(self) -> bool:
        return self.details is not None


def _headers(token: Optional[str] = None) -> Dict[str, str]:
    headers = {
        "Content-Type": "application/json",
        "Accept": "application/json",
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def _unwrap(response: httpx.Response) -> Dict:
    """Return the provider's `data` object or raise ConfirmedAPIError"""
    try:
        body = response.json()
    except ValueError:
        body = None

    if response.status_code >= 400 or not isinstance(body, dict) or not body.get("success"):
        message = "1Confirmed API error"
        if isinstance(body, dict) and body.get("message"):
            message = body["message"]
        logger.error(f"❌ 1Confirmed API error ({response.status_code}): {message}")
        raise ConfirmedAPIError(
            message,
            status_code=response.status_code,
            details=body if isinstance(body, dict) else None,
        )

    return body.get("data") or {}


async def register_with_confirmed(
    email: str,
    phone: str,
    name: str,
    password: str,
    c_password: str,
    country_code: str,
    timeout: Optional[float] = None
) -> Dict:
    """Register a user at 1Confirmed and return the created user payload"""
    payload = {
        "email": email,
        "phone": phone,
        "name": name,
        "password": password,
        "c_password": c_password,
        "country_code": country_code,
    }
    timeout = timeout or settings.CONFIRMED_REGISTER_TIMEOUT

    try:
        async with httpx.AsyncClient() as client:
            logger.info("📡 Registering user with 1Confirmed API")
            response = await client.post(
                f"{settings.CONFIRMED_API_URL}/register",
                json=payload,
                headers=_headers(),
                timeout=timeout
            )
    except httpx.TimeoutException:
        logger.error(f"⏱️ 1Confirmed register timeout after {timeout}s")
        raise ConfirmedAPIError("1Confirmed request timed out")
    except httpx.HTTPError as e:
        logger.error(f"❌ 1Confirmed register transport error: {str(e)}")
        raise ConfirmedAPIError(f"1Confirmed unreachable: {str(e)}")

    data = _unwrap(response)
    logger.info(f"✅ 1Confirmed registration successful: {data.get('id')}")
    return data


async def fetch_confirmed_user(token: str, timeout: Optional[float] = None, path: str = "user") -> Dict:
    """
    Read the provider's view of a user (credit, verification flags)
    path is "user" for the account endpoint or "profile" for the profile endpoint
    """
    timeout = timeout or settings.CONFIRMED_PROFILE_TIMEOUT

    try:
        async with httpx.AsyncClient() as client:
            response = await client.get(
                f"{settings.CONFIRMED_API_URL}/{path}",
                headers=_headers(token),
                timeout=timeout
            )
    except httpx.TimeoutException:
        logger.warning(f"⏱️ 1Confirmed /{path} timeout after {timeout}s")
        raise ConfirmedAPIError("1Confirmed request timed out")
    except httpx.HTTPError as e:
        logger.warning(f"⚠️ 1Confirmed /{path} transport error: {str(e)}")
        raise ConfirmedAPIError(f"1Confirmed unreachable: {str(e)}")

    return _unwrap(response)


def extract_credit(confirmed_data: Dict, fallback: int) -> int:
    """Provider nests the balance as credit.credit; a missing balance keeps fallback"""
    credit = confirmed_data.get("credit")
    if isinstance(credit, dict):
        credit = credit.get("credit")
    try:
        return int(credit) if credit is not None else fallback
    except (TypeError, ValueError):
        return fallback
