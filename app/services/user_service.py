"""
User Service - profile, credit and 1Confirmed account linking
Provider reads are best-effort: when 1Confirmed is down the locally cached
copy of the user is served instead.
"""
from typing import Optional, Dict, Tuple
import logging
from sqlalchemy import select
from app.config import settings
from app.database.connection import AsyncSessionLocal
from app.models.user import User
from app.services.auth_service import serialize_user, apply_confirmed_flags, parse_provider_datetime
from app.services.confirmed_service import ConfirmedAPIError, fetch_confirmed_user, extract_credit

logger = logging.getLogger(__name__)


async def _load_user(session, user_id: str) -> Optional[User]:
    result = await session.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


def _local_profile(user: User) -> Dict:
    data = serialize_user(user)
    return {
        "id": data["id"],
        "name": data["name"],
        "email": data["email"],
        "phone": data["phone"],
        "language": data["language"],
        "phone_verified_at": data["phone_verified_at"],
        "two_factor_enabled": data["two_factor_enabled"],
        "two_factor_verified": data["two_factor_verified"],
        "first_message_wizard_completed": data["first_message_wizard_completed"],
        "roles": data["roles"],
        "credit": data["credit"],
        "subscription": data["subscription"],
        "custom_credit": data["custom_credit"],
        "aquarium_data": data["aquarium_data"],
    }


async def get_profile(user_id: str) -> Tuple[Dict, str, Optional[str]]:
    """
    Returns (profile, message, warning).
    warning is set when the provider could not be reached and local data was served.
    """
    async with AsyncSessionLocal() as session:
        user = await _load_user(session, user_id)
        if not user:
            raise LookupError("User not found")

        if not user.confirmed_token:
            raise ValueError("No 1Confirmed token found. Please link your 1Confirmed account.")

        try:
            confirmed_data = await fetch_confirmed_user(
                user.confirmed_token,
                timeout=settings.CONFIRMED_PROFILE_TIMEOUT
            )
        except ConfirmedAPIError as e:
            logger.warning(f"⚠️ 1Confirmed profile unavailable for {user_id}: {e.message}")
            return (
                _local_profile(user),
                "Profile retrieved from local data (1Confirmed unavailable)",
                "1Confirmed service temporarily unavailable",
            )

        apply_confirmed_flags(user, confirmed_data)
        user.first_message_wizard_completed = bool(confirmed_data.get("first_message_wizard_completed", False))
        user.language = confirmed_data.get("language") or user.language
        await session.commit()
        await session.refresh(user)

        profile = _local_profile(user)
        profile.update({
            "name": confirmed_data.get("name") or user.name,
            "email": confirmed_data.get("email") or user.email,
            "phone": confirmed_data.get("phone") or user.phone,
            "language": confirmed_data.get("language"),
            "roles": confirmed_data.get("roles") or profile["roles"],
            "subscription": confirmed_data.get("subscription"),
            "cr_account": confirmed_data.get("cr_account"),
            "custom_credit": confirmed_data.get("custom_credit") or profile["custom_credit"],
        })
        return profile, "Profile retrieved successfully from 1Confirmed", None


async def update_profile(user_id: str, name: Optional[str], phone: Optional[str], language: Optional[str] = None) -> Dict:
    """Update name / phone / language locally, then try to refresh from 1Confirmed"""
    if not name or not phone:
        raise ValueError("Name and phone are required")

    async with AsyncSessionLocal() as session:
        user = await _load_user(session, user_id)
        if not user:
            raise LookupError("User not found")

        user.name = name.strip()
        user.phone = phone.strip()
        if language is not None:
            user.language = language
        await session.commit()
        await session.refresh(user)
        has_token = bool(user.confirmed_token)

    if has_token:
        synced = await sync_with_confirmed(user_id)
        if not synced:
            logger.warning(f"⚠️ Could not sync with 1Confirmed after profile update: {user_id}")

    async with AsyncSessionLocal() as session:
        user = await _load_user(session, user_id)
        return {
            "id": user.id,
            "name": user.name,
            "email": user.email,
            "phone": user.phone,
            "language": user.language,
            "credit": user.credit,
            "roles": list(user.roles or []),
        }


async def get_credit(user_id: str) -> Tuple[int, str]:
    """Returns (credit, message); provider balance is persisted locally when available"""
    async with AsyncSessionLocal() as session:
        user = await _load_user(session, user_id)
        if not user:
            raise LookupError("User not found")

        if user.confirmed_token:
            try:
                confirmed_data = await fetch_confirmed_user(
                    user.confirmed_token,
                    timeout=settings.CONFIRMED_CREDIT_TIMEOUT
                )
                user.credit = extract_credit(confirmed_data, user.credit)
                await session.commit()
                return user.credit, "Credit balance retrieved from 1Confirmed"
            except ConfirmedAPIError as e:
                logger.warning(f"⚠️ 1Confirmed credit fetch failed: {e.message}")

        return user.credit, "Credit balance retrieved from local data"


async def link_confirmed(user_id: str, confirmed_token: str) -> Dict:
    """Verify a provider token and attach the provider account to the user"""
    if not confirmed_token:
        raise ValueError("1Confirmed token is required")

    try:
        confirmed_data = await fetch_confirmed_user(confirmed_token)
    except ConfirmedAPIError as e:
        logger.warning(f"⚠️ 1Confirmed link rejected for {user_id}: {e.message}")
        raise ValueError("Invalid 1Confirmed token or API error")

    async with AsyncSessionLocal() as session:
        user = await _load_user(session, user_id)
        if not user:
            raise LookupError("User not found")

        user.confirmed_user_id = confirmed_data.get("id")
        user.confirmed_token = confirmed_token
        user.credit = extract_credit(confirmed_data, user.credit)
        user.phone_verified_at = parse_provider_datetime(confirmed_data.get("phone_verified_at"))
        user.two_factor_enabled = bool(confirmed_data.get("two_factor_enabled", False))
        user.two_factor_verified = bool(confirmed_data.get("two_factor_verified", False))
        await session.commit()

        logger.info(f"🔗 Linked 1Confirmed account {user.confirmed_user_id} to user {user_id}")
        credit = confirmed_data.get("credit")
        return {
            "confirmed_user_id": confirmed_data.get("id"),
            "credit": credit.get("credit") if isinstance(credit, dict) else credit,
        }


async def sync_with_confirmed(user_id: str) -> bool:
    """Refresh credit and verification flags from the provider profile; False on any provider failure"""
    async with AsyncSessionLocal() as session:
        user = await _load_user(session, user_id)
        if not user:
            raise LookupError("User not found")

        if not user.confirmed_token:
            raise ValueError("No 1Confirmed account linked")

        try:
            confirmed_data = await fetch_confirmed_user(user.confirmed_token, path="profile")
        except ConfirmedAPIError as e:
            logger.error(f"❌ Sync with 1Confirmed failed for {user_id}: {e.message}")
            return False

        apply_confirmed_flags(user, confirmed_data)
        await session.commit()
        return True
