from typing import Optional, Dict
from datetime import datetime
import uuid
import logging
from sqlalchemy import select, or_
from sqlalchemy.exc import IntegrityError
from app.config import settings
from app.database.connection import AsyncSessionLocal
from app.models.user import User
from app.utils.security import verify_password, get_password_hash
from app.services.confirmed_service import register_with_confirmed, fetch_confirmed_user, extract_credit

logger = logging.getLogger(__name__)


def parse_provider_datetime(value) -> Optional[datetime]:
    """Provider timestamps arrive as ISO strings (sometimes with a trailing Z) or null"""
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"Unparseable provider timestamp: {value}")
        return None


def serialize_user(user: User) -> Dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "phone": user.phone,
        "country_code": user.country_code,
        "confirmed_user_id": user.confirmed_user_id,
        "confirmed_token": user.confirmed_token,
        "language": user.language,
        "phone_verified_at": user.phone_verified_at.isoformat() if user.phone_verified_at else None,
        "two_factor_enabled": bool(user.two_factor_enabled),
        "two_factor_verified": bool(user.two_factor_verified),
        "first_message_wizard_completed": bool(user.first_message_wizard_completed),
        "roles": list(user.roles or []),
        "credit": user.credit,
        "subscription": user.subscription_id,
        "accounts": list(user.accounts or []),
        "custom_credit": list(user.custom_credit or []),
        "aquarium_data": user.aquarium_data,
        "created_at": user.created_at.isoformat() if user.created_at else "",
    }


def build_session_payload(user: Dict, token: str) -> Dict:
    """Response body shared by register and login"""
    return {
        "id": user["id"],
        "name": user["name"],
        "email": user["email"],
        "phone": user["phone"],
        "language": user["language"],
        "phone_verified_at": user["phone_verified_at"],
        "two_factor_enabled": user["two_factor_enabled"],
        "two_factor_verified": user["two_factor_verified"],
        "first_message_wizard_completed": user["first_message_wizard_completed"],
        "roles": user["roles"],
        "credit": {"id": user["id"], "credit": user["credit"]},
        "subscription": user["subscription"],
        "cr_account": None,
        "accounts": user["accounts"],
        "custom_credit": user["custom_credit"],
        "token": token,
        "confirmed_token": user["confirmed_token"],
        "confirmed_user_id": user["confirmed_user_id"],
    }


def apply_confirmed_flags(user: User, confirmed_data: Dict) -> None:
    """Copy provider-owned fields (credit, verification flags) onto the local row"""
    user.credit = extract_credit(confirmed_data, user.credit)
    user.phone_verified_at = parse_provider_datetime(confirmed_data.get("phone_verified_at"))
    user.two_factor_enabled = bool(confirmed_data.get("two_factor_enabled", False))
    user.two_factor_verified = bool(confirmed_data.get("two_factor_verified", False))


async def register_user(
    name: str,
    email: str,
    phone: str,
    password: str,
    c_password: str,
    country_code: str
) -> Dict:
    """
    Register at 1Confirmed first, then persist the local user from the provider's answer.
    Raises ValueError for local conflicts and ConfirmedAPIError for provider failures.
    """
    email = email.lower()

    async with AsyncSessionLocal() as session:
        stmt = select(User).where(or_(User.email == email, User.phone == phone))
        result = await session.execute(stmt)
        existing_user = result.scalars().first()

        if existing_user:
            if existing_user.email == email:
                raise ValueError("User with this email already exists")
            raise ValueError("User with this phone number already exists")

    confirmed_data = await register_with_confirmed(
        email=email,
        phone=phone,
        name=name,
        password=password,
        c_password=c_password,
        country_code=country_code,
    )

    async with AsyncSessionLocal() as session:
        credit = confirmed_data.get("credit")
        new_user = User(
            id=str(uuid.uuid4()),
            name=confirmed_data.get("name") or name,
            email=(confirmed_data.get("email") or email).lower(),
            phone=confirmed_data.get("phone") or phone,
            hashed_password=get_password_hash(password),
            country_code=country_code.upper(),
            confirmed_user_id=confirmed_data.get("id"),
            confirmed_token=confirmed_data.get("token"),
            language=confirmed_data.get("language"),
            phone_verified_at=parse_provider_datetime(confirmed_data.get("phone_verified_at")),
            two_factor_enabled=bool(confirmed_data.get("two_factor_enabled", False)),
            two_factor_verified=bool(confirmed_data.get("two_factor_verified", False)),
            first_message_wizard_completed=bool(confirmed_data.get("first_message_wizard_completed", False)),
            roles=["user"],
            credit=extract_credit({"credit": credit}, settings.DEFAULT_CREDIT),
            accounts=confirmed_data.get("accounts") or [],
            custom_credit=confirmed_data.get("custom_credit") or [],
        )

        session.add(new_user)
        try:
            await session.commit()
        except IntegrityError:
            await session.rollback()
            raise ValueError("User with this email already exists")
        await session.refresh(new_user)

        logger.info(f"✅ User saved locally: {new_user.id}")
        return serialize_user(new_user)


async def authenticate_user(email: str, password: str) -> Optional[Dict]:
    """Return the user when email and password match, None otherwise"""
    async with AsyncSessionLocal() as session:
        stmt = select(User).where(User.email == email.lower())
        result = await session.execute(stmt)
        user = result.scalar_one_or_none()

        if not user:
            return None

        if not verify_password(password, user.hashed_password):
            return None

        return serialize_user(user)


async def get_user_by_id(user_id: str) -> Optional[Dict]:
    """Get user by ID"""
    async with AsyncSessionLocal() as session:
        stmt = select(User).where(User.id == user_id)
        result = await session.execute(stmt)
        user = result.scalar_one_or_none()

        if not user:
            return None

        return serialize_user(user)


async def sync_user_by_confirmed_token(confirmed_token: str) -> Optional[Dict]:
    """
    Refresh the local user holding confirmed_token from the provider profile.
    Returns None when no local user holds the token.
    """
    confirmed_data = await fetch_confirmed_user(confirmed_token, path="profile")

    async with AsyncSessionLocal() as session:
        stmt = select(User).where(User.confirmed_token == confirmed_token)
        result = await session.execute(stmt)
        user = result.scalars().first()

        if not user:
            return None

        apply_confirmed_flags(user, confirmed_data)
        await session.commit()
        await session.refresh(user)

        return serialize_user(user)
