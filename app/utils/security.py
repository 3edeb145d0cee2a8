from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, ExpiredSignatureError, jwt
from passlib.context import CryptContext
from app.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class TokenExpiredError(Exception):
    """Raised when a locally issued token is past its exp claim"""


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash"""
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password"""
    return pwd_context.hash(password)


def create_access_token(
    subject: str,
    confirmed_id: Optional[int] = None,
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a local JWT for a user.
    Claims: sub, iat, exp, aud, scopes, confirmed_id
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(days=settings.ACCESS_TOKEN_EXPIRE_DAYS))

    to_encode = {
        "sub": subject,
        "iat": int(now.timestamp()),
        "exp": int(expire.timestamp()),
        "aud": settings.JWT_AUDIENCE,
        "scopes": [],
        "confirmed_id": confirmed_id,
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    """
    Decode a local JWT.
    Returns None for malformed tokens, bad signatures or a wrong audience,
    raises TokenExpiredError when the signature is valid but exp has passed.
    """
    try:
        return jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            audience=settings.JWT_AUDIENCE,
        )
    except ExpiredSignatureError:
        raise TokenExpiredError("Token expired")
    except JWTError:
        return None
