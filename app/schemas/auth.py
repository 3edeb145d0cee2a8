from pydantic import BaseModel, EmailStr, Field, field_validator, ValidationInfo
from typing import Optional, List, Any


class RegisterRequest(BaseModel):
    name: str
    email: EmailStr
    phone: str = Field(..., pattern=r"^\+\d{10,15}$")
    password: str = Field(..., min_length=6)
    c_password: str
    country_code: str = Field(..., pattern=r"^[A-Za-z]{2}$")

    @field_validator("name")
    @classmethod
    def name_length(cls, value: str) -> str:
        value = value.strip()
        if not 2 <= len(value) <= 50:
            raise ValueError("Name must be between 2 and 50 characters")
        return value

    @field_validator("c_password")
    @classmethod
    def passwords_match(cls, value: str, info: ValidationInfo) -> str:
        if "password" in info.data and value != info.data["password"]:
            raise ValueError("Passwords do not match")
        return value

    @field_validator("country_code")
    @classmethod
    def upper_country_code(cls, value: str) -> str:
        return value.upper()


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class ConfirmedTokenRequest(BaseModel):
    # Optional so a missing token gets the endpoint's own message
    confirmed_token: Optional[str] = None


class CreditInfo(BaseModel):
    id: str
    credit: int


class SessionUserResponse(BaseModel):
    id: str
    name: str
    email: str
    phone: str
    language: Optional[str] = None
    phone_verified_at: Optional[str] = None
    two_factor_enabled: bool = False
    two_factor_verified: bool = False
    first_message_wizard_completed: bool = False
    roles: List[str]
    credit: CreditInfo
    subscription: Optional[Any] = None
    cr_account: Optional[Any] = None
    accounts: List[Any] = []
    custom_credit: List[Any] = []
    token: str
    confirmed_token: Optional[str] = None
    confirmed_user_id: Optional[int] = None


class UserSummaryResponse(BaseModel):
    id: str
    name: str
    email: str
    phone: str
    country_code: str
    credit: int
    roles: List[str]
    confirmed_user_id: Optional[int] = None
    created_at: str


class SyncedUserResponse(BaseModel):
    id: str
    credit: int
    phone_verified_at: Optional[str] = None
    two_factor_enabled: bool = False
    two_factor_verified: bool = False
