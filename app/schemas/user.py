from pydantic import BaseModel
from typing import Optional, List, Any


class ProfileResponse(BaseModel):
    id: str
    name: str
    email: str
    phone: str
    language: Optional[str] = None
    phone_verified_at: Optional[str] = None
    two_factor_enabled: bool = False
    two_factor_verified: bool = False
    first_message_wizard_completed: bool = False
    roles: List[str] = []
    credit: int
    subscription: Optional[Any] = None
    cr_account: Optional[Any] = None
    custom_credit: List[Any] = []
    aquarium_data: Optional[Any] = None


class ProfileUpdateRequest(BaseModel):
    # Presence of name/phone is checked by the service to return its own message
    name: Optional[str] = None
    phone: Optional[str] = None
    language: Optional[str] = None


class ProfileUpdateResponse(BaseModel):
    id: str
    name: str
    email: str
    phone: str
    language: Optional[str] = None
    credit: int
    roles: List[str]


class CreditResponse(BaseModel):
    credit: int


class LinkConfirmedResponse(BaseModel):
    confirmed_user_id: Optional[int] = None
    credit: Optional[int] = None
