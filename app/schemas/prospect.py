from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List, Literal

ProspectStatus = Literal["hot", "warm", "cold", "active"]
InteractionType = Literal["call", "email", "whatsapp", "meeting", "note"]


class BudgetRange(BaseModel):
    min: float = Field(0, ge=0)
    max: float = Field(0, ge=0)


class AreaRange(BaseModel):
    min: Optional[float] = Field(None, ge=0)
    max: Optional[float] = Field(None, ge=0)


class Preferences(BaseModel):
    budget: BudgetRange = BudgetRange()
    property_types: List[str] = []
    locations: List[str] = []
    bedrooms: int = Field(0, ge=0)
    bathrooms: int = Field(0, ge=0)
    area: AreaRange = AreaRange()
    features: List[str] = []

    @field_validator("property_types")
    @classmethod
    def lower_types(cls, value: List[str]) -> List[str]:
        return [item.strip().lower() for item in value if item.strip()]


class ProspectCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    phone: str = Field(..., min_length=1)
    status: ProspectStatus = "active"
    source: str = "unknown"
    preferences: Preferences = Preferences()
    notes: str = ""

    @field_validator("name", "phone")
    @classmethod
    def not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Field is required")
        return value


class ProspectUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, min_length=1)
    status: Optional[ProspectStatus] = None
    source: Optional[str] = None
    preferences: Optional[Preferences] = None
    notes: Optional[str] = None


class StatusUpdateRequest(BaseModel):
    status: ProspectStatus


class InteractionCreateRequest(BaseModel):
    type: InteractionType
    description: str = Field(..., min_length=1)


class Interaction(BaseModel):
    type: str
    description: str
    created_by: Optional[str] = None
    created_at: str


class ProspectResponse(BaseModel):
    id: str
    owner_id: str
    name: str
    email: str
    phone: str
    status: str
    source: str
    preferences: Preferences
    matched_property_ids: List[str] = []
    interactions: List[Interaction] = []
    last_contact: str
    notes: str = ""
    is_active: bool
    created_at: str
    updated_at: str


class ProspectPagination(BaseModel):
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_next_page: bool
    has_prev_page: bool


class ProspectListResponse(BaseModel):
    prospects: List[ProspectResponse]
    pagination: ProspectPagination


class SourceCount(BaseModel):
    source: str
    count: int


class ProspectStatsResponse(BaseModel):
    total: int = 0
    hot: int = 0
    warm: int = 0
    cold: int = 0
    active: int = 0
    with_matches: int = 0
    avg_budget_min: float = 0
    avg_budget_max: float = 0
    source_breakdown: List[SourceCount] = []
    recent_prospects: int = 0
    stale_prospects: int = 0
