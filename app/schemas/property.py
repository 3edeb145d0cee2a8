from pydantic import BaseModel
from typing import List


class PropertyResponse(BaseModel):
    id: str
    owner_id: str
    title: str
    type: str
    price: float
    location: str
    status: str
    images: List[str] = []
    bedrooms: int = 0
    bathrooms: int
    area: float
    description: str = ""
    features: List[str] = []
    added_date: str
    updated_date: str


class PropertyPagination(BaseModel):
    current: int
    pages: int
    total: int
    has_next: bool
    has_prev: bool


class PropertyStatusCounts(BaseModel):
    total: int = 0
    available: int = 0
    sold: int = 0
    pending: int = 0


class PropertyListResponse(BaseModel):
    properties: List[PropertyResponse]
    pagination: PropertyPagination
    stats: PropertyStatusCounts


class PropertyOverview(BaseModel):
    total: int = 0
    total_value: float = 0
    avg_price: float = 0
    available_count: int = 0
    sold_count: int = 0
    pending_count: int = 0


class TypeDistributionItem(BaseModel):
    type: str
    count: int
    avg_price: float


class PropertyStatsResponse(BaseModel):
    overview: PropertyOverview
    type_distribution: List[TypeDistributionItem]
