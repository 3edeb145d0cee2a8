from pydantic import BaseModel
from typing import Optional, List, Dict, Literal

TemplateId = Literal["property_match", "bulk_update", "market_update"]


class MessageTemplateResponse(BaseModel):
    id: str
    name: str
    message: str


class MatchResponse(BaseModel):
    id: str
    prospect_id: str
    prospect_name: str
    property_id: str
    property_title: str
    score: int
    breakdown: Dict[str, int]


class MatchStats(BaseModel):
    total_prospects: int
    properties: int
    matches: int
    hot_prospects: int


class MatchesResponse(BaseModel):
    matches: List[MatchResponse]
    stats: MatchStats


class CampaignRequest(BaseModel):
    template_id: TemplateId = "property_match"
    prospect_ids: Optional[List[str]] = None


class DispatchResponse(BaseModel):
    prospect_id: str
    prospect_name: str
    phone: str
    template_id: str
    message: str
    link: str
    match_count: int
    property_ids: List[str]


class CampaignResponse(BaseModel):
    template_id: str
    dispatches: List[DispatchResponse]
    total: int
    dispatch_delay_seconds: float
