"""
Campaign Controller - prospect/property matches and WhatsApp message links
"""
from fastapi import APIRouter, HTTPException, Depends, status
from typing import List
import logging
from app.config import settings
from app.schemas.common import ApiResponse
from app.schemas.campaign import (
    MessageTemplateResponse,
    MatchResponse,
    MatchStats,
    MatchesResponse,
    CampaignRequest,
    DispatchResponse,
    CampaignResponse,
)
from app.services.campaign_service import MESSAGE_TEMPLATES, build_campaign
from app.services.matching_service import find_matches
from app.services.prospect_service import get_all_prospects, record_matches
from app.services.property_service import get_all_properties
from app.utils.dependencies import get_current_user_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/campaigns", tags=["Campaigns"])


async def _load_matches(owner_id: str):
    prospects = await get_all_prospects(owner_id)
    properties = await get_all_properties(owner_id)
    matches = find_matches(prospects, properties, threshold=settings.CAMPAIGN_MATCH_THRESHOLD)
    return prospects, properties, matches


@router.get("/templates", response_model=ApiResponse[List[MessageTemplateResponse]])
async def list_templates_endpoint(owner_id: str = Depends(get_current_user_id)):
    """Available message templates"""
    templates = [MessageTemplateResponse(**template) for template in MESSAGE_TEMPLATES]
    return ApiResponse(data=templates, message="Templates retrieved successfully")


@router.get("/matches", response_model=ApiResponse[MatchesResponse])
async def list_matches_endpoint(owner_id: str = Depends(get_current_user_id)):
    """Every prospect/property pair at or above the match threshold, best first"""
    prospects, properties, matches = await _load_matches(owner_id)

    items = [
        MatchResponse(
            id=match.id,
            prospect_id=match.prospect["id"],
            prospect_name=match.prospect.get("name", ""),
            property_id=match.property["id"],
            property_title=match.property.get("title", ""),
            score=match.score,
            breakdown=match.breakdown,
        )
        for match in matches
    ]
    stats = MatchStats(
        total_prospects=len(prospects),
        properties=len(properties),
        matches=len(matches),
        hot_prospects=sum(1 for p in prospects if p.get("status") == "hot"),
    )

    return ApiResponse(data=MatchesResponse(matches=items, stats=stats), message="Matches retrieved successfully")


@router.post("/messages", response_model=ApiResponse[CampaignResponse])
async def build_messages_endpoint(
    request: CampaignRequest,
    owner_id: str = Depends(get_current_user_id)
):
    """
    Personalized message and wa.me link per matched prospect.
    Nothing is sent; the client opens the links one by one.
    """
    prospects, _, matches = await _load_matches(owner_id)

    try:
        dispatches = build_campaign(prospects, matches, request.template_id, request.prospect_ids)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    contacted_ids = [d.prospect_id for d in dispatches]
    updated = await record_matches(
        owner_id,
        {d.prospect_id: d.property_ids for d in dispatches},
        contacted_ids=contacted_ids,
    )
    logger.info(f"📣 Recorded matches for {updated} prospect(s)")

    return ApiResponse(
        data=CampaignResponse(
            template_id=request.template_id,
            dispatches=[DispatchResponse(**d.to_dict()) for d in dispatches],
            total=len(dispatches),
            dispatch_delay_seconds=settings.CAMPAIGN_DISPATCH_DELAY_SECONDS,
        ),
        message=f"Generated {len(dispatches)} WhatsApp message(s)",
    )
