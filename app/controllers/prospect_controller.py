from fastapi import APIRouter, HTTPException, Depends, UploadFile, File, Form, Query, status
from fastapi.responses import Response
from typing import Optional
from app.schemas.common import ApiResponse
from app.schemas.imports import ImportPreviewResponse, ImportSummaryResponse
from app.schemas.prospect import (
    ProspectCreateRequest,
    ProspectUpdateRequest,
    StatusUpdateRequest,
    InteractionCreateRequest,
    ProspectResponse,
    ProspectListResponse,
    ProspectStatsResponse,
)
from app.services.prospect_service import (
    DuplicateProspectError,
    get_prospects,
    get_prospect_stats,
    get_prospect_by_id,
    create_prospect,
    update_prospect,
    delete_prospect,
    update_prospect_status,
    add_interaction,
)
from app.services.import_service import (
    PROSPECT,
    build_preview,
    build_template_csv,
    import_file,
    parse_mapping_field,
)
from app.utils.dependencies import get_current_user_id

router = APIRouter(prefix="/api/v1/prospects", tags=["Prospects"])


def _not_found() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Prospect not found"
    )


def _conflict(e: DuplicateProspectError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail=str(e)
    )


@router.get("", response_model=ApiResponse[ProspectListResponse])
async def list_prospects_endpoint(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    source: Optional[str] = None,
    property_type: Optional[str] = None,
    location: Optional[str] = None,
    budget_min: Optional[float] = None,
    budget_max: Optional[float] = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    owner_id: str = Depends(get_current_user_id)
):
    """Paginated, filtered list of active prospects"""
    result = await get_prospects(
        owner_id=owner_id,
        page=page,
        limit=limit,
        search=search,
        status=status_filter,
        source=source,
        property_type=property_type,
        location=location,
        budget_min=budget_min,
        budget_max=budget_max,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return ApiResponse(data=ProspectListResponse(**result), message="Prospects retrieved successfully")


@router.get("/stats/overview", response_model=ApiResponse[ProspectStatsResponse])
async def prospect_stats_endpoint(owner_id: str = Depends(get_current_user_id)):
    """Status totals, budgets, sources, recent and stale prospects"""
    stats = await get_prospect_stats(owner_id)
    return ApiResponse(data=ProspectStatsResponse(**stats), message="Statistics retrieved successfully")


@router.get("/import/template")
async def prospect_import_template_endpoint(owner_id: str = Depends(get_current_user_id)):
    """CSV file with the expected columns and one sample row"""
    return Response(
        content=build_template_csv(PROSPECT),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="prospects_template.csv"'},
    )


@router.post("/import/preview", response_model=ApiResponse[ImportPreviewResponse])
async def prospect_import_preview_endpoint(
    file: UploadFile = File(...),
    owner_id: str = Depends(get_current_user_id)
):
    """Parse an upload and suggest a column mapping without importing anything"""
    file_content = await file.read()
    if len(file_content) == 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File is empty")

    try:
        preview = build_preview(file_content, file.filename, PROSPECT)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return ApiResponse(data=ImportPreviewResponse(**preview), message="File parsed successfully")


@router.post("/import", response_model=ApiResponse[ImportSummaryResponse])
async def prospect_import_endpoint(
    file: UploadFile = File(...),
    mapping: Optional[str] = Form(None),
    owner_id: str = Depends(get_current_user_id)
):
    """Import prospects row by row; invalid rows are skipped and reported"""
    file_content = await file.read()
    if len(file_content) == 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File is empty")

    async def create(record: dict) -> dict:
        # Same validation as the create endpoint
        request = ProspectCreateRequest(**record)
        return await create_prospect(owner_id, request.model_dump())

    try:
        summary = await import_file(
            file_content,
            file.filename,
            PROSPECT,
            create,
            mapping=parse_mapping_field(mapping),
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return ApiResponse(
        data=ImportSummaryResponse(**summary.to_dict()),
        message=f"Imported {summary.imported} of {summary.total} prospects",
    )


@router.get("/{prospect_id}", response_model=ApiResponse[ProspectResponse])
async def get_prospect_endpoint(
    prospect_id: str,
    owner_id: str = Depends(get_current_user_id)
):
    """Get specific prospect by ID"""
    prospect = await get_prospect_by_id(prospect_id, owner_id)
    if not prospect:
        raise _not_found()
    return ApiResponse(data=ProspectResponse(**prospect), message="Prospect retrieved successfully")


@router.post("", response_model=ApiResponse[ProspectResponse], status_code=status.HTTP_201_CREATED)
async def create_prospect_endpoint(
    request: ProspectCreateRequest,
    owner_id: str = Depends(get_current_user_id)
):
    """Create a new prospect"""
    try:
        prospect = await create_prospect(owner_id, request.model_dump())
    except DuplicateProspectError as e:
        raise _conflict(e)
    return ApiResponse(data=ProspectResponse(**prospect), message="Prospect created successfully")


@router.put("/{prospect_id}", response_model=ApiResponse[ProspectResponse])
async def update_prospect_endpoint(
    prospect_id: str,
    request: ProspectUpdateRequest,
    owner_id: str = Depends(get_current_user_id)
):
    """Update prospect details"""
    try:
        prospect = await update_prospect(prospect_id, owner_id, request.model_dump(exclude_unset=True))
    except DuplicateProspectError as e:
        raise _conflict(e)

    if not prospect:
        raise _not_found()
    return ApiResponse(data=ProspectResponse(**prospect), message="Prospect updated successfully")


@router.delete("/{prospect_id}", response_model=ApiResponse[dict])
async def delete_prospect_endpoint(
    prospect_id: str,
    owner_id: str = Depends(get_current_user_id)
):
    """Soft-delete a prospect"""
    deleted = await delete_prospect(prospect_id, owner_id)
    if not deleted:
        raise _not_found()
    return ApiResponse(message="Prospect deleted successfully")


@router.patch("/{prospect_id}/status", response_model=ApiResponse[ProspectResponse])
async def update_prospect_status_endpoint(
    prospect_id: str,
    request: StatusUpdateRequest,
    owner_id: str = Depends(get_current_user_id)
):
    """Change status and mark the prospect as contacted"""
    prospect = await update_prospect_status(prospect_id, owner_id, request.status)
    if not prospect:
        raise _not_found()
    return ApiResponse(data=ProspectResponse(**prospect), message="Status updated successfully")


@router.post("/{prospect_id}/interactions", response_model=ApiResponse[ProspectResponse])
async def add_interaction_endpoint(
    prospect_id: str,
    request: InteractionCreateRequest,
    owner_id: str = Depends(get_current_user_id)
):
    """Record a call, email, message, meeting or note"""
    prospect = await add_interaction(prospect_id, owner_id, request.type, request.description)
    if not prospect:
        raise _not_found()
    return ApiResponse(data=ProspectResponse(**prospect), message="Interaction added successfully")
