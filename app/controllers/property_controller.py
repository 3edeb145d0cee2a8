"""
Property Controller - catalog endpoints
Create and update take multipart form data so images can travel with the fields.
"""
from fastapi import APIRouter, HTTPException, Depends, UploadFile, File, Form, Query, status
from fastapi.responses import Response
from typing import Optional, List
from app.schemas.common import ApiResponse
from app.schemas.imports import ImportPreviewResponse, ImportSummaryResponse
from app.schemas.property import PropertyResponse, PropertyListResponse, PropertyStatsResponse
from app.services.property_service import (
    PropertyValidationError,
    parse_image_list,
    get_properties,
    get_property_stats,
    get_property_by_id,
    create_property,
    update_property,
    delete_property,
    create_imported_property,
)
from app.services.storage_service import ImageUpload
from app.services.import_service import (
    PROPERTY,
    build_preview,
    build_template_csv,
    import_file,
    parse_mapping_field,
)
from app.utils.dependencies import get_current_user_id

router = APIRouter(prefix="/api/v1/properties", tags=["Properties"])


def _bad_request(e: ValueError) -> HTTPException:
    if isinstance(e, PropertyValidationError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": "Validation error", "errors": e.errors}
        )
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


async def _read_images(images: Optional[List[UploadFile]]) -> List[ImageUpload]:
    uploads = []
    for image in images or []:
        # Browsers send an empty part when no file was picked
        if not image.filename:
            continue
        uploads.append(ImageUpload(
            filename=image.filename,
            content_type=image.content_type or "",
            content=await image.read(),
        ))
    return uploads


async def _read_import_file(file: UploadFile) -> bytes:
    file_content = await file.read()
    if len(file_content) == 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="File is empty"
        )
    return file_content


@router.get("", response_model=ApiResponse[PropertyListResponse])
async def list_properties_endpoint(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    type: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    sort_by: str = "added_date",
    sort_order: str = "desc",
    owner_id: str = Depends(get_current_user_id)
):
    """Paginated, filtered list of the user's properties with status counts"""
    result = await get_properties(
        owner_id=owner_id,
        page=page,
        limit=limit,
        property_type=type,
        status=status_filter,
        search=search,
        min_price=min_price,
        max_price=max_price,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return ApiResponse(data=PropertyListResponse(**result), message="Properties retrieved successfully")


@router.get("/stats/overview", response_model=ApiResponse[PropertyStatsResponse])
async def property_stats_endpoint(owner_id: str = Depends(get_current_user_id)):
    """Portfolio totals and type distribution"""
    stats = await get_property_stats(owner_id)
    return ApiResponse(data=PropertyStatsResponse(**stats), message="Property statistics retrieved successfully")


@router.get("/import/template")
async def property_import_template_endpoint(owner_id: str = Depends(get_current_user_id)):
    """CSV file with the expected columns and one sample row"""
    return Response(
        content=build_template_csv(PROPERTY),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="properties_template.csv"'},
    )


@router.post("/import/preview", response_model=ApiResponse[ImportPreviewResponse])
async def property_import_preview_endpoint(
    file: UploadFile = File(...),
    owner_id: str = Depends(get_current_user_id)
):
    """Parse an upload and suggest a column mapping without importing anything"""
    file_content = await _read_import_file(file)
    try:
        preview = build_preview(file_content, file.filename, PROPERTY)
    except ValueError as e:
        raise _bad_request(e)
    return ApiResponse(data=ImportPreviewResponse(**preview), message="File parsed successfully")


@router.post("/import", response_model=ApiResponse[ImportSummaryResponse])
async def property_import_endpoint(
    file: UploadFile = File(...),
    mapping: Optional[str] = Form(None),
    owner_id: str = Depends(get_current_user_id)
):
    """Import properties row by row; invalid rows are skipped and reported"""
    file_content = await _read_import_file(file)

    async def create(record: dict) -> dict:
        return await create_imported_property(owner_id, record)

    try:
        summary = await import_file(
            file_content,
            file.filename,
            PROPERTY,
            create,
            mapping=parse_mapping_field(mapping),
        )
    except ValueError as e:
        raise _bad_request(e)

    return ApiResponse(
        data=ImportSummaryResponse(**summary.to_dict()),
        message=f"Imported {summary.imported} of {summary.total} properties",
    )


@router.get("/{property_id}", response_model=ApiResponse[PropertyResponse])
async def get_property_endpoint(
    property_id: str,
    owner_id: str = Depends(get_current_user_id)
):
    """Get specific property by ID"""
    prop = await get_property_by_id(property_id, owner_id)

    if not prop:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Property not found"
        )

    return ApiResponse(data=PropertyResponse(**prop), message="Property retrieved successfully")


@router.post("", response_model=ApiResponse[PropertyResponse], status_code=status.HTTP_201_CREATED)
async def create_property_endpoint(
    title: Optional[str] = Form(None),
    type: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    location: Optional[str] = Form(None),
    status_value: Optional[str] = Form(None, alias="status"),
    bedrooms: Optional[str] = Form(None),
    bathrooms: Optional[str] = Form(None),
    area: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    features: Optional[str] = Form(None),
    existing_images: Optional[str] = Form(None),
    images: Optional[List[UploadFile]] = File(None),
    owner_id: str = Depends(get_current_user_id)
):
    """Create a property, optionally with up to 3 images"""
    uploads = await _read_images(images)
    property_data = {
        "title": title,
        "type": type,
        "price": price,
        "location": location,
        "status": status_value,
        "bedrooms": bedrooms,
        "bathrooms": bathrooms,
        "area": area,
        "description": description,
        "features": features,
    }

    try:
        prop = await create_property(
            owner_id=owner_id,
            property_data=property_data,
            existing_images=parse_image_list(existing_images),
            uploads=uploads,
        )
    except ValueError as e:
        raise _bad_request(e)

    return ApiResponse(data=PropertyResponse(**prop), message="Property created successfully")


@router.put("/{property_id}", response_model=ApiResponse[PropertyResponse])
async def update_property_endpoint(
    property_id: str,
    title: Optional[str] = Form(None),
    type: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    location: Optional[str] = Form(None),
    status_value: Optional[str] = Form(None, alias="status"),
    bedrooms: Optional[str] = Form(None),
    bathrooms: Optional[str] = Form(None),
    area: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    features: Optional[str] = Form(None),
    existing_images: Optional[str] = Form(None),
    images: Optional[List[UploadFile]] = File(None),
    owner_id: str = Depends(get_current_user_id)
):
    """Update property fields; images = existing_images + new uploads (max 3)"""
    uploads = await _read_images(images)
    update_data = {
        key: value
        for key, value in {
            "title": title,
            "type": type,
            "price": price,
            "location": location,
            "status": status_value,
            "bedrooms": bedrooms,
            "bathrooms": bathrooms,
            "area": area,
            "description": description,
            "features": features,
        }.items()
        if value is not None
    }

    try:
        prop = await update_property(
            property_id=property_id,
            owner_id=owner_id,
            update_data=update_data,
            existing_images=parse_image_list(existing_images) if existing_images is not None else None,
            uploads=uploads,
        )
    except ValueError as e:
        raise _bad_request(e)

    if not prop:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Property not found"
        )

    return ApiResponse(data=PropertyResponse(**prop), message="Property updated successfully")


@router.delete("/{property_id}", response_model=ApiResponse[PropertyResponse])
async def delete_property_endpoint(
    property_id: str,
    owner_id: str = Depends(get_current_user_id)
):
    """Delete a property and its stored images"""
    prop = await delete_property(property_id, owner_id)

    if not prop:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Property not found"
        )

    return ApiResponse(data=PropertyResponse(**prop), message="Property deleted successfully")
