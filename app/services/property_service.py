"""
Property Service - owner-scoped property catalog
Filtering, sorting, pagination and statistics are computed in SQL; image
files are written through storage_service and cleaned up when the row that
referenced them goes away.
"""
from typing import Optional, List, Dict, Any
import json
import logging
import math
import uuid
from fastapi.concurrency import run_in_threadpool
from sqlalchemy import select, or_, and_, asc, desc, func, case
from app.config import settings
from app.database.connection import AsyncSessionLocal
from app.models.property import Property, PROPERTY_TYPES, PROPERTY_STATUSES
from app.services.storage_service import (
    ImageUpload,
    validate_images,
    save_property_images,
    delete_local_images,
)
from app.utils.ownership import owner_conditions, owned_select, get_owned

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("title", "type", "price", "location", "bathrooms", "area")

SORT_COLUMNS = {
    "added_date": Property.added_date,
    "addedDate": Property.added_date,
    "updated_date": Property.updated_date,
    "updatedDate": Property.updated_date,
    "price": Property.price,
    "title": Property.title,
    "area": Property.area,
    "bedrooms": Property.bedrooms,
}


class PropertyValidationError(ValueError):
    """Field-level validation failure; errors holds one message per field"""

    def __init__(self, errors: List[str]):
        super().__init__("Validation error")
        self.errors = errors


def serialize_property(prop: Property) -> Dict:
    return {
        "id": prop.id,
        "owner_id": prop.owner_id,
        "title": prop.title,
        "type": prop.type,
        "price": prop.price,
        "location": prop.location,
        "status": prop.status,
        "images": list(prop.images or []),
        "bedrooms": prop.bedrooms,
        "bathrooms": prop.bathrooms,
        "area": prop.area,
        "description": prop.description or "",
        "features": list(prop.features or []),
        "added_date": prop.added_date.isoformat() if prop.added_date else "",
        "updated_date": prop.updated_date.isoformat() if prop.updated_date else "",
    }


def parse_list_field(value: Any) -> List[str]:
    """
    Multipart forms send lists as a JSON array string; plain comma lists are
    accepted too. Unparseable input yields an empty list.
    """
    if value is None or value == "":
        return []
    if isinstance(value, list):
        return [str(item).strip() for item in value if str(item).strip()]
    text = str(value).strip()
    if text.startswith("["):
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            return []
        if not isinstance(parsed, list):
            return []
        return [str(item).strip() for item in parsed if str(item).strip()]
    return [item.strip() for item in text.split(",") if item.strip()]


def parse_image_list(value: Optional[str]) -> List[str]:
    """existing_images must be a JSON array of strings; anything else is rejected"""
    if value is None or not value.strip():
        return []
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        raise ValueError("Invalid existing_images")
    if not isinstance(parsed, list) or not all(isinstance(item, str) for item in parsed):
        raise ValueError("Invalid existing_images")
    return [item.strip() for item in parsed if item.strip()]


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _to_number(value: Any, field: str, errors: List[str], integer: bool = False):
    try:
        number = float(value)
    except (TypeError, ValueError):
        errors.append(f"{field} must be a number")
        return None
    if math.isnan(number) or math.isinf(number):
        errors.append(f"{field} must be a number")
        return None
    return int(number) if integer else number


def _is_external_image(url: str) -> bool:
    return url.lower().startswith(("http://", "https://"))


def clean_property_fields(data: Dict, partial: bool = False) -> Dict:
    """
    Validate raw form values and coerce them to column types.
    Only keys present in data are returned when partial is True.
    """
    if not partial:
        missing = [field for field in REQUIRED_FIELDS if _is_blank(data.get(field))]
        if missing:
            raise ValueError("Missing required fields: " + ", ".join(REQUIRED_FIELDS))

    cleaned: Dict[str, Any] = {}
    errors: List[str] = []

    if "type" in data and data["type"] is not None:
        prop_type = str(data["type"]).strip().lower()
        if prop_type not in PROPERTY_TYPES:
            raise ValueError("Invalid property type. Must be: villa, apartment, house, or commercial")
        cleaned["type"] = prop_type

    status = data.get("status")
    if status is not None or not partial:
        status = (status or "available").strip().lower()
        if status not in PROPERTY_STATUSES:
            raise ValueError("Invalid status. Must be: available, sold, or pending")
        cleaned["status"] = status

    if data.get("title") is not None:
        title = str(data["title"]).strip()
        if not title:
            errors.append("Property title is required")
        elif len(title) > 100:
            errors.append("Title cannot exceed 100 characters")
        cleaned["title"] = title

    if data.get("location") is not None:
        location = str(data["location"]).strip()
        if not location:
            errors.append("Location is required")
        cleaned["location"] = location

    if data.get("description") is not None or not partial:
        description = str(data.get("description") or "").strip()
        if len(description) > 1000:
            errors.append("Description cannot exceed 1000 characters")
        cleaned["description"] = description

    if data.get("price") is not None:
        price = _to_number(data["price"], "price", errors)
        if price is not None and price < 0:
            errors.append("Price cannot be negative")
        cleaned["price"] = price

    bedrooms = data.get("bedrooms")
    if bedrooms is not None or not partial:
        bedrooms = _to_number(bedrooms if not _is_blank(bedrooms) else 0, "bedrooms", errors, integer=True)
        if bedrooms is not None and bedrooms < 0:
            errors.append("Bedrooms cannot be negative")
        cleaned["bedrooms"] = bedrooms

    if data.get("bathrooms") is not None:
        bathrooms = _to_number(data["bathrooms"], "bathrooms", errors, integer=True)
        if bathrooms is not None and bathrooms < 0:
            errors.append("Bathrooms cannot be negative")
        cleaned["bathrooms"] = bathrooms

    if data.get("area") is not None:
        area = _to_number(data["area"], "area", errors)
        if area is not None and area < 1:
            errors.append("Area must be at least 1 square meter")
        cleaned["area"] = area

    if "features" in data and (data["features"] is not None or not partial):
        cleaned["features"] = parse_list_field(data["features"])
    elif not partial:
        cleaned["features"] = []

    if errors:
        raise PropertyValidationError(errors)

    return cleaned


def _check_image_refs(images: List[str], owned: Optional[List[str]] = None) -> None:
    """
    Existing images are external URLs or local files this property already
    references. Any other /uploads/ path may belong to another owner.
    """
    owned = owned or []
    invalid = [url for url in images if not _is_external_image(url) and url not in owned]
    if invalid:
        raise PropertyValidationError(["Please provide a valid image URL"] * len(invalid))


async def _combine_images(existing_images: List[str], new_urls: List[str], limit: int) -> List[str]:
    """Keep existing first, then new uploads, capped at limit; dropped new files are removed"""
    combined = list(existing_images) + list(new_urls)
    kept = combined[:limit]
    dropped_new = [url for url in new_urls if url not in kept]
    if dropped_new:
        await run_in_threadpool(delete_local_images, dropped_new)
    return kept


async def get_properties(
    owner_id: str,
    page: int = 1,
    limit: int = 10,
    property_type: Optional[str] = None,
    status: Optional[str] = None,
    search: Optional[str] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    sort_by: str = "added_date",
    sort_order: str = "desc",
) -> Dict:
    """
    List the owner's properties with filters, sorting and pagination.
    Also returns per-status counts over all of the owner's properties.
    """
    async with AsyncSessionLocal() as session:
        conditions = owner_conditions(Property, owner_id)

        if property_type and property_type != "all":
            conditions.append(Property.type == property_type.lower())

        if status and status != "all":
            conditions.append(Property.status == status)

        if min_price is not None:
            conditions.append(Property.price >= min_price)

        if max_price is not None:
            conditions.append(Property.price <= max_price)

        if search:
            search_pattern = f"%{search}%"
            conditions.append(
                or_(
                    Property.title.ilike(search_pattern),
                    Property.location.ilike(search_pattern),
                    Property.description.ilike(search_pattern),
                )
            )

        where_clause = and_(*conditions)

        count_stmt = select(func.count()).select_from(Property).where(where_clause)
        total = (await session.execute(count_stmt)).scalar_one() or 0

        sort_column = SORT_COLUMNS.get(sort_by, Property.added_date)
        direction = asc if sort_order == "asc" else desc
        stmt = (
            select(Property)
            .where(where_clause)
            .order_by(direction(sort_column), Property.id)
            .offset(max(page - 1, 0) * limit)
            .limit(limit)
        )
        props = (await session.execute(stmt)).scalars().all()

        status_stmt = (
            select(Property.status, func.count())
            .where(*owner_conditions(Property, owner_id))
            .group_by(Property.status)
        )
        stats = {"total": 0, "available": 0, "sold": 0, "pending": 0}
        for status_value, count in (await session.execute(status_stmt)).all():
            stats[status_value] = count
            stats["total"] += count

        pages = math.ceil(total / limit) if limit else 0
        return {
            "properties": [serialize_property(prop) for prop in props],
            "pagination": {
                "current": page,
                "pages": pages,
                "total": total,
                "has_next": page < pages,
                "has_prev": page > 1,
            },
            "stats": stats,
        }


async def get_property_stats(owner_id: str) -> Dict:
    """Portfolio totals plus a per-type breakdown"""
    async with AsyncSessionLocal() as session:
        overview_stmt = select(
            func.count(Property.id),
            func.coalesce(func.sum(Property.price), 0),
            func.coalesce(func.avg(Property.price), 0),
            func.coalesce(func.sum(case((Property.status == "available", 1), else_=0)), 0),
            func.coalesce(func.sum(case((Property.status == "sold", 1), else_=0)), 0),
            func.coalesce(func.sum(case((Property.status == "pending", 1), else_=0)), 0),
        ).where(*owner_conditions(Property, owner_id))
        total, total_value, avg_price, available, sold, pending = (await session.execute(overview_stmt)).one()

        type_stmt = (
            select(Property.type, func.count(Property.id), func.avg(Property.price))
            .where(*owner_conditions(Property, owner_id))
            .group_by(Property.type)
            .order_by(desc(func.count(Property.id)))
        )
        type_rows = (await session.execute(type_stmt)).all()

        return {
            "overview": {
                "total": total,
                "total_value": float(total_value),
                "avg_price": float(avg_price),
                "available_count": int(available),
                "sold_count": int(sold),
                "pending_count": int(pending),
            },
            "type_distribution": [
                {"type": prop_type, "count": count, "avg_price": float(avg or 0)}
                for prop_type, count, avg in type_rows
            ],
        }


async def get_property_by_id(property_id: str, owner_id: str) -> Optional[Dict]:
    """Get property by ID (only if it belongs to owner)"""
    async with AsyncSessionLocal() as session:
        prop = await get_owned(session, Property, property_id, owner_id)
        if not prop:
            return None
        return serialize_property(prop)


async def get_all_properties(owner_id: str) -> List[Dict]:
    """Every property of the owner, newest first (used by matching)"""
    async with AsyncSessionLocal() as session:
        stmt = owned_select(Property, owner_id).order_by(desc(Property.added_date), Property.id)
        props = (await session.execute(stmt)).scalars().all()
        return [serialize_property(prop) for prop in props]


async def create_property(
    owner_id: str,
    property_data: Dict,
    existing_images: Optional[List[str]] = None,
    uploads: Optional[List[ImageUpload]] = None,
) -> Dict:
    """
    Validate, store uploaded images, then insert the row.
    Uploaded files are removed again if the insert fails.
    """
    uploads = uploads or []
    existing_images = existing_images or []

    validate_images(uploads)
    cleaned = clean_property_fields(property_data)
    _check_image_refs(existing_images)

    new_urls = await run_in_threadpool(save_property_images, uploads)
    images = await _combine_images(existing_images, new_urls, settings.MAX_PROPERTY_IMAGES)

    try:
        async with AsyncSessionLocal() as session:
            new_property = Property(
                id=str(uuid.uuid4()),
                owner_id=owner_id,
                images=images,
                **cleaned,
            )
            session.add(new_property)
            await session.commit()
            await session.refresh(new_property)
    except Exception:
        await run_in_threadpool(delete_local_images, new_urls)
        raise

    logger.info(f"🏠 Property created: {new_property.id} ({len(images)} image(s))")
    return serialize_property(new_property)


async def update_property(
    property_id: str,
    owner_id: str,
    update_data: Dict,
    existing_images: Optional[List[str]] = None,
    uploads: Optional[List[ImageUpload]] = None,
) -> Optional[Dict]:
    """
    Partial update with ownership validation.
    existing_images None keeps the current images (plus any uploads);
    a list replaces them. Local files no longer referenced are deleted after commit.
    """
    uploads = uploads or []
    validate_images(uploads)

    async with AsyncSessionLocal() as session:
        prop = await get_owned(session, Property, property_id, owner_id)
        if not prop:
            return None

        cleaned = clean_property_fields(update_data, partial=True)
        old_images = list(prop.images or [])
        kept_images = list(old_images) if existing_images is None else list(existing_images)
        _check_image_refs(kept_images, owned=old_images)

        new_urls = await run_in_threadpool(save_property_images, uploads)
        images = await _combine_images(kept_images, new_urls, settings.MAX_PROPERTY_IMAGES)

        try:
            for key, value in cleaned.items():
                setattr(prop, key, value)
            prop.images = images
            await session.commit()
            await session.refresh(prop)
        except Exception:
            await run_in_threadpool(delete_local_images, new_urls)
            raise

        stale = [url for url in old_images if url not in images]
        if stale:
            await run_in_threadpool(delete_local_images, stale)

        return serialize_property(prop)


async def delete_property(property_id: str, owner_id: str) -> Optional[Dict]:
    """Delete the row, then its locally stored images. Returns the deleted property."""
    async with AsyncSessionLocal() as session:
        prop = await get_owned(session, Property, property_id, owner_id)
        if not prop:
            return None

        deleted = serialize_property(prop)
        await session.delete(prop)
        await session.commit()

    await run_in_threadpool(delete_local_images, deleted["images"])
    logger.info(f"🗑️ Property deleted: {property_id}")
    return deleted


async def create_imported_property(owner_id: str, record: Dict) -> Dict:
    """Insert one already-transformed import row"""
    cleaned = clean_property_fields(record)
    images = [url for url in record.get("images", []) if _is_external_image(url)][:settings.MAX_PROPERTY_IMAGES]

    async with AsyncSessionLocal() as session:
        new_property = Property(
            id=str(uuid.uuid4()),
            owner_id=owner_id,
            images=images,
            **cleaned,
        )
        session.add(new_property)
        await session.commit()
        await session.refresh(new_property)
        return serialize_property(new_property)
