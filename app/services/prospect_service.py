"""
Prospect Service - owner-scoped prospect database
Deletion is soft (is_active=False); every read goes through the ownership
helpers so inactive prospects are invisible.
Scalar filters run in SQL. Preference filters (property type, location,
budget) look inside the JSON preferences column and are applied in Python
before paging, which keeps the query portable between PostgreSQL and SQLite.
"""
from typing import Optional, List, Dict
from datetime import datetime, timedelta, timezone
import logging
import math
import uuid
from sqlalchemy import select, or_, asc, desc, func
from app.database.connection import AsyncSessionLocal
from app.models.prospect import Prospect, PROSPECT_STATUSES, INTERACTION_TYPES, default_preferences
from app.utils.ownership import owner_conditions, owned_select, get_owned

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "created_at": Prospect.created_at,
    "addedDate": Prospect.created_at,
    "name": Prospect.name,
    "status": Prospect.status,
    "last_contact": Prospect.last_contact,
    "lastContact": Prospect.last_contact,
}

RECENT_DAYS = 7
STALE_DAYS = 30


class DuplicateProspectError(ValueError):
    """Another active prospect of the same owner already uses this email"""

    def __init__(self):
        super().__init__("A prospect with this email already exists")


def _iso(value: Optional[datetime]) -> str:
    return value.isoformat() if value else ""


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def serialize_prospect(prospect: Prospect) -> Dict:
    return {
        "id": prospect.id,
        "owner_id": prospect.owner_id,
        "name": prospect.name,
        "email": prospect.email,
        "phone": prospect.phone,
        "status": prospect.status,
        "source": prospect.source,
        "preferences": normalize_preferences(prospect.preferences),
        "matched_property_ids": list(prospect.matched_property_ids or []),
        "interactions": list(prospect.interactions or []),
        "last_contact": _iso(prospect.last_contact),
        "notes": prospect.notes or "",
        "is_active": prospect.is_active,
        "created_at": _iso(prospect.created_at),
        "updated_at": _iso(prospect.updated_at),
    }


def normalize_preferences(preferences: Optional[Dict]) -> Dict:
    """Fill missing preference keys with defaults; desired property types are lower-cased"""
    merged = default_preferences()
    if not preferences:
        return merged

    for key, value in preferences.items():
        if key in ("budget", "area") and isinstance(value, dict):
            merged[key] = {**merged[key], **{k: v for k, v in value.items() if k in ("min", "max")}}
        elif key in merged and value is not None:
            merged[key] = value

    merged["property_types"] = [str(t).strip().lower() for t in merged["property_types"] if str(t).strip()]
    merged["locations"] = [str(loc).strip() for loc in merged["locations"] if str(loc).strip()]
    merged["features"] = [str(f).strip() for f in merged["features"] if str(f).strip()]
    return merged


def _matches_preference_filters(
    prospect: Prospect,
    property_type: Optional[str],
    location: Optional[str],
    budget_min: Optional[float],
    budget_max: Optional[float],
) -> bool:
    prefs = normalize_preferences(prospect.preferences)

    if property_type and property_type.lower() not in prefs["property_types"]:
        return False

    if location:
        needle = location.lower()
        if not any(needle in loc.lower() for loc in prefs["locations"]):
            return False

    budget = prefs["budget"]
    if budget_min is not None and (budget.get("min") or 0) < budget_min:
        return False

    if budget_max is not None and (budget.get("max") or 0) > budget_max:
        return False

    return True


async def _email_taken(session, owner_id: str, email: str, exclude_id: Optional[str] = None) -> bool:
    stmt = select(Prospect.id).where(*owner_conditions(Prospect, owner_id), Prospect.email == email)
    if exclude_id:
        stmt = stmt.where(Prospect.id != exclude_id)
    result = await session.execute(stmt)
    return result.first() is not None


async def get_prospects(
    owner_id: str,
    page: int = 1,
    limit: int = 10,
    search: Optional[str] = None,
    status: Optional[str] = None,
    source: Optional[str] = None,
    property_type: Optional[str] = None,
    location: Optional[str] = None,
    budget_min: Optional[float] = None,
    budget_max: Optional[float] = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
) -> Dict:
    """List active prospects with filters, sorting and pagination"""
    async with AsyncSessionLocal() as session:
        stmt = owned_select(Prospect, owner_id)

        if status:
            stmt = stmt.where(Prospect.status == status)

        if source:
            stmt = stmt.where(Prospect.source == source)

        if search:
            search_pattern = f"%{search}%"
            stmt = stmt.where(
                or_(
                    Prospect.name.ilike(search_pattern),
                    Prospect.email.ilike(search_pattern),
                    Prospect.phone.ilike(search_pattern),
                    Prospect.notes.ilike(search_pattern),
                )
            )

        sort_column = SORT_COLUMNS.get(sort_by, Prospect.created_at)
        direction = asc if sort_order == "asc" else desc
        stmt = stmt.order_by(direction(sort_column), Prospect.id)

        prospects = (await session.execute(stmt)).scalars().all()
        prospects = [
            p for p in prospects
            if _matches_preference_filters(p, property_type, location, budget_min, budget_max)
        ]

        total = len(prospects)
        total_pages = math.ceil(total / limit) if limit else 0
        start = max(page - 1, 0) * limit

        return {
            "prospects": [serialize_prospect(p) for p in prospects[start:start + limit]],
            "pagination": {
                "current_page": page,
                "total_pages": total_pages,
                "total_items": total,
                "items_per_page": limit,
                "has_next_page": page < total_pages,
                "has_prev_page": page > 1,
            },
        }


async def get_all_prospects(owner_id: str) -> List[Dict]:
    """Every active prospect of the owner, oldest first (campaign order)"""
    async with AsyncSessionLocal() as session:
        stmt = owned_select(Prospect, owner_id).order_by(asc(Prospect.created_at), Prospect.id)
        prospects = (await session.execute(stmt)).scalars().all()
        return [serialize_prospect(p) for p in prospects]


async def get_prospect_stats(owner_id: str) -> Dict:
    """Status totals, budget averages, source breakdown, recent and stale counts"""
    async with AsyncSessionLocal() as session:
        prospects = (await session.execute(owned_select(Prospect, owner_id))).scalars().all()

        source_stmt = (
            select(Prospect.source, func.count(Prospect.id))
            .where(*owner_conditions(Prospect, owner_id))
            .group_by(Prospect.source)
            .order_by(desc(func.count(Prospect.id)))
        )
        source_rows = (await session.execute(source_stmt)).all()

    now = datetime.now(timezone.utc)
    recent_cutoff = now - timedelta(days=RECENT_DAYS)
    stale_cutoff = now - timedelta(days=STALE_DAYS)

    stats = {"total": len(prospects), **{s: 0 for s in PROSPECT_STATUSES}}
    with_matches = 0
    recent = 0
    stale = 0
    budget_mins: List[float] = []
    budget_maxs: List[float] = []

    for prospect in prospects:
        if prospect.status in stats:
            stats[prospect.status] += 1
        if prospect.matched_property_ids:
            with_matches += 1

        budget = normalize_preferences(prospect.preferences)["budget"]
        budget_mins.append(budget.get("min") or 0)
        budget_maxs.append(budget.get("max") or 0)

        created_at = _as_utc(prospect.created_at)
        if created_at and created_at >= recent_cutoff:
            recent += 1
        last_contact = _as_utc(prospect.last_contact)
        if last_contact and last_contact < stale_cutoff:
            stale += 1

    stats.update({
        "with_matches": with_matches,
        "avg_budget_min": sum(budget_mins) / len(budget_mins) if budget_mins else 0,
        "avg_budget_max": sum(budget_maxs) / len(budget_maxs) if budget_maxs else 0,
        "source_breakdown": [{"source": source, "count": count} for source, count in source_rows],
        "recent_prospects": recent,
        "stale_prospects": stale,
    })
    return stats


async def get_prospect_by_id(prospect_id: str, owner_id: str) -> Optional[Dict]:
    """Get an active prospect by ID (only if it belongs to owner)"""
    async with AsyncSessionLocal() as session:
        prospect = await get_owned(session, Prospect, prospect_id, owner_id)
        if not prospect:
            return None
        return serialize_prospect(prospect)


async def create_prospect(owner_id: str, prospect_data: Dict) -> Dict:
    """Create a prospect; email must be unique among the owner's active prospects"""
    email = prospect_data["email"].strip().lower()

    async with AsyncSessionLocal() as session:
        if await _email_taken(session, owner_id, email):
            raise DuplicateProspectError()

        new_prospect = Prospect(
            id=str(uuid.uuid4()),
            owner_id=owner_id,
            name=prospect_data["name"].strip(),
            email=email,
            phone=prospect_data["phone"].strip(),
            status=prospect_data.get("status") or "active",
            source=prospect_data.get("source") or "unknown",
            preferences=normalize_preferences(prospect_data.get("preferences")),
            matched_property_ids=[],
            interactions=[],
            notes=prospect_data.get("notes") or "",
            is_active=True,
        )

        session.add(new_prospect)
        await session.commit()
        await session.refresh(new_prospect)

        return serialize_prospect(new_prospect)


async def update_prospect(prospect_id: str, owner_id: str, update_data: Dict) -> Optional[Dict]:
    """Partial update with ownership validation and email uniqueness"""
    async with AsyncSessionLocal() as session:
        prospect = await get_owned(session, Prospect, prospect_id, owner_id)
        if not prospect:
            return None

        email = update_data.get("email")
        if email:
            email = email.strip().lower()
            if email != prospect.email and await _email_taken(session, owner_id, email, exclude_id=prospect_id):
                raise DuplicateProspectError()
            prospect.email = email

        for field in ("name", "phone", "status", "source", "notes"):
            if update_data.get(field) is not None:
                value = update_data[field]
                setattr(prospect, field, value.strip() if field in ("name", "phone") else value)

        if update_data.get("preferences") is not None:
            current = normalize_preferences(prospect.preferences)
            incoming = update_data["preferences"]
            current.update({k: v for k, v in incoming.items() if v is not None})
            prospect.preferences = normalize_preferences(current)

        await session.commit()
        await session.refresh(prospect)
        return serialize_prospect(prospect)


async def delete_prospect(prospect_id: str, owner_id: str) -> bool:
    """Soft delete: the row stays but is hidden from every read"""
    async with AsyncSessionLocal() as session:
        prospect = await get_owned(session, Prospect, prospect_id, owner_id)
        if not prospect:
            return False

        prospect.is_active = False
        await session.commit()
        logger.info(f"🗑️ Prospect soft-deleted: {prospect_id}")
        return True


async def update_prospect_status(prospect_id: str, owner_id: str, status: str) -> Optional[Dict]:
    """Set status and mark the prospect as contacted now"""
    if status not in PROSPECT_STATUSES:
        raise ValueError(f"Invalid status. Must be one of: {', '.join(PROSPECT_STATUSES)}")

    async with AsyncSessionLocal() as session:
        prospect = await get_owned(session, Prospect, prospect_id, owner_id)
        if not prospect:
            return None

        prospect.status = status
        prospect.last_contact = datetime.now(timezone.utc)
        await session.commit()
        await session.refresh(prospect)
        return serialize_prospect(prospect)


async def add_interaction(prospect_id: str, owner_id: str, interaction_type: str, description: str) -> Optional[Dict]:
    """Append an interaction to the prospect's history and bump last_contact"""
    if interaction_type not in INTERACTION_TYPES:
        raise ValueError(f"Invalid interaction type. Must be one of: {', '.join(INTERACTION_TYPES)}")

    async with AsyncSessionLocal() as session:
        prospect = await get_owned(session, Prospect, prospect_id, owner_id)
        if not prospect:
            return None

        now = datetime.now(timezone.utc)
        # JSON columns only detect reassignment, not in-place mutation
        prospect.interactions = list(prospect.interactions or []) + [{
            "type": interaction_type,
            "description": description,
            "created_by": owner_id,
            "created_at": now.isoformat(),
        }]
        prospect.last_contact = now
        await session.commit()
        await session.refresh(prospect)
        return serialize_prospect(prospect)


async def record_matches(owner_id: str, matched: Dict[str, List[str]], contacted_ids: Optional[List[str]] = None) -> int:
    """
    Store matched property ids per prospect (prospect_id -> property ids).
    Prospects listed in contacted_ids also get last_contact set to now.
    Returns the number of prospects updated.
    """
    contacted = set(contacted_ids or [])
    if not matched and not contacted:
        return 0

    async with AsyncSessionLocal() as session:
        ids = list(set(matched) | contacted)
        stmt = owned_select(Prospect, owner_id).where(Prospect.id.in_(ids))
        prospects = (await session.execute(stmt)).scalars().all()

        now = datetime.now(timezone.utc)
        for prospect in prospects:
            if prospect.id in matched:
                prospect.matched_property_ids = list(matched[prospect.id])
            if prospect.id in contacted:
                prospect.last_contact = now

        await session.commit()
        return len(prospects)
