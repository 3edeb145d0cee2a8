"""
Owner scoping shared by the property and prospect services.
Every read or write of an owned record goes through these helpers so the
owner filter is applied in exactly one place.
"""
from typing import Optional, Type
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession


def owner_conditions(model: Type, owner_id: str) -> list:
    """Base WHERE conditions for records visible to owner_id"""
    conditions = [model.owner_id == owner_id]
    if hasattr(model, "is_active"):
        conditions.append(model.is_active.is_(True))
    return conditions


def owned_select(model: Type, owner_id: str):
    return select(model).where(*owner_conditions(model, owner_id))


async def get_owned(session: AsyncSession, model: Type, record_id: str, owner_id: str) -> Optional[object]:
    """Fetch a record by id only if it belongs to owner_id, else None"""
    stmt = owned_select(model, owner_id).where(model.id == record_id)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()
