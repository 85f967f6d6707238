"""
School lookup: existence checks and id resolution for the caller.
School CRUD lives in the admin service; this module only reads.
"""

from typing import Optional, Union
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.core.models import School


def parse_school_id(value: Union[str, UUID, None]) -> Optional[UUID]:
    """UUID from a request value; None when missing or malformed."""
    if value is None:
        return None
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value).strip())
    except ValueError:
        return None


async def get_school(db: AsyncSession, school_id: UUID) -> Optional[School]:
    return await db.get(School, school_id)


async def get_school_by_name(db: AsyncSession, name: str) -> Optional[School]:
    result = await db.execute(select(School).where(School.name == name.strip()))
    return result.scalars().first()


async def resolve_school_id_for_user(db: AsyncSession, user_id: UUID) -> Optional[UUID]:
    """Staff school: the user's own school_id, else the school they administer."""
    user = await db.get(User, user_id)
    if user and user.school_id:
        return user.school_id
    result = await db.execute(select(School.id).where(School.admin_id == user_id).limit(1))
    return result.scalar_one_or_none()


async def resolve_school_reference(
    db: AsyncSession,
    school_id: Union[str, UUID, None] = None,
    school_name: Optional[str] = None,
) -> Optional[School]:
    """School from an id, or from its exact name (also accepted in the id slot)."""
    parsed = parse_school_id(school_id)
    if parsed:
        return await get_school(db, parsed)
    if school_id and str(school_id).strip():
        return await get_school_by_name(db, str(school_id))
    if school_name and school_name.strip():
        return await get_school_by_name(db, school_name)
    return None
