"""
Self-service child enrollment. A parent's declaration must resolve to exactly one row of
the school's imported registry; each registry student can be claimed by one parent only.
Failure messages stay generic so the registry cannot be probed field by field.
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.registry import service as registry_service
from app.auth.schemas import CurrentUser
from app.core import school_service
from app.core.config import settings
from app.core.enums import ChildStatus, UserRole
from app.core.exceptions import ConflictError, NotFoundError, ServiceError, ValidationError
from app.core.models import Child, StudentRegistryRow

from .matcher import ChildIdentity, MatchResult, MatchTier, disambiguate
from .schemas import ChildEnrollRequest, ChildResponse

logger = logging.getLogger(__name__)

IDENTITY_MISMATCH_MESSAGE = "Child identity does not match school records."
ALREADY_LINKED_MESSAGE = "This student is already linked to a parent."


def _child_to_response(c: Child) -> ChildResponse:
    return ChildResponse(
        id=c.id,
        first_name=c.first_name,
        last_name=c.last_name,
        birth_date=c.birth_date,
        class_name=c.grade,
        school_id=c.school_id,
        parent_id=c.parent_id,
        student_code=c.student_code,
        status=c.status,
        created_at=c.created_at,
    )


async def find_registry_match(
    db: AsyncSession,
    school_id: UUID,
    identity: ChildIdentity,
) -> Optional[MatchResult]:
    """Exact tier first, then code + birth date candidates narrowed by class, then name."""
    norm_birth_date = identity.norm_birth_date
    exact = await db.execute(
        select(StudentRegistryRow)
        .where(
            StudentRegistryRow.school_id == school_id,
            StudentRegistryRow.norm_first_name == identity.norm_first_name,
            StudentRegistryRow.norm_last_name == identity.norm_last_name,
            StudentRegistryRow.norm_student_code == identity.norm_student_code,
            StudentRegistryRow.norm_birth_date == norm_birth_date,
            StudentRegistryRow.norm_class_name == identity.norm_class_name,
        )
        .limit(1)
    )
    row = exact.scalars().first()
    if row:
        return MatchResult(row, MatchTier.EXACT)

    candidates_result = await db.execute(
        select(StudentRegistryRow)
        .where(
            StudentRegistryRow.school_id == school_id,
            StudentRegistryRow.norm_student_code == identity.norm_student_code,
            StudentRegistryRow.norm_birth_date == norm_birth_date,
        )
        .limit(settings.registry_candidate_limit)
    )
    return disambiguate(identity, candidates_result.scalars().all())


async def _get_child_by_student_code(
    db: AsyncSession,
    school_id: UUID,
    student_code: str,
) -> Optional[Child]:
    result = await db.execute(
        select(Child).where(Child.school_id == school_id, Child.student_code == student_code)
    )
    return result.scalars().first()


async def enroll_child(
    db: AsyncSession,
    parent_id: UUID,
    payload: ChildEnrollRequest,
) -> ChildResponse:
    """
    Match the declaration against the registry and create an APPROVED child owned by the parent.
    Raises ValidationError (bad input), NotFoundError (no registry / no match), ConflictError (already claimed).
    """
    if not (payload.school_id or payload.school_name):
        raise ValidationError("School is required.")
    school = await school_service.resolve_school_reference(db, payload.school_id, payload.school_name)
    if not school:
        raise ValidationError("School not found.")

    if not all(
        (payload.first_name, payload.last_name, payload.birth_date, payload.class_name, payload.student_code)
    ):
        raise ValidationError("First name, last name, student code, birth date and class are required.")

    identity = ChildIdentity(
        first_name=payload.first_name,
        last_name=payload.last_name,
        birth_date=payload.birth_date,
        class_name=payload.class_name,
        student_code=payload.student_code,
    )
    if not identity.norm_birth_date:
        raise ValidationError("Invalid birth date.")

    if not await registry_service.count_registry_rows(db, school.id):
        raise NotFoundError("No student list has been imported for this school.")

    match = await find_registry_match(db, school.id, identity)
    if not match:
        logger.info("Enrollment unresolved for parent %s in school %s", parent_id, school.id)
        raise NotFoundError(IDENTITY_MISMATCH_MESSAGE)

    row: StudentRegistryRow = match.row
    # Early exit only; the unique constraint on (school_id, student_code) is authoritative
    if await _get_child_by_student_code(db, school.id, row.student_code):
        raise ConflictError(ALREADY_LINKED_MESSAGE)

    child = Child(
        first_name=row.first_name,
        last_name=row.last_name,
        birth_date=row.birth_date,
        grade=row.class_name,
        school_id=school.id,
        parent_id=parent_id,
        student_code=row.student_code,
        status=ChildStatus.APPROVED.value,
    )
    db.add(child)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError(ALREADY_LINKED_MESSAGE) from e
    except Exception as e:
        await db.rollback()
        logger.exception("Child enrollment failed for parent %s", parent_id)
        raise ServiceError("Failed to create child", status.HTTP_500_INTERNAL_SERVER_ERROR) from e

    await db.refresh(child)
    logger.info(
        "Child %s enrolled for parent %s in school %s (tier=%s)",
        child.id,
        parent_id,
        school.id,
        match.tier.value,
    )
    return _child_to_response(child)


async def list_children(
    db: AsyncSession,
    current_user: CurrentUser,
    parent_id: Optional[UUID] = None,
) -> List[ChildResponse]:
    """Parents see their own children; staff see their school's; super admins see all."""
    stmt = select(Child)
    if current_user.role == UserRole.PARENT.value:
        stmt = stmt.where(Child.parent_id == current_user.id)
    else:
        if parent_id:
            stmt = stmt.where(Child.parent_id == parent_id)
        if current_user.role != UserRole.SUPER_ADMIN.value:
            own_school_id = await school_service.resolve_school_id_for_user(db, current_user.id)
            if not own_school_id:
                return []
            stmt = stmt.where(Child.school_id == own_school_id)
    stmt = stmt.order_by(Child.last_name, Child.first_name)
    result = await db.execute(stmt)
    return [_child_to_response(c) for c in result.scalars().all()]
