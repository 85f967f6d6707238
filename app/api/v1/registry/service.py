"""
Student registry import and listing.

Import = classify file -> extract rows -> interpret -> normalize + dedup -> replace the
school's registry in one transaction. A rejected file leaves the stored registry untouched.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Tuple
from uuid import UUID

from fastapi import status
from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.schemas import CurrentUser
from app.core.config import settings
from app.core.enums import UserRole
from app.core.exceptions import PayloadTooLargeError, ServiceError, ValidationError
from app.core.models import School, StudentRegistryRow
from app.core import school_service

from .extractor import classify_upload, extract_rows
from .interpreter import ParsedCandidateRow, interpret_rows
from .normalizer import normalize_class, normalize_code, normalize_date, normalize_name
from .schemas import RegistryImportResult, RegistryRowResponse

logger = logging.getLogger(__name__)

IdentityKey = Tuple[str, str, str, str, str]


@dataclass(frozen=True)
class NormalizedRegistryRow:
    source: ParsedCandidateRow
    norm_first_name: str
    norm_last_name: str
    norm_student_code: str
    norm_birth_date: str
    norm_class_name: str

    @property
    def key(self) -> IdentityKey:
        return (
            self.norm_first_name,
            self.norm_last_name,
            self.norm_student_code,
            self.norm_birth_date,
            self.norm_class_name,
        )


@dataclass
class NormalizationResult:
    rows: List[NormalizedRegistryRow] = field(default_factory=list)
    invalid_rows: List[ParsedCandidateRow] = field(default_factory=list)
    duplicate_count: int = 0


def normalize_candidates(candidates: List[ParsedCandidateRow]) -> NormalizationResult:
    """Normalize every candidate; drop unusable ones as invalid and later duplicates silently."""
    result = NormalizationResult()
    seen = set()
    for candidate in candidates:
        norm_birth_date = normalize_date(candidate.birth_date)
        row = NormalizedRegistryRow(
            source=candidate,
            norm_first_name=normalize_name(candidate.first_name),
            norm_last_name=normalize_name(candidate.last_name),
            norm_student_code=normalize_code(candidate.student_code),
            norm_birth_date=norm_birth_date or "",
            norm_class_name=normalize_class(candidate.class_name),
        )
        if not all(row.key):
            result.invalid_rows.append(candidate)
            continue
        if row.key in seen:
            result.duplicate_count += 1
            continue
        seen.add(row.key)
        result.rows.append(row)
    return result


def _to_model(
    row: NormalizedRegistryRow,
    school_id: UUID,
    file_name: str,
    imported_by: Optional[UUID],
) -> StudentRegistryRow:
    return StudentRegistryRow(
        school_id=school_id,
        first_name=row.source.first_name,
        last_name=row.source.last_name,
        student_code=row.source.student_code,
        birth_date=date.fromisoformat(row.norm_birth_date),
        class_name=row.source.class_name,
        norm_first_name=row.norm_first_name,
        norm_last_name=row.norm_last_name,
        norm_student_code=row.norm_student_code,
        norm_birth_date=row.norm_birth_date,
        norm_class_name=row.norm_class_name,
        source_file_name=file_name,
        imported_by=imported_by,
    )


async def resolve_import_school_id(
    db: AsyncSession,
    current_user: CurrentUser,
    explicit_school_id: Optional[str],
) -> UUID:
    """Target school: the explicit id if given, else the admin's own. Admins may only import into their own school."""
    own_school_id = await school_service.resolve_school_id_for_user(db, current_user.id)

    if explicit_school_id:
        school_id = school_service.parse_school_id(explicit_school_id)
        if not school_id:
            raise ValidationError("Invalid school ID.")
    else:
        school_id = own_school_id
        if not school_id:
            raise ValidationError("No school associated with this admin.")

    if not await school_service.get_school(db, school_id):
        raise ValidationError("Invalid school ID.")
    if current_user.role == UserRole.SCHOOL_ADMIN.value and school_id != own_school_id:
        raise ServiceError("Access to this school is not allowed.", status.HTTP_403_FORBIDDEN)
    return school_id


async def _replace_registry(
    db: AsyncSession,
    school_id: UUID,
    rows: List[StudentRegistryRow],
) -> None:
    """Delete the school's registry and insert the new rows as one transaction."""
    try:
        await db.execute(delete(StudentRegistryRow).where(StudentRegistryRow.school_id == school_id))
        db.add_all(rows)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Registry replace failed for school %s", school_id)
        raise ServiceError("Failed to save the student registry.") from e


async def _update_student_count(db: AsyncSession, school_id: UUID, count: int) -> None:
    """Refresh the cached student count. Best effort: the import already succeeded."""
    try:
        await db.execute(update(School).where(School.id == school_id).values(student_count=count))
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.warning("Could not update student_count for school %s", school_id, exc_info=True)


async def import_registry(
    db: AsyncSession,
    school_id: UUID,
    file_name: Optional[str],
    content_type: Optional[str],
    content: bytes,
    imported_by: Optional[UUID] = None,
) -> RegistryImportResult:
    """Replace the school's registry with the students found in an uploaded PDF/CSV/XLSX file."""
    file_name = file_name or ""
    if len(content) > settings.max_upload_size_bytes:
        raise PayloadTooLargeError(
            f"File exceeds the maximum upload size of {settings.max_upload_size_bytes} bytes."
        )

    kind = classify_upload(file_name, content_type)
    if kind is None:
        raise ValidationError("Unsupported format. Use a PDF, CSV or XLSX file.")

    try:
        extraction = extract_rows(kind, content)
        interpretation = interpret_rows(extraction.rows)
        normalization = normalize_candidates(interpretation.students)
    except ValueError as e:
        # Unreadable workbook / PDF
        raise ValidationError(str(e)) from e
    except Exception as e:
        logger.exception("Registry parse failed for %s (%s)", file_name, kind.value)
        raise ServiceError("Server error during import.") from e

    invalid_count = len(extraction.invalid_lines) + len(interpretation.invalid_rows)
    if not interpretation.students:
        raise ValidationError(
            "No valid data found in the file.",
            data={"invalid_count": invalid_count},
        )

    invalid_count += len(normalization.invalid_rows)
    if not normalization.rows:
        raise ValidationError(
            "No valid rows after normalization.",
            data={"invalid_count": invalid_count, "duplicate_count": normalization.duplicate_count},
        )

    models = [_to_model(row, school_id, file_name, imported_by) for row in normalization.rows]
    await _replace_registry(db, school_id, models)
    await _update_student_count(db, school_id, len(models))

    logger.info(
        "Registry imported for school %s from %s: imported=%d invalid=%d duplicates=%d",
        school_id,
        file_name,
        len(models),
        invalid_count,
        normalization.duplicate_count,
    )
    return RegistryImportResult(
        imported_count=len(models),
        invalid_count=invalid_count,
        duplicate_count=normalization.duplicate_count,
        file_name=file_name,
    )


async def resolve_list_school_id(
    db: AsyncSession,
    current_user: CurrentUser,
    explicit_school_id: Optional[str],
) -> Optional[UUID]:
    """None means every school (super admin only). Staff are pinned to their own school."""
    school_id: Optional[UUID] = None
    if explicit_school_id:
        school_id = school_service.parse_school_id(explicit_school_id)
        if not school_id:
            raise ValidationError("Invalid school ID.")

    if current_user.role == UserRole.SUPER_ADMIN.value:
        return school_id

    own_school_id = await school_service.resolve_school_id_for_user(db, current_user.id)
    if not own_school_id:
        raise ValidationError("No school associated with this account.")
    if school_id and school_id != own_school_id:
        raise ServiceError("Access to this school is not allowed.", status.HTTP_403_FORBIDDEN)
    return own_school_id


async def list_registry(db: AsyncSession, school_id: Optional[UUID] = None) -> List[RegistryRowResponse]:
    stmt = select(StudentRegistryRow)
    if school_id:
        stmt = stmt.where(StudentRegistryRow.school_id == school_id)
    stmt = stmt.order_by(StudentRegistryRow.last_name, StudentRegistryRow.first_name)
    result = await db.execute(stmt)
    return [RegistryRowResponse.model_validate(r) for r in result.scalars().all()]


async def count_registry_rows(db: AsyncSession, school_id: UUID) -> int:
    result = await db.execute(
        select(func.count()).select_from(StudentRegistryRow).where(StudentRegistryRow.school_id == school_id)
    )
    return int(result.scalar_one())
