from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import require_roles
from app.auth.schemas import CurrentUser
from app.core.enums import UserRole
from app.core.exceptions import ServiceError, to_http_exception
from app.db.session import get_db

from .schemas import RegistryImportResponse, RegistryRowResponse
from . import service

router = APIRouter(prefix="/api/v1/students", tags=["student-registry"])


@router.get(
    "",
    response_model=List[RegistryRowResponse],
)
async def list_registry(
    school_id: Optional[str] = Query(None, description="School ID; defaults to the caller's school for staff"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(
        require_roles(UserRole.SUPER_ADMIN, UserRole.SCHOOL_ADMIN, UserRole.CANTEEN_MANAGER)
    ),
) -> List[RegistryRowResponse]:
    """List the imported student registry, sorted by last name then first name."""
    try:
        target_school_id = await service.resolve_list_school_id(db, current_user, school_id)
    except ServiceError as e:
        raise to_http_exception(e)
    return await service.list_registry(db, target_school_id)


@router.post(
    "/import",
    response_model=RegistryImportResponse,
)
async def import_registry(
    file: UploadFile = File(..., description="Student list as PDF, CSV/TSV or XLSX"),
    school_id: Optional[str] = Form(None, description="Target school; defaults to the admin's school"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(UserRole.SCHOOL_ADMIN)),
) -> RegistryImportResponse:
    """
    Replace the school's student registry with the students in the uploaded file.
    Reports imported / invalid / duplicate counts. A rejected file leaves the current registry in place.
    """
    try:
        target_school_id = await service.resolve_import_school_id(db, current_user, school_id)
        content = await file.read()
        if not content:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File is empty")
        result = await service.import_registry(
            db,
            target_school_id,
            file_name=file.filename,
            content_type=file.content_type,
            content=content,
            imported_by=current_user.id,
        )
    except ServiceError as e:
        raise to_http_exception(e)
    return RegistryImportResponse(
        success=True,
        message="Import completed successfully.",
        data=result,
    )
