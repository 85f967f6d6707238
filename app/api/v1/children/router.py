from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.rbac import require_roles
from app.auth.schemas import CurrentUser
from app.core.enums import UserRole
from app.core.exceptions import ServiceError, to_http_exception
from app.db.session import get_db

from .schemas import ChildEnrollRequest, ChildResponse
from . import service

router = APIRouter(prefix="/api/v1/children", tags=["children"])


@router.get(
    "",
    response_model=List[ChildResponse],
)
async def list_children(
    parent_id: Optional[UUID] = Query(None, description="Filter by parent (ignored for parents)"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[ChildResponse]:
    return await service.list_children(db, current_user, parent_id=parent_id)


@router.post(
    "",
    response_model=ChildResponse,
    status_code=status.HTTP_201_CREATED,
)
async def enroll_child(
    payload: ChildEnrollRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(UserRole.PARENT)),
) -> ChildResponse:
    """Add a child by matching the declared identity against the school's imported student list."""
    try:
        return await service.enroll_child(db, current_user.id, payload)
    except ServiceError as e:
        raise to_http_exception(e)
