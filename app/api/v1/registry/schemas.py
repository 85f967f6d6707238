from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class RegistryRowResponse(BaseModel):
    id: UUID
    school_id: UUID
    first_name: str
    last_name: str
    student_code: str
    birth_date: date
    class_name: str
    norm_first_name: str
    norm_last_name: str
    norm_student_code: str
    norm_birth_date: str
    norm_class_name: str
    source_file_name: Optional[str] = None
    imported_by: Optional[UUID] = None
    imported_at: datetime

    class Config:
        from_attributes = True


class RegistryImportResult(BaseModel):
    """
    Outcome of one import. duplicate_count counts only rows collapsed into an earlier
    identical row; rows whose fields fail normalization count in invalid_count alone, so
    duplicate_count is not candidates minus imported.
    """

    imported_count: int
    invalid_count: int
    duplicate_count: int
    file_name: str


class RegistryImportResponse(BaseModel):
    success: bool
    message: str
    data: RegistryImportResult
