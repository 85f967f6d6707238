from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, Field


class ChildEnrollRequest(BaseModel):
    """
    Parent's declaration of a child. Every identity field is checked against the school's
    registry; the created child carries the registry's values, not these.
    """

    first_name: Optional[str] = Field(None, max_length=255)
    last_name: Optional[str] = Field(None, max_length=255)
    birth_date: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("birth_date", "date_of_birth"),
        description="YYYY-MM-DD or DD/MM/YYYY",
    )
    class_name: Optional[str] = Field(
        None,
        max_length=100,
        validation_alias=AliasChoices("class_name", "grade"),
    )
    student_code: Optional[str] = Field(None, max_length=100)
    school_id: Optional[str] = Field(None, description="School ID (a school name is also accepted)")
    school_name: Optional[str] = Field(None, max_length=255)


class ChildResponse(BaseModel):
    id: UUID
    first_name: str
    last_name: str
    birth_date: date
    class_name: str
    school_id: UUID
    parent_id: UUID
    student_code: str
    status: str
    created_at: datetime

    class Config:
        from_attributes = True
