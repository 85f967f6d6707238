from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class CurrentUser(BaseModel):
    """Authenticated principal resolved from the bearer token, used for role checks."""

    id: UUID
    role: str
    school_id: Optional[UUID] = None  # Set for school staff; None for parents and super admins
