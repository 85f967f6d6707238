import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.db.session import Base


class School(Base):
    """
    School served by the canteen platform.

    Only lookup fields live here; school CRUD is handled by the admin service.
    student_count is a cache of the last registry import size, not a source of truth.
    """

    __tablename__ = "schools"
    __table_args__ = {"schema": "core"}

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False, unique=True)
    address = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    # School admin account (auth.users.id). No FK: users.school_id already points here
    admin_id = Column(UUID(as_uuid=True), nullable=True, index=True)
    student_count = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default="active")
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    registry_rows = relationship(
        "StudentRegistryRow",
        back_populates="school",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
