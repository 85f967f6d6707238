import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.db.session import Base


class User(Base):
    """Platform account. Credentials are owned by the identity service; this row carries role and school."""

    __tablename__ = "users"
    __table_args__ = {"schema": "auth"}

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), nullable=False, unique=True)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    # SUPER_ADMIN, SCHOOL_ADMIN, CANTEEN_MANAGER, PARENT
    role = Column(String(50), nullable=False)
    # Set for school staff (admin, canteen manager); parents reach schools through their children
    school_id = Column(UUID(as_uuid=True), ForeignKey("core.schools.id", ondelete="SET NULL"), nullable=True)
    status = Column(String(20), nullable=False, default="ACTIVE")
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    school = relationship("School", foreign_keys=[school_id])
