"""
Enrolled child: created only when a parent's submission matches a registry row.
Identity fields are copied from the registry row. (school_id, student_code) is unique:
a registry student can be claimed by one parent only.
"""

import uuid
from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.core.enums import ChildStatus
from app.db.session import Base


class Child(Base):
    __tablename__ = "children"
    __table_args__ = (
        UniqueConstraint("school_id", "student_code", name="uq_child_school_student_code"),
        {"schema": "school"},
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    birth_date = Column(Date, nullable=False)
    grade = Column(String(100), nullable=False)
    school_id = Column(UUID(as_uuid=True), ForeignKey("core.schools.id", ondelete="CASCADE"), nullable=False, index=True)
    parent_id = Column(UUID(as_uuid=True), ForeignKey("auth.users.id", ondelete="CASCADE"), nullable=False, index=True)
    student_code = Column(String(100), nullable=False)
    status = Column(String(20), nullable=False, default=ChildStatus.PENDING.value)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    school = relationship("School", foreign_keys=[school_id])
    parent = relationship("User", foreign_keys=[parent_id])
