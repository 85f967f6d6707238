"""
Student registry: the school's official student list, imported by the school admin.
All rows of a school are replaced on every import. Rows are read-only candidates for
parent enrollment; they never become accounts themselves.
"""

import uuid
from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.db.session import Base


class StudentRegistryRow(Base):
    __tablename__ = "student_registry"
    __table_args__ = (
        # Code + birth date tier lookup
        Index("ix_registry_school_code_birth", "school_id", "norm_student_code", "norm_birth_date"),
        Index(
            "ix_registry_school_identity",
            "school_id",
            "norm_first_name",
            "norm_last_name",
            "norm_student_code",
            "norm_birth_date",
            "norm_class_name",
        ),
        {"schema": "school"},
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_id = Column(UUID(as_uuid=True), ForeignKey("core.schools.id", ondelete="CASCADE"), nullable=False, index=True)

    # As typed/extracted, for display
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    student_code = Column(String(100), nullable=False)
    birth_date = Column(Date, nullable=False)
    class_name = Column(String(100), nullable=False)

    # Canonical forms used for matching
    norm_first_name = Column(String(255), nullable=False)
    norm_last_name = Column(String(255), nullable=False)
    norm_student_code = Column(String(100), nullable=False)
    norm_birth_date = Column(String(10), nullable=False)  # YYYY-MM-DD
    norm_class_name = Column(String(100), nullable=False)

    source_file_name = Column(String(255), nullable=True)
    imported_by = Column(UUID(as_uuid=True), ForeignKey("auth.users.id", ondelete="SET NULL"), nullable=True)
    imported_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    school = relationship("School", back_populates="registry_rows")
