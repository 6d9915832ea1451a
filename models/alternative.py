from __future__ import annotations
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from extensions import db
from .types import SubjectSet, SubjectSetType


class SubjectAlternative(db.Model):
    """A named group of mutually exclusive subjects within one class."""
    __tablename__ = "subject_alternatives"

    id: Mapped[int] = mapped_column(primary_key=True)
    class_id: Mapped[int] = mapped_column(ForeignKey("classes.id"), nullable=False, index=True)
    group_name: Mapped[str] = mapped_column(String(100), nullable=False)
    subject_ids: Mapped[SubjectSet] = mapped_column(SubjectSetType, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    school_class = relationship("SchoolClass")

    __table_args__ = (
        UniqueConstraint("class_id", "group_name", name="uq_subject_alternatives_class_name"),
    )

    @property
    def alt_id(self) -> int:
        return self.id

    def __repr__(self):
        return f"<SubjectAlternative {self.group_name}>"


class SpecialClass(db.Model):
    """Which subject a student takes to satisfy one alternative group.

    At most one row per (student, group); moving a student rewrites subject_id
    on that row.
    """
    __tablename__ = "special_class"

    id: Mapped[int] = mapped_column(primary_key=True)
    student_id: Mapped[int] = mapped_column(ForeignKey("students.id"), nullable=False)
    group_id: Mapped[int] = mapped_column(ForeignKey("subject_alternatives.id"), nullable=False)
    subject_id: Mapped[int] = mapped_column(ForeignKey("subjects.id"), nullable=False)
    class_id: Mapped[int] = mapped_column(ForeignKey("classes.id"), nullable=False)
    assigned_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    student = relationship("Student")
    subject = relationship("Subject")

    __table_args__ = (
        UniqueConstraint("student_id", "group_id", name="uq_special_class_student_group"),
        Index("ix_special_class_group_subject", "group_id", "subject_id"),
    )
