"""
DevCamper Backend — Course SQLAlchemy Model
=============================================

What:  ORM model for the `courses` table. Every course belongs to one
       bootcamp through `bootcamp_id`.
How:   No ORM relationship is declared: listing endpoints embed the related
       bootcamp (or a bootcamp's courses) through the list pipeline's
       population step, and deleting a bootcamp removes its courses in
       BootcampService with a single DELETE statement.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from devcamper.database import Base


class Course(Base):
    """A course taught at a bootcamp."""

    __tablename__ = "courses"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    weeks: Mapped[str] = mapped_column(String(20), nullable=False)
    tuition: Mapped[float] = mapped_column(Float, nullable=False)

    # beginner | intermediate | advanced
    minimum_skill: Mapped[str] = mapped_column(String(20), nullable=False)
    scholarship_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    bootcamp_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("bootcamps.id", ondelete="CASCADE"),
        nullable=False,
    )

    __table_args__ = (
        Index("idx_courses_bootcamp_id", "bootcamp_id"),
        Index("idx_courses_created_at", created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<Course(id={self.id}, title='{self.title}', bootcamp_id={self.bootcamp_id})>"
