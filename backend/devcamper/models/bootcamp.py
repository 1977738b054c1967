"""
DevCamper Backend — Bootcamp SQLAlchemy Model
===============================================

What:  ORM model for the `bootcamps` table.
How:   The slug is derived from the name whenever the name is assigned.
       Geocoding is async and therefore happens in BootcampService, which
       fills `location`, `latitude` and `longitude` before the flush.

Table Design:
    - location: JSON point document (type, coordinates [lng, lat] and the
      formatted address parts) returned to clients as-is
    - latitude / longitude: plain float columns copied from the point so
      radius searches can pre-filter with an indexed bounding box
    - careers: JSON list of career names (validated by the API schema)
    - the submitted street address is not stored; only its geocoded form is
"""

import re
import unicodedata
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Boolean, DateTime, Float, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, validates

from devcamper.database import Base


def slugify(value: str) -> str:
    """
    URL-friendly, lowercase version of a name.

    "ModernTech Bootcamp!" -> "moderntech-bootcamp"
    """
    normalized = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    return re.sub(r"[^a-z0-9]+", "-", normalized.lower()).strip("-")


class Bootcamp(Base):
    """A coding bootcamp offering one or more courses."""

    __tablename__ = "bootcamps"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    slug: Mapped[str] = mapped_column(String(80), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    website: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # ── Geocoded location ─────────────────────────────────────────────────
    location: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    careers: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    average_rating: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    average_cost: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    photo: Mapped[str] = mapped_column(String(255), nullable=False, default="no-photo.jpg")
    housing: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    job_assistance: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    job_guarantee: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    accept_gi: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("idx_bootcamps_created_at", created_at.desc()),
        Index("idx_bootcamps_lat_lng", "latitude", "longitude"),
    )

    @validates("name")
    def _derive_slug(self, key: str, value: str) -> str:
        self.slug = slugify(value)
        return value

    def set_location(self, point: Dict[str, Any]) -> None:
        """Store a geocoded point document and mirror its coordinates."""
        longitude, latitude = point["coordinates"]
        self.location = point
        self.longitude = longitude
        self.latitude = latitude

    def __repr__(self) -> str:
        return f"<Bootcamp(id={self.id}, name='{self.name}')>"
