"""
DevCamper Backend — Bootcamp Request/Response Schemas
=======================================================

What:  Input validation for bootcamp create/update and the single-record
       response envelope.
How:   Field limits and patterns mirror the database columns; FastAPI turns
       violations into a 400 listing every message (see main.py).
"""

import re
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

WEBSITE_PATTERN = re.compile(
    r"https?://(www\.)?[-a-zA-Z0-9@:%._+~#=]{1,256}\.[a-zA-Z0-9()]{1,6}\b"
    r"([-a-zA-Z0-9()@:%_+.~#?&/=]*)"
)
EMAIL_PATTERN = re.compile(r"^\w+([.-]?\w+)*@\w+([.-]?\w+)*(\.\w{2,3})+$")


class Career(str, Enum):
    WEB_DEVELOPMENT = "Web Development"
    MOBILE_DEVELOPMENT = "Mobile Development"
    UI_UX = "UI/UX"
    DATA_SCIENCE = "Data Science"
    BUSINESS = "Business"
    OTHER = "Other"


class _BootcampValidators(BaseModel):
    """Checks shared by the create and update bodies."""

    @field_validator("name", check_fields=False)
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Please add a name")
        if len(v) > 50:
            raise ValueError("Name can not be more than 50 characters")
        return v

    @field_validator("website", check_fields=False)
    @classmethod
    def validate_website(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not WEBSITE_PATTERN.match(v):
            raise ValueError("Please use a valid URL with HTTP or HTTPS")
        return v

    @field_validator("email", check_fields=False)
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not EMAIL_PATTERN.match(v):
            raise ValueError("Please add a valid email")
        return v


class BootcampCreate(_BootcampValidators):
    """
    Body of POST /api/v1/bootcamps.

    `address` is geocoded into `location` and is not stored.
    """
    name: str = Field(description="Unique bootcamp name (max 50 characters)")
    description: str = Field(min_length=1, max_length=500)
    website: Optional[str] = None
    phone: Optional[str] = Field(default=None, max_length=20)
    email: Optional[str] = None
    address: str = Field(min_length=1, description="Street address to geocode")
    careers: List[Career] = Field(min_length=1)
    average_rating: Optional[float] = Field(default=None, ge=1, le=10)
    average_cost: Optional[float] = Field(default=None, ge=0)
    photo: str = Field(default="no-photo.jpg", max_length=255)
    housing: bool = False
    job_assistance: bool = False
    job_guarantee: bool = False
    accept_gi: bool = False


class BootcampUpdate(_BootcampValidators):
    """
    Body of PUT /api/v1/bootcamps/{id}. Only the fields sent are changed;
    a new `address` is geocoded again.
    """
    name: Optional[str] = None
    description: Optional[str] = Field(default=None, min_length=1, max_length=500)
    website: Optional[str] = None
    phone: Optional[str] = Field(default=None, max_length=20)
    email: Optional[str] = None
    address: Optional[str] = Field(default=None, min_length=1)
    careers: Optional[List[Career]] = Field(default=None, min_length=1)
    average_rating: Optional[float] = Field(default=None, ge=1, le=10)
    average_cost: Optional[float] = Field(default=None, ge=0)
    photo: Optional[str] = Field(default=None, max_length=255)
    housing: Optional[bool] = None
    job_assistance: Optional[bool] = None
    job_guarantee: Optional[bool] = None
    accept_gi: Optional[bool] = None


class BootcampResponse(BaseModel):
    id: uuid.UUID
    name: str
    slug: str
    description: str
    website: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    location: Optional[Dict[str, Any]] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    careers: List[str]
    average_rating: Optional[float] = None
    average_cost: Optional[float] = None
    photo: str
    housing: bool
    job_assistance: bool
    job_guarantee: bool
    accept_gi: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class BootcampEnvelope(BaseModel):
    success: bool = True
    data: BootcampResponse


class BootcampRadiusResponse(BaseModel):
    """Bootcamps within a distance of a zipcode, nearest first."""
    success: bool = True
    count: int
    data: List[BootcampResponse]
