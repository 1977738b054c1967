"""
DevCamper Backend — Course Request/Response Schemas
=====================================================
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class SkillLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class CourseCreate(BaseModel):
    """Body of POST /api/v1/bootcamps/{bootcamp_id}/courses."""
    title: str = Field(max_length=255)
    description: str = Field(min_length=1)
    weeks: str = Field(min_length=1, max_length=20, description="Course length in weeks")
    tuition: float = Field(ge=0)
    minimum_skill: SkillLevel
    scholarship_available: bool = False

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Please add a course title")
        return v


class CourseUpdate(BaseModel):
    """Body of PUT /api/v1/courses/{id}; only the fields sent are changed."""
    title: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = Field(default=None, min_length=1)
    weeks: Optional[str] = Field(default=None, min_length=1, max_length=20)
    tuition: Optional[float] = Field(default=None, ge=0)
    minimum_skill: Optional[SkillLevel] = None
    scholarship_available: Optional[bool] = None

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Please add a course title")
        return v


class CourseResponse(BaseModel):
    id: uuid.UUID
    title: str
    description: str
    weeks: str
    tuition: float
    minimum_skill: str
    scholarship_available: bool
    created_at: datetime
    bootcamp_id: uuid.UUID

    model_config = {"from_attributes": True}


class BootcampSummary(BaseModel):
    """The parts of a bootcamp embedded in course responses."""
    id: uuid.UUID
    name: str
    description: str

    model_config = {"from_attributes": True}


class CourseDetailResponse(CourseResponse):
    bootcamp: Optional[BootcampSummary] = None


class CourseEnvelope(BaseModel):
    success: bool = True
    data: CourseDetailResponse
