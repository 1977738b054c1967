"""
DevCamper Backend — Course Service
====================================

What:  Business rules for courses: listing (all, or one bootcamp's),
       retrieval with the owning bootcamp embedded, create/update/delete.
Who:   Called by the course route handlers and the seeder.

Every course belongs to an existing bootcamp: creating a course for, or
listing the courses of, an unknown bootcamp is a 404.
"""

import logging
from typing import Any, Dict, Mapping, Union
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from devcamper.exceptions import DatabaseError, NotFoundError, ValidationError
from devcamper.models.bootcamp import Bootcamp
from devcamper.models.course import Course
from devcamper.schemas.course import (
    BootcampSummary,
    CourseCreate,
    CourseDetailResponse,
    CourseUpdate,
)
from devcamper.services.bootcamp_service import bootcamp_service
from devcamper.services.query_builder import (
    Eq,
    ListResult,
    PopulateSpec,
    list_records,
    parse_identity,
)

logger = logging.getLogger(__name__)

# Embedded in every listed course under "bootcamp".
BOOTCAMP_POPULATION = PopulateSpec.reference(
    Bootcamp,
    local_field="bootcamp_id",
    fields=["name", "description"],
    as_field="bootcamp",
)


class CourseService:
    """Business logic layer for course operations."""

    async def list_courses(self, db: AsyncSession, params: Mapping[str, Any]) -> ListResult:
        return await list_records(db, Course, params, populate=BOOTCAMP_POPULATION)

    async def list_bootcamp_courses(
        self,
        db: AsyncSession,
        bootcamp_id: Union[str, UUID],
        params: Mapping[str, Any],
    ) -> ListResult:
        """
        The list pipeline restricted to one bootcamp's courses.

        Raises:
            NotFoundError: The bootcamp does not exist (→ 404)
        """
        bootcamp = await bootcamp_service.get_bootcamp(db, bootcamp_id)
        return await list_records(
            db,
            Course,
            params,
            populate=BOOTCAMP_POPULATION,
            base_filters=[Eq("bootcamp_id", bootcamp.id)],
        )

    async def get_course(self, db: AsyncSession, course_id: Union[str, UUID]) -> Course:
        uid = parse_identity("course", course_id)
        try:
            course = await db.get(Course, uid)
        except SQLAlchemyError as e:
            logger.error("Database error fetching course %s: %s", uid, str(e))
            raise DatabaseError(
                message="Could not retrieve the course. Please try again.",
                context={"course_id": str(uid)},
            )
        if course is None:
            raise NotFoundError(resource="course", resource_id=str(course_id))
        return course

    async def get_course_detail(
        self,
        db: AsyncSession,
        course_id: Union[str, UUID],
    ) -> CourseDetailResponse:
        """A course with its bootcamp's id, name and description embedded."""
        course = await self.get_course(db, course_id)
        try:
            row = (
                await db.execute(
                    select(Bootcamp.id, Bootcamp.name, Bootcamp.description).where(
                        Bootcamp.id == course.bootcamp_id
                    )
                )
            ).mappings().one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error embedding bootcamp of course %s: %s", course.id, str(e))
            raise DatabaseError(message="Could not retrieve the course. Please try again.")

        detail = CourseDetailResponse.model_validate(course)
        if row is not None:
            detail.bootcamp = BootcampSummary(**row)
        return detail

    async def add_course(
        self,
        db: AsyncSession,
        bootcamp_id: Union[str, UUID],
        data: CourseCreate,
    ) -> Course:
        """
        Raises:
            NotFoundError: The bootcamp does not exist (→ 404)
        """
        bootcamp = await bootcamp_service.get_bootcamp(db, bootcamp_id)

        course = Course(bootcamp_id=bootcamp.id, **data.model_dump(mode="json"))
        db.add(course)
        await self._flush(db, "create")
        logger.info("Course created: %s for bootcamp %s", course.id, bootcamp.id)
        return course

    async def update_course(
        self,
        db: AsyncSession,
        course_id: Union[str, UUID],
        data: CourseUpdate,
    ) -> Course:
        course = await self.get_course(db, course_id)

        changes: Dict[str, Any] = data.model_dump(exclude_unset=True, mode="json")
        for field, value in changes.items():
            if value is None:
                raise ValidationError(message=f"Field '{field}' cannot be empty", field=field)
        for field, value in changes.items():
            setattr(course, field, value)

        await self._flush(db, "update")
        logger.info("Course updated: %s (fields=%s)", course.id, sorted(changes))
        return course

    async def delete_course(self, db: AsyncSession, course_id: Union[str, UUID]) -> None:
        course = await self.get_course(db, course_id)
        await db.delete(course)
        await self._flush(db, "delete")
        logger.info("Course deleted: %s", course.id)

    async def _flush(self, db: AsyncSession, action: str) -> None:
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error on course %s: %s", action, str(e), exc_info=True)
            raise DatabaseError(
                message=f"Could not {action} the course. Please try again.",
                context={"error_type": type(e).__name__},
            )


# ── Singleton Instance ────────────────────────────────────────────────────
course_service = CourseService()
