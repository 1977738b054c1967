"""
DevCamper Backend — Course Route Handlers
===========================================

What:  Course endpoints, including the ones nested under a bootcamp
       (GET/POST /bootcamps/{bootcamp_id}/courses).
"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from devcamper.config import settings
from devcamper.database import get_db_session
from devcamper.schemas.common import DeleteResponse, ErrorResponse, ListResponse
from devcamper.schemas.course import (
    CourseCreate,
    CourseDetailResponse,
    CourseEnvelope,
    CourseUpdate,
)
from devcamper.services.course_service import course_service
from devcamper.services.query_builder import parse_query_string

router = APIRouter(prefix=settings.api_prefix, tags=["Courses"])

_ERRORS = {
    400: {"description": "Invalid input", "model": ErrorResponse},
    404: {"description": "Course or bootcamp not found", "model": ErrorResponse},
    500: {"description": "Server error", "model": ErrorResponse},
}


@router.get(
    "/courses",
    response_model=ListResponse,
    responses={400: _ERRORS[400], 500: _ERRORS[500]},
    summary="List courses",
    description="Same query grammar as GET /bootcamps. Each course includes its bootcamp's name and description.",
)
async def list_courses(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> ListResponse:
    params = parse_query_string(request.query_params.multi_items())
    result = await course_service.list_courses(db, params)
    return ListResponse.from_result(result)


@router.get(
    "/bootcamps/{bootcamp_id}/courses",
    response_model=ListResponse,
    responses=_ERRORS,
    summary="List the courses of one bootcamp",
)
async def list_bootcamp_courses(
    bootcamp_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> ListResponse:
    params = parse_query_string(request.query_params.multi_items())
    result = await course_service.list_bootcamp_courses(db, bootcamp_id, params)
    return ListResponse.from_result(result)


@router.post(
    "/bootcamps/{bootcamp_id}/courses",
    response_model=CourseEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses=_ERRORS,
    summary="Add a course to a bootcamp",
)
async def add_course(
    bootcamp_id: str,
    body: CourseCreate,
    db: AsyncSession = Depends(get_db_session),
) -> CourseEnvelope:
    course = await course_service.add_course(db, bootcamp_id, body)
    return CourseEnvelope(data=CourseDetailResponse.model_validate(course))


@router.get(
    "/courses/{course_id}",
    response_model=CourseEnvelope,
    responses={404: _ERRORS[404], 500: _ERRORS[500]},
    summary="Get a single course with its bootcamp",
)
async def get_course(
    course_id: str,
    db: AsyncSession = Depends(get_db_session),
) -> CourseEnvelope:
    detail = await course_service.get_course_detail(db, course_id)
    return CourseEnvelope(data=detail)


@router.put(
    "/courses/{course_id}",
    response_model=CourseEnvelope,
    responses=_ERRORS,
    summary="Update a course",
)
async def update_course(
    course_id: str,
    body: CourseUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> CourseEnvelope:
    course = await course_service.update_course(db, course_id, body)
    return CourseEnvelope(data=CourseDetailResponse.model_validate(course))


@router.delete(
    "/courses/{course_id}",
    response_model=DeleteResponse,
    responses={404: _ERRORS[404], 500: _ERRORS[500]},
    summary="Delete a course",
)
async def delete_course(
    course_id: str,
    db: AsyncSession = Depends(get_db_session),
) -> DeleteResponse:
    await course_service.delete_course(db, course_id)
    return DeleteResponse()
