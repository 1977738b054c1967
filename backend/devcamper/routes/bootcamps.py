"""
DevCamper Backend — Bootcamp Route Handlers
=============================================

What:  CRUD and search endpoints for bootcamps.
How:   The list endpoint hands the raw query string to the list pipeline
       (see services/query_builder.py for the grammar); everything else
       delegates to BootcampService.
"""

import logging

from fastapi import APIRouter, Depends, Path, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from devcamper.config import settings
from devcamper.database import get_db_session
from devcamper.schemas.bootcamp import (
    BootcampCreate,
    BootcampEnvelope,
    BootcampRadiusResponse,
    BootcampResponse,
    BootcampUpdate,
)
from devcamper.schemas.common import DeleteResponse, ErrorResponse, ListResponse
from devcamper.services.bootcamp_service import bootcamp_service
from devcamper.services.query_builder import parse_query_string

logger = logging.getLogger(__name__)

router = APIRouter(prefix=f"{settings.api_prefix}/bootcamps", tags=["Bootcamps"])

_ERRORS = {
    400: {"description": "Invalid input", "model": ErrorResponse},
    404: {"description": "Bootcamp not found", "model": ErrorResponse},
    500: {"description": "Server error", "model": ErrorResponse},
}


@router.get(
    "",
    response_model=ListResponse,
    responses={400: _ERRORS[400], 500: _ERRORS[500]},
    summary="List bootcamps",
    description=(
        "Filter with field=value, field[gt|gte|lt|lte]=value or field[in]=a,b; "
        "project with select=a,b; order with sort=-a,b; paginate with page and limit. "
        "Each bootcamp includes its courses."
    ),
)
async def list_bootcamps(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> ListResponse:
    params = parse_query_string(request.query_params.multi_items())
    result = await bootcamp_service.list_bootcamps(db, params)
    return ListResponse.from_result(result)


@router.get(
    "/radius/{zipcode}/{distance}",
    response_model=BootcampRadiusResponse,
    responses={400: _ERRORS[400], 503: {"description": "Geocoder unavailable", "model": ErrorResponse}},
    summary="Bootcamps within a distance (miles) of a zipcode",
)
async def get_bootcamps_in_radius(
    zipcode: str = Path(min_length=1, max_length=20),
    distance: float = Path(gt=0, description="Radius in miles"),
    db: AsyncSession = Depends(get_db_session),
) -> BootcampRadiusResponse:
    bootcamps = await bootcamp_service.get_bootcamps_in_radius(db, zipcode, distance)
    return BootcampRadiusResponse(
        count=len(bootcamps),
        data=[BootcampResponse.model_validate(b) for b in bootcamps],
    )


@router.get(
    "/{bootcamp_id}",
    response_model=BootcampEnvelope,
    responses={404: _ERRORS[404], 500: _ERRORS[500]},
    summary="Get a single bootcamp",
)
async def get_bootcamp(
    bootcamp_id: str,
    db: AsyncSession = Depends(get_db_session),
) -> BootcampEnvelope:
    bootcamp = await bootcamp_service.get_bootcamp(db, bootcamp_id)
    return BootcampEnvelope(data=BootcampResponse.model_validate(bootcamp))


@router.post(
    "",
    response_model=BootcampEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses={**_ERRORS, 503: {"description": "Geocoder unavailable", "model": ErrorResponse}},
    summary="Create a bootcamp",
    description="The address is geocoded into `location`; the slug is derived from the name.",
)
async def create_bootcamp(
    body: BootcampCreate,
    db: AsyncSession = Depends(get_db_session),
) -> BootcampEnvelope:
    bootcamp = await bootcamp_service.create_bootcamp(db, body)
    return BootcampEnvelope(data=BootcampResponse.model_validate(bootcamp))


@router.put(
    "/{bootcamp_id}",
    response_model=BootcampEnvelope,
    responses=_ERRORS,
    summary="Update a bootcamp",
)
async def update_bootcamp(
    bootcamp_id: str,
    body: BootcampUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> BootcampEnvelope:
    bootcamp = await bootcamp_service.update_bootcamp(db, bootcamp_id, body)
    return BootcampEnvelope(data=BootcampResponse.model_validate(bootcamp))


@router.delete(
    "/{bootcamp_id}",
    response_model=DeleteResponse,
    responses={404: _ERRORS[404], 500: _ERRORS[500]},
    summary="Delete a bootcamp and its courses",
)
async def delete_bootcamp(
    bootcamp_id: str,
    db: AsyncSession = Depends(get_db_session),
) -> DeleteResponse:
    await bootcamp_service.delete_bootcamp(db, bootcamp_id)
    return DeleteResponse()
