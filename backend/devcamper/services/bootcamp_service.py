"""
DevCamper Backend — Bootcamp Service
======================================

What:  Business rules for bootcamps: listing, CRUD, cascade delete of
       courses and radius search around a zipcode.
Who:   Called by the /api/v1/bootcamps route handlers and the seeder.

Save Flow (create / update with a new address):
    ┌──────────┐    ┌──────────────┐    ┌───────────────┐    ┌──────────┐
    │  Body    │───▶│  Geocoder    │───▶│  Bootcamp     │───▶│  Flush   │
    │ (schema) │    │  (address)   │    │  slug+location│    │  (DB)    │
    └──────────┘    └──────────────┘    └───────────────┘    └──────────┘

    A unique-name violation at flush time becomes DuplicateError (400).
    The commit itself happens in get_db_session when the handler returns.

Radius Search:
    1. Geocode the zipcode
    2. Bounding box on the latitude/longitude columns (indexed pre-filter)
    3. Exact great-circle distance (haversine, earth radius 3963 miles)
       on the candidates; results ordered nearest first
"""

import logging
import math
from typing import Any, Dict, List, Mapping, Union
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from devcamper.exceptions import DatabaseError, DuplicateError, NotFoundError, ValidationError
from devcamper.models.bootcamp import Bootcamp
from devcamper.models.course import Course
from devcamper.schemas.bootcamp import BootcampCreate, BootcampUpdate
from devcamper.services.geocoder_service import geocoder_service
from devcamper.services.query_builder import (
    ListResult,
    PopulateSpec,
    list_records,
    parse_identity,
)

logger = logging.getLogger(__name__)

EARTH_RADIUS_MILES = 3963

# Embedded in every listed bootcamp under "courses".
COURSES_POPULATION = PopulateSpec.reverse(
    Course,
    foreign_field="bootcamp_id",
    fields=["title", "weeks", "tuition"],
    as_field="courses",
)


def haversine_miles(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two points, in miles."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_MILES * math.asin(min(1.0, math.sqrt(a)))


class BootcampService:
    """
    Business logic layer for bootcamp operations.

    Error Handling Strategy:
        Application exceptions propagate unchanged. IntegrityError on flush
        becomes DuplicateError; any other SQLAlchemyError is logged and
        wrapped in DatabaseError so no driver detail reaches the client.
    """

    async def list_bootcamps(
        self,
        db: AsyncSession,
        params: Mapping[str, Any],
    ) -> ListResult:
        """
        Filtered, projected, sorted and paginated bootcamps, each with its
        courses (id, title, weeks, tuition) embedded.
        """
        return await list_records(db, Bootcamp, params, populate=COURSES_POPULATION)

    async def get_bootcamp(self, db: AsyncSession, bootcamp_id: Union[str, UUID]) -> Bootcamp:
        """
        Raises:
            NotFoundError: No bootcamp has this id, or the id is not a UUID (→ 404)
            DatabaseError: Query execution failed (→ 500)
        """
        uid = parse_identity("bootcamp", bootcamp_id)
        try:
            bootcamp = await db.get(Bootcamp, uid)
        except SQLAlchemyError as e:
            logger.error("Database error fetching bootcamp %s: %s", uid, str(e))
            raise DatabaseError(
                message="Could not retrieve the bootcamp. Please try again.",
                context={"bootcamp_id": str(uid)},
            )
        if bootcamp is None:
            raise NotFoundError(resource="bootcamp", resource_id=str(bootcamp_id))
        return bootcamp

    async def create_bootcamp(self, db: AsyncSession, data: BootcampCreate) -> Bootcamp:
        """
        Geocode the address, derive the slug and insert the bootcamp.

        Raises:
            ValidationError: The address cannot be geocoded (→ 400)
            DuplicateError: A bootcamp with this name exists (→ 400)
            GeocoderError / CircuitBreakerOpenError: Provider unavailable (→ 503)
        """
        result = await geocoder_service.geocode(data.address)

        bootcamp = Bootcamp(**data.model_dump(exclude={"address"}, mode="json"))
        bootcamp.set_location(result.to_point())
        db.add(bootcamp)

        await self._flush(db, "create")
        logger.info("Bootcamp created: %s (%s)", bootcamp.id, bootcamp.slug)
        return bootcamp

    async def update_bootcamp(
        self,
        db: AsyncSession,
        bootcamp_id: Union[str, UUID],
        data: BootcampUpdate,
    ) -> Bootcamp:
        """
        Apply the fields present in the body. A new address is geocoded
        again; a new name also changes the slug.
        """
        bootcamp = await self.get_bootcamp(db, bootcamp_id)

        changes: Dict[str, Any] = data.model_dump(exclude_unset=True, mode="json")
        address = changes.pop("address", None)
        columns = Bootcamp.__table__.c
        for field, value in changes.items():
            if value is None and not columns[field].nullable:
                raise ValidationError(message=f"Field '{field}' cannot be empty", field=field)

        if address:
            result = await geocoder_service.geocode(address)
            bootcamp.set_location(result.to_point())

        for field, value in changes.items():
            setattr(bootcamp, field, value)

        await self._flush(db, "update")
        logger.info("Bootcamp updated: %s (fields=%s)", bootcamp.id, sorted(changes))
        return bootcamp

    async def delete_bootcamp(self, db: AsyncSession, bootcamp_id: Union[str, UUID]) -> None:
        """Delete a bootcamp together with all of its courses."""
        bootcamp = await self.get_bootcamp(db, bootcamp_id)

        logger.info("Courses being removed from bootcamp %s", bootcamp.id)
        try:
            await db.execute(delete(Course).where(Course.bootcamp_id == bootcamp.id))
            await db.delete(bootcamp)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error deleting bootcamp %s: %s", bootcamp.id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not delete the bootcamp. Please try again.",
                context={"bootcamp_id": str(bootcamp.id)},
            )
        logger.info("Bootcamp deleted: %s", bootcamp.id)

    async def get_bootcamps_in_radius(
        self,
        db: AsyncSession,
        zipcode: str,
        distance: float,
    ) -> List[Bootcamp]:
        """
        Bootcamps within `distance` miles of a zipcode, nearest first.

        Raises:
            ValidationError: Non-positive distance or unknown zipcode (→ 400)
        """
        if distance <= 0:
            raise ValidationError(message="Distance must be a positive number of miles", field="distance")

        center = await geocoder_service.geocode(zipcode)
        lat, lng = center.latitude, center.longitude

        # Angular radius of the search circle, in degrees of latitude.
        lat_delta = math.degrees(distance / EARTH_RADIUS_MILES)
        stmt = select(Bootcamp).where(
            Bootcamp.latitude.is_not(None),
            Bootcamp.latitude.between(lat - lat_delta, lat + lat_delta),
        )

        cos_lat = math.cos(math.radians(lat))
        if cos_lat > 1e-6:
            lng_delta = lat_delta / cos_lat
            # Boxes crossing the antimeridian or covering the globe skip the longitude bound.
            if lng_delta < 180 and -180 <= lng - lng_delta and lng + lng_delta <= 180:
                stmt = stmt.where(Bootcamp.longitude.between(lng - lng_delta, lng + lng_delta))

        try:
            candidates = (await db.execute(stmt)).scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error in radius search: %s", str(e), exc_info=True)
            raise DatabaseError(message="Could not search bootcamps. Please try again.")

        ranked = []
        for bootcamp in candidates:
            miles = haversine_miles(lat, lng, bootcamp.latitude, bootcamp.longitude)
            if miles <= distance:
                ranked.append((miles, bootcamp))
        ranked.sort(key=lambda pair: pair[0])

        logger.info(
            "Radius search %s/%s mi: %d candidates, %d within range",
            zipcode,
            distance,
            len(candidates),
            len(ranked),
        )
        return [bootcamp for _, bootcamp in ranked]

    async def _flush(self, db: AsyncSession, action: str) -> None:
        try:
            await db.flush()
        except IntegrityError as e:
            logger.info("Bootcamp %s rejected by a unique constraint: %s", action, e.orig)
            raise DuplicateError(context={"action": action})
        except SQLAlchemyError as e:
            logger.error("Database error on bootcamp %s: %s", action, str(e), exc_info=True)
            raise DatabaseError(
                message=f"Could not {action} the bootcamp. Please try again.",
                context={"error_type": type(e).__name__},
            )


# ── Singleton Instance ────────────────────────────────────────────────────
bootcamp_service = BootcampService()
