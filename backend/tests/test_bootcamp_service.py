"""
DevCamper Backend — Bootcamp Service Tests
============================================

What:  Tests for BootcampService against in-memory SQLite, with the
       geocoder replaced by FakeGeocoder (see conftest.py).

What we test:
    ✅ Create derives the slug and stores the geocoded location
    ✅ Unique names, unknown addresses and malformed ids map to app errors
    ✅ Update re-geocodes a new address and re-derives the slug
    ✅ Delete removes the bootcamp's courses
    ✅ Radius search keeps only bootcamps within range, nearest first
"""

import uuid
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from devcamper.exceptions import DatabaseError, DuplicateError, NotFoundError, ValidationError
from devcamper.models import Bootcamp, Course
from devcamper.schemas.bootcamp import BootcampCreate, BootcampUpdate
from devcamper.services.bootcamp_service import BootcampService, haversine_miles


def bootcamp_body(**overrides) -> BootcampCreate:
    fields = {
        "name": "Devworks Bootcamp",
        "description": "Full stack JavaScript bootcamp in Boston",
        "website": "https://devworks.com",
        "email": "enroll@devworks.com",
        "address": "233 Bay State Rd Boston MA 02215",
        "careers": ["Web Development", "UI/UX"],
        "housing": True,
    }
    fields.update(overrides)
    return BootcampCreate(**fields)


class TestCreateBootcamp:

    def setup_method(self):
        self.service = BootcampService()

    @pytest.mark.asyncio
    async def test_create_geocodes_and_slugs(self, db_session, fake_geocoder):
        bootcamp = await self.service.create_bootcamp(db_session, bootcamp_body())

        assert isinstance(bootcamp.id, uuid.UUID)
        assert bootcamp.slug == "devworks-bootcamp"
        assert bootcamp.careers == ["Web Development", "UI/UX"]
        assert bootcamp.latitude == pytest.approx(42.350846)
        assert bootcamp.longitude == pytest.approx(-71.10343)
        assert bootcamp.location["coordinates"] == [-71.10343, 42.350846]
        assert bootcamp.location["city"] == "Boston"
        assert bootcamp.photo == "no-photo.jpg"
        assert not hasattr(bootcamp, "address")
        assert fake_geocoder.calls == ["233 Bay State Rd Boston MA 02215"]

    @pytest.mark.asyncio
    async def test_duplicate_name(self, db_session, fake_geocoder):
        await self.service.create_bootcamp(db_session, bootcamp_body())
        await db_session.commit()

        with pytest.raises(DuplicateError) as exc_info:
            await self.service.create_bootcamp(db_session, bootcamp_body())
        assert exc_info.value.message == "Duplicate field value entered"

    @pytest.mark.asyncio
    async def test_unknown_address_creates_nothing(self, db_session, fake_geocoder):
        with pytest.raises(ValidationError):
            await self.service.create_bootcamp(db_session, bootcamp_body(address="1 Nowhere Lane"))

        count = (await db_session.execute(select(func.count()).select_from(Bootcamp))).scalar_one()
        assert count == 0


class TestGetBootcamp:

    def setup_method(self):
        self.service = BootcampService()

    @pytest.mark.asyncio
    async def test_found(self, db_session, seed_bootcamps):
        (seeded,) = await seed_bootcamps(1)
        bootcamp = await self.service.get_bootcamp(db_session, str(seeded.id))
        assert bootcamp.name == "Bootcamp 00"

    @pytest.mark.asyncio
    async def test_missing_id(self, db_session):
        missing = uuid.uuid4()
        with pytest.raises(NotFoundError) as exc_info:
            await self.service.get_bootcamp(db_session, str(missing))
        assert exc_info.value.message == f"Bootcamp not found with id of {missing}"

    @pytest.mark.asyncio
    async def test_malformed_id_is_not_found(self, mock_db_session):
        with pytest.raises(NotFoundError):
            await self.service.get_bootcamp(mock_db_session, "not-an-id")
        mock_db_session.get.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_database_failure_is_wrapped(self, mock_db_session):
        mock_db_session.get = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("gone")))
        with pytest.raises(DatabaseError):
            await self.service.get_bootcamp(mock_db_session, str(uuid.uuid4()))


class TestUpdateAndDelete:

    def setup_method(self):
        self.service = BootcampService()

    @pytest.mark.asyncio
    async def test_update_name_and_address(self, db_session, fake_geocoder):
        created = await self.service.create_bootcamp(db_session, bootcamp_body())

        updated = await self.service.update_bootcamp(
            db_session,
            created.id,
            BootcampUpdate(name="Devworks Lowell", address="220 Pawtucket St, Lowell, MA 01854"),
        )

        assert updated.slug == "devworks-lowell"
        assert updated.location["city"] == "Lowell"
        assert updated.latitude == pytest.approx(42.6495)
        assert updated.description == "Full stack JavaScript bootcamp in Boston"

    @pytest.mark.asyncio
    async def test_update_without_address_skips_geocoder(self, db_session, fake_geocoder):
        created = await self.service.create_bootcamp(db_session, bootcamp_body())
        fake_geocoder.calls.clear()

        updated = await self.service.update_bootcamp(
            db_session, created.id, BootcampUpdate(housing=False, average_cost=9000)
        )

        assert updated.housing is False
        assert updated.average_cost == 9000
        assert fake_geocoder.calls == []

    @pytest.mark.asyncio
    async def test_update_cannot_clear_required_field(self, db_session, fake_geocoder):
        created = await self.service.create_bootcamp(db_session, bootcamp_body())
        with pytest.raises(ValidationError):
            await self.service.update_bootcamp(db_session, created.id, BootcampUpdate(description=None))

    @pytest.mark.asyncio
    async def test_delete_cascades_to_courses(self, db_session, seed_bootcamps, seed_courses):
        doomed, kept = await seed_bootcamps(2)
        await seed_courses(doomed, ["A", "B"])
        await seed_courses(kept, ["C"])

        await self.service.delete_bootcamp(db_session, doomed.id)
        await db_session.commit()

        titles = (await db_session.execute(select(Course.title))).scalars().all()
        assert titles == ["C"]
        assert await db_session.get(Bootcamp, doomed.id) is None


class TestRadiusSearch:

    def setup_method(self):
        self.service = BootcampService()

    def test_haversine_boston_to_new_york(self):
        assert 180 < haversine_miles(42.3601, -71.0589, 40.7128, -74.0060) < 200

    @pytest.mark.asyncio
    async def test_within_radius_nearest_first(self, db_session, fake_geocoder):
        await self.service.create_bootcamp(
            db_session, bootcamp_body(name="Lowell Camp", address="220 Pawtucket St, Lowell, MA 01854")
        )
        await self.service.create_bootcamp(db_session, bootcamp_body(name="Boston Camp"))
        await self.service.create_bootcamp(
            db_session,
            bootcamp_body(name="Vermont Camp", address="85 South Prospect Street Burlington VT 05405"),
        )
        await db_session.commit()

        results = await self.service.get_bootcamps_in_radius(db_session, "02215", 30)

        assert [b.name for b in results] == ["Boston Camp", "Lowell Camp"]

    @pytest.mark.asyncio
    async def test_large_radius_includes_everything(self, db_session, fake_geocoder):
        await self.service.create_bootcamp(db_session, bootcamp_body(name="Boston Camp"))
        await self.service.create_bootcamp(
            db_session,
            bootcamp_body(name="Vermont Camp", address="85 South Prospect Street Burlington VT 05405"),
        )

        results = await self.service.get_bootcamps_in_radius(db_session, "10001", 500)

        assert [b.name for b in results] == ["Boston Camp", "Vermont Camp"]

    @pytest.mark.asyncio
    async def test_non_positive_distance(self, db_session, fake_geocoder):
        with pytest.raises(ValidationError):
            await self.service.get_bootcamps_in_radius(db_session, "02215", 0)
        assert fake_geocoder.calls == []
