"""
DevCamper Backend — Seeder Tests
==================================
"""

import pytest
from sqlalchemy import func, select

from devcamper.exceptions import ValidationError
from devcamper.models import Bootcamp, Course
from devcamper.seeder import (
    DEFAULT_DATA_DIR,
    build_parser,
    delete_data,
    import_data,
    load_seed_data,
)


async def count(db, model) -> int:
    return (await db.execute(select(func.count()).select_from(model))).scalar_one()


class TestSeeder:

    def test_parser_requires_an_action(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])
        with pytest.raises(SystemExit):
            build_parser().parse_args(["-i", "-d"])
        assert build_parser().parse_args(["-d"]).delete_data is True

    def test_bundled_data_loads(self):
        bootcamps, courses = load_seed_data(DEFAULT_DATA_DIR)
        names = {b["name"] for b in bootcamps}
        assert len(bootcamps) == 4
        assert all(c["bootcamp"] in names for c in courses)

    @pytest.mark.asyncio
    async def test_import_then_delete(self, db_session, fake_geocoder):
        bootcamps, courses = load_seed_data(DEFAULT_DATA_DIR)

        created = await import_data(db_session, bootcamps, courses)
        await db_session.commit()

        assert created == (len(bootcamps), len(courses))
        assert await count(db_session, Bootcamp) == len(bootcamps)
        assert await count(db_session, Course) == len(courses)
        slugs = (await db_session.execute(select(Bootcamp.slug).order_by(Bootcamp.slug))).scalars().all()
        assert "devworks-bootcamp" in slugs

        deleted = await delete_data(db_session)
        await db_session.commit()

        assert deleted == (len(bootcamps), len(courses))
        assert await count(db_session, Bootcamp) == 0
        assert await count(db_session, Course) == 0

    @pytest.mark.asyncio
    async def test_course_with_unknown_bootcamp(self, db_session, fake_geocoder):
        bootcamps, courses = load_seed_data(DEFAULT_DATA_DIR)
        orphan = dict(courses[0], bootcamp="Nonexistent Academy")

        with pytest.raises(ValidationError):
            await import_data(db_session, bootcamps[:1], [orphan])
