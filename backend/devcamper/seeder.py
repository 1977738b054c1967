"""
DevCamper Backend — Database Seeder
=====================================

What:  Imports the sample bootcamps and courses, or deletes every course
       and bootcamp.

Usage:
    devcamper-seed -i                      import devcamper/_data/*.json
    devcamper-seed -i --data-dir ./seed    import from another directory
    devcamper-seed -d                      delete all courses and bootcamps

Imported bootcamps go through BootcampService, so each address is geocoded
(GEOCODER_API_KEY must be set) and each slug derived, exactly as for
POST /api/v1/bootcamps. Courses name their bootcamp in a "bootcamp" key.
Everything is written in one transaction: a failure imports nothing.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError as SchemaValidationError
from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from devcamper.database import async_session_factory, create_tables, dispose_engine
from devcamper.exceptions import DevCamperError, ValidationError
from devcamper.models.bootcamp import Bootcamp
from devcamper.models.course import Course
from devcamper.schemas.bootcamp import BootcampCreate
from devcamper.schemas.course import CourseCreate
from devcamper.services.bootcamp_service import bootcamp_service
from devcamper.services.course_service import course_service

logger = logging.getLogger("devcamper.seeder")

DEFAULT_DATA_DIR = Path(__file__).parent / "_data"

SeedData = Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]


def load_seed_data(data_dir: Path) -> SeedData:
    """Read bootcamps.json and courses.json from `data_dir`."""
    with open(data_dir / "bootcamps.json", encoding="utf-8") as f:
        bootcamps = json.load(f)
    with open(data_dir / "courses.json", encoding="utf-8") as f:
        courses = json.load(f)
    return bootcamps, courses


async def import_data(
    db: AsyncSession,
    bootcamps: Sequence[Dict[str, Any]],
    courses: Sequence[Dict[str, Any]],
) -> Tuple[int, int]:
    """
    Create the bootcamps, then their courses.

    Returns:
        (bootcamps created, courses created)

    Raises:
        ValidationError: A course names a bootcamp that is not in the data
        pydantic.ValidationError: A record does not satisfy the API schema
    """
    ids_by_name = {}
    for raw in bootcamps:
        bootcamp = await bootcamp_service.create_bootcamp(db, BootcampCreate(**raw))
        ids_by_name[bootcamp.name] = bootcamp.id

    for raw in courses:
        fields = dict(raw)
        name = fields.pop("bootcamp", None)
        if name not in ids_by_name:
            raise ValidationError(
                message=f"Course '{fields.get('title')}' names unknown bootcamp '{name}'",
                field="bootcamp",
            )
        await course_service.add_course(db, ids_by_name[name], CourseCreate(**fields))

    return len(bootcamps), len(courses)


async def delete_data(db: AsyncSession) -> Tuple[int, int]:
    """Delete every course and bootcamp. Returns the deleted row counts."""
    courses = await db.execute(delete(Course))
    bootcamps = await db.execute(delete(Bootcamp))
    return bootcamps.rowcount, courses.rowcount


async def _run(seed: Optional[SeedData]) -> int:
    """Import `seed`, or delete everything when it is None."""
    await create_tables()
    try:
        async with async_session_factory() as db:
            try:
                if seed is not None:
                    counts = await import_data(db, *seed)
                    await db.commit()
                    logger.info("Data imported: %d bootcamps, %d courses", *counts)
                else:
                    counts = await delete_data(db)
                    await db.commit()
                    logger.info("Data destroyed: %d bootcamps, %d courses", *counts)
            except Exception:
                await db.rollback()
                raise
    finally:
        await dispose_engine()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="devcamper-seed",
        description="Import or delete the DevCamper sample data.",
    )
    action = parser.add_mutually_exclusive_group(required=True)
    action.add_argument("-i", "--import", dest="import_data", action="store_true", help="import the sample data")
    action.add_argument("-d", "--delete", dest="delete_data", action="store_true", help="delete all bootcamps and courses")
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=DEFAULT_DATA_DIR,
        help="directory holding bootcamps.json and courses.json (default: bundled sample data)",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)

    seed = None
    if args.import_data:
        try:
            seed = load_seed_data(args.data_dir)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Could not read seed data from %s: %s", args.data_dir, e)
            return 1

    try:
        return asyncio.run(_run(seed))
    except SchemaValidationError as e:
        logger.error("Seed data is invalid: %s", e)
    except DevCamperError as e:
        logger.error("Seeding failed: %s", e.message)
    except SQLAlchemyError as e:
        logger.error("Database error: %s", e)
    return 1


if __name__ == "__main__":
    sys.exit(main())
