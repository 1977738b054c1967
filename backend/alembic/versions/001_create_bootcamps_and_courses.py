"""Create bootcamps and courses tables

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Creates the `bootcamps` and `courses` tables with the indexes the
       list pipeline and the radius search rely on.
How:   Generic SQLAlchemy types (Uuid, JSON) so the revision matches
       devcamper/models/*.py on PostgreSQL and on SQLite.

Rollback: downgrade() drops both tables (all data is lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "bootcamps",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("slug", sa.String(80), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("website", sa.String(2048), nullable=True),
        sa.Column("phone", sa.String(20), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),

        # Geocoded point document plus its coordinates as indexed floats
        sa.Column("location", sa.JSON(), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),

        sa.Column("careers", sa.JSON(), nullable=False),
        sa.Column("average_rating", sa.Float(), nullable=True),
        sa.Column("average_cost", sa.Float(), nullable=True),
        sa.Column("photo", sa.String(255), nullable=False, server_default="no-photo.jpg"),
        sa.Column("housing", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("job_assistance", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("job_guarantee", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("accept_gi", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )
    op.create_index("ix_bootcamps_slug", "bootcamps", ["slug"])
    op.create_index("idx_bootcamps_created_at", "bootcamps", [sa.text("created_at DESC")])
    op.create_index("idx_bootcamps_lat_lng", "bootcamps", ["latitude", "longitude"])

    op.create_table(
        "courses",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("weeks", sa.String(20), nullable=False),
        sa.Column("tuition", sa.Float(), nullable=False),
        # beginner | intermediate | advanced
        sa.Column("minimum_skill", sa.String(20), nullable=False),
        sa.Column("scholarship_available", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column("bootcamp_id", sa.Uuid(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["bootcamp_id"], ["bootcamps.id"], ondelete="CASCADE"),
    )
    op.create_index("idx_courses_bootcamp_id", "courses", ["bootcamp_id"])
    op.create_index("idx_courses_created_at", "courses", [sa.text("created_at DESC")])


def downgrade() -> None:
    op.drop_index("idx_courses_created_at", table_name="courses")
    op.drop_index("idx_courses_bootcamp_id", table_name="courses")
    op.drop_table("courses")

    op.drop_index("idx_bootcamps_lat_lng", table_name="bootcamps")
    op.drop_index("idx_bootcamps_created_at", table_name="bootcamps")
    op.drop_index("ix_bootcamps_slug", table_name="bootcamps")
    op.drop_table("bootcamps")
