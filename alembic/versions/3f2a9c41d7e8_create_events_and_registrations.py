"""Create events and event_registrations

Revision ID: 3f2a9c41d7e8
Revises:
Create Date: 2025-09-02 10:12:44.318205

"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f2a9c41d7e8"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "events",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.VARCHAR(), nullable=False),
        sa.Column("description", sa.TEXT(), nullable=True),
        sa.Column("date", sa.VARCHAR(), nullable=False),
        sa.Column("time", sa.VARCHAR(), nullable=True),
        sa.Column("location", sa.VARCHAR(), nullable=True),
        sa.Column("category", sa.VARCHAR(), nullable=True),
        sa.Column("max_attendees", sa.INTEGER(), nullable=False, server_default="50"),
        sa.Column("current_attendees", sa.INTEGER(), nullable=True, server_default="0"),
        sa.Column("is_public", sa.BOOLEAN(), nullable=False, server_default=sa.true()),
        sa.Column("image_url", sa.VARCHAR(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("max_attendees >= 1", name="ck_events_max_attendees_positive"),
    )
    op.create_index("ix_events_date", "events", ["date"])

    op.create_table(
        "event_registrations",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("event_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.VARCHAR(), nullable=False),
        sa.Column("name", sa.VARCHAR(), nullable=True),
        sa.Column("age_group", sa.VARCHAR(), nullable=True),
        sa.Column("occupation", sa.VARCHAR(), nullable=True),
        sa.Column("discovery", sa.VARCHAR(), nullable=True),
        sa.Column("other", sa.TEXT(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["event_id"], ["events.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "event_id", "user_id", name="uq_event_registrations_event_user"
        ),
    )
    op.create_index(
        "ix_event_registrations_event_id", "event_registrations", ["event_id"]
    )
    op.create_index(
        "ix_event_registrations_user_id", "event_registrations", ["user_id"]
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("ix_event_registrations_user_id", table_name="event_registrations")
    op.drop_index("ix_event_registrations_event_id", table_name="event_registrations")
    op.drop_table("event_registrations")
    op.drop_index("ix_events_date", table_name="events")
    op.drop_table("events")
