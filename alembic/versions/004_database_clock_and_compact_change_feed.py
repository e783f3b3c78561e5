"""Stamp appointments.updated_at in the database and publish one row per change

Revision ID: 004
Revises: 003
Create Date: 2026-10-19 00:00:00.000000

"""

from typing import Sequence, Union

from alembic import op

from mawaid.config import settings
from mawaid.models.triggers import TOUCH_FUNCTION, TOUCH_TRIGGER, notify_function_sql

# revision identifiers, used by Alembic.
revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Replace the change-feed function and add the updated_at trigger."""

    # The existing triggers keep calling notify_table_change(); only its body changes.
    op.execute(notify_function_sql(settings.change_feed_channel))

    op.execute(TOUCH_FUNCTION)
    op.execute(TOUCH_TRIGGER)


def downgrade() -> None:
    """Drop the updated_at trigger and restore the new/old payload on 'table_changes'."""
    op.execute("DROP TRIGGER IF EXISTS trigger_appointments_touch_updated_at ON appointments;")
    op.execute("DROP FUNCTION IF EXISTS touch_appointment_updated_at();")
    op.execute(
        """
        CREATE OR REPLACE FUNCTION notify_table_change()
        RETURNS TRIGGER AS $$
        DECLARE
            new_row JSON := NULL;
            old_row JSON := NULL;
        BEGIN
            IF TG_OP IN ('INSERT', 'UPDATE') THEN
                new_row := row_to_json(NEW);
            END IF;
            IF TG_OP IN ('UPDATE', 'DELETE') THEN
                old_row := row_to_json(OLD);
            END IF;

            PERFORM pg_notify(
                'table_changes',
                json_build_object(
                    'eventType', TG_OP,
                    'table', TG_TABLE_NAME,
                    'new', new_row,
                    'old', old_row
                )::text
            );
            RETURN NULL;
        END;
        $$ LANGUAGE plpgsql;
    """
    )
