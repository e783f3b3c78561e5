"""Add triggers publishing row changes on the change-feed channel

Revision ID: 003
Revises: 002
Create Date: 2026-10-12 00:20:00.000000

"""

from typing import Sequence, Union

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

WATCHED_TABLES = ("appointments", "appointment_suggestions", "notifications")


def upgrade() -> None:
    """Publish every insert, update and delete on the watched tables."""

    # ===================================================================
    # TRIGGER FUNCTION: {eventType, table, new, old} on 'table_changes'
    # ===================================================================
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

    for table in WATCHED_TABLES:
        op.execute(
            f"""
            CREATE TRIGGER trigger_{table}_change_feed
            AFTER INSERT OR UPDATE OR DELETE ON {table}
            FOR EACH ROW
            EXECUTE FUNCTION notify_table_change();
        """
        )


def downgrade() -> None:
    """Remove change-feed triggers."""
    for table in WATCHED_TABLES:
        op.execute(f"DROP TRIGGER IF EXISTS trigger_{table}_change_feed ON {table};")
    op.execute("DROP FUNCTION IF EXISTS notify_table_change();")
