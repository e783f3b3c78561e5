"""Trigger DDL for the change feed and for ``appointments.updated_at``.

Applied by the Alembic migrations and by the database-backed tests, which
build the schema with ``metadata.create_all``.
"""

WATCHED_TABLES = ("appointments", "appointment_suggestions", "notifications")

# pg_notify rejects payloads of 8000 bytes or more and aborts the writing
# transaction, so a message carries one row at most: ``new`` for inserts and
# updates, only the key in ``old`` for deletes.
NOTIFY_FUNCTION = """
CREATE OR REPLACE FUNCTION notify_table_change()
RETURNS TRIGGER AS $$
DECLARE
    new_row JSON := NULL;
    old_row JSON := NULL;
BEGIN
    IF TG_OP = 'DELETE' THEN
        old_row := json_build_object('id', OLD.id);
    ELSE
        new_row := row_to_json(NEW);
    END IF;

    PERFORM pg_notify(
        '{channel}',
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

NOTIFY_TRIGGER = """
CREATE TRIGGER trigger_{table}_change_feed
AFTER INSERT OR UPDATE OR DELETE ON {table}
FOR EACH ROW
EXECUTE FUNCTION notify_table_change();
"""

# updated_at orders appointment versions for every client, so it comes from
# the database clock and never moves backwards for a row.
TOUCH_FUNCTION = """
CREATE OR REPLACE FUNCTION touch_appointment_updated_at()
RETURNS TRIGGER AS $$
BEGIN
    NEW.updated_at := GREATEST(clock_timestamp(), OLD.updated_at + interval '1 microsecond');
    RETURN NEW;
END;
$$ LANGUAGE plpgsql;
"""

TOUCH_TRIGGER = """
CREATE TRIGGER trigger_appointments_touch_updated_at
BEFORE UPDATE ON appointments
FOR EACH ROW
EXECUTE FUNCTION touch_appointment_updated_at();
"""


def notify_function_sql(channel: str) -> str:
    """``notify_table_change()`` publishing on ``channel``."""
    return NOTIFY_FUNCTION.replace("{channel}", channel.replace("'", "''"))


def notify_trigger_sql(table: str) -> str:
    return NOTIFY_TRIGGER.format(table=table)


def change_feed_statements(channel: str) -> list[str]:
    """Every statement installing the change feed and the updated_at trigger."""
    return [
        notify_function_sql(channel),
        *(notify_trigger_sql(table) for table in WATCHED_TABLES),
        TOUCH_FUNCTION,
        TOUCH_TRIGGER,
    ]
