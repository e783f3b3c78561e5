"""Schema migration commands.

    python scripts/migrate.py                      # upgrade to head
    python scripts/migrate.py upgrade 002
    python scripts/migrate.py downgrade -1
    python scripts/migrate.py revision "add rooms"
    python scripts/migrate.py current
"""

import argparse
import sys

import structlog
from alembic import command
from alembic.config import Config
from alembic.util import CommandError

from mawaid.middleware.logging import configure_logging

logger = structlog.get_logger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--config", default="alembic.ini")
    commands = parser.add_subparsers(dest="command")
    commands.add_parser("upgrade").add_argument("revision", nargs="?", default="head")
    commands.add_parser("downgrade").add_argument("revision")
    commands.add_parser("revision").add_argument("message")
    commands.add_parser("current")
    args = parser.parse_args(argv)

    config = Config(args.config)
    name = args.command or "upgrade"
    logger.info("migration_command_started", command=name)
    try:
        if name == "upgrade":
            command.upgrade(config, getattr(args, "revision", "head"))
        elif name == "downgrade":
            command.downgrade(config, args.revision)
        elif name == "revision":
            command.revision(config, message=args.message, autogenerate=True)
        else:
            command.current(config, verbose=True)
    except CommandError as e:
        logger.error("migration_command_failed", command=name, error=str(e))
        return 1

    logger.info("migration_command_completed", command=name)
    return 0


if __name__ == "__main__":
    configure_logging()
    sys.exit(main())
