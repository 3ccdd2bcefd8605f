"""Apply every Alembic migration up to head using alembic.ini from the working directory."""

import sys

from alembic import command
from alembic.config import Config


def main(config_path: str = "alembic.ini") -> None:
    command.upgrade(Config(config_path), "head")


if __name__ == "__main__":
    main(*sys.argv[1:2])
