from __future__ import annotations

import argparse
import logging
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import inspect

from evatlottery.db.engine import make_engine

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def upgrade_ledger(target_revision: str = "head") -> None:
    """Migrate the ledger database to ``target_revision``."""
    alembic_cfg = Config(str(PROJECT_ROOT / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    command.upgrade(alembic_cfg, target_revision)


def report_tables() -> list[str]:
    """Return (and log) the tables present in the configured database."""
    engine = make_engine()
    try:
        tables = sorted(inspect(engine).get_table_names())
    finally:
        engine.dispose()
    logger.info("Ledger tables: %s", ", ".join(tables) or "(none)")
    return tables


def main() -> None:
    parser = argparse.ArgumentParser(description="Create or upgrade the ledger schema.")
    parser.add_argument("--revision", default="head", help="Alembic revision to upgrade to")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    upgrade_ledger(args.revision)
    print("Current tables:", ", ".join(report_tables()))


if __name__ == "__main__":
    main()
