"""Compare the live ledger schema with the ORM models.

Exit status: 0 when they match, 1 on drift, 2 when the check itself fails.
"""

from __future__ import annotations

import sys

from alembic.autogenerate import api as ag_api
from alembic.runtime.migration import MigrationContext
from sqlalchemy.exc import SQLAlchemyError

from evatlottery.db.engine import make_engine
from evatlottery.models import Base


def _describe(ops, depth: int = 0) -> list[str]:
    lines = []
    for op in ops:
        lines.append(f"{'  ' * depth}- {op}")
        lines.extend(_describe(getattr(op, "ops", None) or [], depth + 1))
    return lines


def main() -> int:
    engine = make_engine()
    target = engine.url.render_as_string(hide_password=True)
    try:
        with engine.connect() as connection:
            migration_ctx = MigrationContext.configure(
                connection=connection,
                opts={
                    "compare_type": True,
                    "compare_server_default": True,
                    "render_as_batch": connection.dialect.name == "sqlite",
                },
            )
            upgrade_ops = ag_api.produce_migrations(migration_ctx, Base.metadata).upgrade_ops
    except SQLAlchemyError as exc:
        print(f"Ledger schema check: ERROR for {target}: {exc}", file=sys.stderr)
        return 2
    finally:
        engine.dispose()

    if upgrade_ops is None:
        print(f"Ledger schema check: ERROR for {target}: no upgrade ops produced.")
        return 2
    if upgrade_ops.is_empty():
        print(f"Ledger schema check: OK for {target}.")
        return 0
    print(f"Ledger schema check: DRIFT for {target}:")
    print("\n".join(_describe(upgrade_ops.ops or [])))
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
