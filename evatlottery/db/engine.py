import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from .utils import resolve_sqlite_url

logger = logging.getLogger(__name__)

load_dotenv()
# Repo root; relative SQLite paths in DB_URL are resolved against it.
ROOT_DIR = Path(__file__).resolve().parents[2]
DEFAULT_SQLITE_URL = resolve_sqlite_url(
    os.getenv("DB_URL", "sqlite:///./dev.db"), ROOT_DIR
)


def _is_memory_sqlite(url: str) -> bool:
    return ":memory:" in url or url.rstrip("/").endswith("sqlite:")


def _enable_sqlite_foreign_keys(engine: Engine) -> None:
    # Participant deletion cascades to ledger entries only with FKs on.
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def make_engine(database_url: Optional[str] = None, echo: bool = False) -> Engine:
    """Build the ledger engine for ``database_url`` (``DB_URL`` by default).

    SQLite connections are shareable across request threads; an in-memory
    database keeps a single connection so every thread sees the same ledger.
    """
    url = resolve_sqlite_url(database_url, ROOT_DIR) if database_url else DEFAULT_SQLITE_URL
    is_sqlite = url.startswith("sqlite")

    kwargs = {}
    if is_sqlite:
        kwargs["connect_args"] = {"check_same_thread": False}
        if _is_memory_sqlite(url):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True

    engine = create_engine(url, echo=echo, future=True, **kwargs)
    if is_sqlite:
        _enable_sqlite_foreign_keys(engine)
    logger.debug("Ledger engine created for %s", engine.url.render_as_string(hide_password=True))
    return engine


def get_sessionmaker(engine: Engine) -> sessionmaker:
    return sessionmaker(
        bind=engine,
        expire_on_commit=False,  # results are read after the redemption commits
        future=True,
    )
