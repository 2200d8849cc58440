"""
core/database.py -- Engine construction shared by every SQLAlchemy store.

Each store (UserStore, SqlSessionStore, AuditStore, RecordsStore) owns its own
Table definitions and MetaData, but they all point at settings.database_url and
need the same SQLite tweaks, so engine creation lives here.
"""

from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'officedesk.db'}"


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode and foreign keys on every new SQLite connection.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool. WAL lets readers proceed while a write is in
    flight; foreign_keys makes ON DELETE CASCADE / SET NULL actually fire.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


def build_engine(db_url: str = DEFAULT_DB_URL) -> Engine:
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        # TestClient and FastAPI's thread pool share connections across threads.
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_sqlite_pragmas)
    return engine
