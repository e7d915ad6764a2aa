from __future__ import annotations

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import sessionmaker, DeclarativeBase, declared_attr

from .config import settings


class Base(DeclarativeBase):
    @declared_attr.directive
    def __tablename__(cls) -> str:  # type: ignore[override]
        return cls.__name__.lower()


def create_db_engine(url: str, *, busy_timeout: float | None = None) -> Engine:
    """Build an engine; SQLite connections get FK enforcement, WAL and BEGIN IMMEDIATE."""
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True)

    timeout = settings.SQLITE_BUSY_TIMEOUT if busy_timeout is None else busy_timeout
    eng = create_engine(url, connect_args={"check_same_thread": False, "timeout": timeout})

    @event.listens_for(eng, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):  # type: ignore[override]
        # hand transaction control to SQLAlchemy so "begin" below is the only BEGIN
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    @event.listens_for(eng, "begin")
    def do_begin(conn):  # type: ignore[override]
        # take the write lock up front: balance read-modify-write cannot interleave
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return eng


engine = create_db_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def get_session_factory() -> sessionmaker:
    return SessionLocal
