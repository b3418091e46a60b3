from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from src.config import settings

Base = declarative_base()


def create_db_engine(database_url: str, lock_timeout_seconds: float = None) -> Engine:
    """Create an engine whose transactions can serialize on a departure row.

    PostgreSQL locks rows with SELECT ... FOR UPDATE. SQLite has no row locks,
    so every transaction starts with BEGIN IMMEDIATE and writers queue on the
    database lock for at most ``lock_timeout_seconds``.
    """
    if lock_timeout_seconds is None:
        lock_timeout_seconds = settings.LOCK_TIMEOUT_SECONDS

    if not database_url.startswith("sqlite"):
        return create_engine(database_url, pool_pre_ping=True)

    engine = create_engine(
        database_url,
        connect_args={"check_same_thread": False, "timeout": lock_timeout_seconds},
    )

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def apply_lock_timeout(db: Session, lock_timeout_seconds: float = None) -> None:
    """Bound row-lock waits for the current transaction (PostgreSQL only)."""
    if db.get_bind().dialect.name != "postgresql":
        return
    if lock_timeout_seconds is None:
        lock_timeout_seconds = settings.LOCK_TIMEOUT_SECONDS
    # SET LOCAL does not accept bind parameters
    db.execute(text(f"SET LOCAL lock_timeout = '{int(lock_timeout_seconds * 1000)}ms'"))


def is_lock_timeout(exc: OperationalError) -> bool:
    """True when the driver gave up waiting for a lock held by another transaction"""
    if getattr(exc.orig, "pgcode", None) == "55P03":  # lock_not_available
        return True
    return "database is locked" in str(exc.orig)


def init_db(bind: Engine) -> None:
    import src.models  # noqa: F401  registers tables on Base.metadata
    Base.metadata.create_all(bind=bind)


engine = create_db_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
