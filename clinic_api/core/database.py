import logging
from typing import Generator

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from clinic_api.core.config import get_settings
from clinic_api.core.errors import UnexpectedError

logger = logging.getLogger(__name__)
settings = get_settings()

_is_sqlite = settings.database_url.startswith("sqlite")
_connect_args = {"check_same_thread": False} if _is_sqlite else {}


def configure_sqlite(engine: Engine) -> None:
    """
    Let SQLAlchemy own SQLite transactions so SAVEPOINTs (begin_nested) work,
    and enforce foreign keys.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


# Main SQLAlchemy engine
engine = create_engine(
    str(settings.database_url),
    future=True,
    pool_pre_ping=True,
    connect_args=_connect_args,
)
if _is_sqlite:
    configure_sqlite(engine)

# Session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    future=True,
)


def commit_or_raise(db: Session, action: str) -> None:
    """
    Commit the current unit of work. Storage failures roll the session
    back and surface as UnexpectedError with a generic message.
    """
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.error("Failed to %s", action, exc_info=True)
        raise UnexpectedError(f"Failed to {action}.") from None


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency that yields a DB session.

    Services commit their own writes; anything left open at the end
    of the request is rolled back by close().
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
