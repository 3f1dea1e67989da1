from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import Session, create_engine, SQLModel

from app.models import models  # noqa: F401  registers every table on SQLModel.metadata
from app.core.config import settings


def build_engine(database_url: str, **engine_kwargs) -> Engine:
    """Create an engine, enabling foreign keys when running on SQLite."""
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, **engine_kwargs)

    sqlite_engine = create_engine(
        database_url, connect_args={"check_same_thread": False}, **engine_kwargs
    )

    @event.listens_for(sqlite_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return sqlite_engine


engine = build_engine(settings.DATABASE_URL)


def get_session():
    """FastAPI dependency to get database session."""
    with Session(engine) as session:
        yield session


def init_db():
    SQLModel.metadata.create_all(engine)
