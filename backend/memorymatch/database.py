"""
Database engine, session factory and declarative base.

One session is opened per request through the ``get_db`` dependency.
"""
import logging
from sqlalchemy import create_engine, text
from sqlalchemy.orm import declarative_base, sessionmaker

from memorymatch.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


def _engine_options(url: str) -> dict:
    # SQLite has no connection pool sizing
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_pre_ping": True,
    }


engine = create_engine(settings.database_url, **_engine_options(settings.database_url))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Yield a database session and close it when the request ends."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Create tables and verify the database is reachable."""
    # Register models on Base.metadata
    from memorymatch import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    ping_db()
    logger.info(f"Database ready: {engine.url.render_as_string(hide_password=True)}")


def ping_db(db=None) -> bool:
    """Run a trivial query against the database, raising on failure."""
    if db is not None:
        db.execute(text("SELECT 1"))
        return True
    with engine.connect() as connection:
        connection.execute(text("SELECT 1"))
    return True
