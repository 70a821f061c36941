"""
Database session management (SQLAlchemy)
"""
from sqlalchemy import create_engine, text
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from obligations.config import get_settings


class Base(DeclarativeBase):
    """
    SQLAlchemy declarative base for template/occurrence tables
    """
    pass


# Singleton engine and session factory
_engine = None
_SessionLocal = None


def get_engine():
    """Get or create SQLAlchemy engine (singleton)"""
    global _engine
    if _engine is None:
        settings = get_settings()
        url = settings.get_sqlalchemy_url()
        _engine = create_engine(url, pool_pre_ping=True)
    return _engine


def get_session_factory():
    """Get or create session factory (singleton)"""
    global _SessionLocal
    if _SessionLocal is None:
        engine = get_engine()
        _SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    return _SessionLocal


def init_schema(engine=None) -> None:
    """Create the engine-owned tables (templates, occurrences) if missing."""
    from obligations.infrastructure.db import models  # noqa: F401  registers mappers

    engine = engine or get_engine()
    Base.metadata.create_all(engine, tables=[
        models.RecurringTemplateModel.__table__,
        models.ExpectedOccurrenceModel.__table__,
    ])


def check_db_connection() -> None:
    """
    Health check - run SELECT 1

    Raises:
        sqlalchemy.exc.OperationalError: if the database is unreachable
    """
    with get_engine().connect() as conn:
        conn.execute(text("SELECT 1"))
