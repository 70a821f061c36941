"""
Pytest fixtures for testing
"""
import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session

from obligations.config import get_settings
from obligations.infrastructure.db.session import Base
from obligations.infrastructure.db import models  # noqa: F401  registers tables


@pytest.fixture(autouse=True)
def fresh_settings():
    """Settings are cached; drop the cache around each test so env overrides apply."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def db_engine():
    """Create in-memory SQLite engine for tests"""
    engine = create_engine("sqlite:///:memory:")

    # pysqlite defers BEGIN; emit it ourselves so SAVEPOINT rollbacks work
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine) -> Session:
    """Create database session for tests"""
    SessionLocal = sessionmaker(bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def sample_owner_id():
    """Sample owner ID for tests"""
    return "user-1"
