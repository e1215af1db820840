# fleetobd/database.py
"""
Database connection, session management, and table creation.
Uses SQLAlchemy with PostgreSQL. SQLite URLs are accepted for local runs and tests.
All models are auto-imported in create_tables() so every table is created in one call.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from fleetobd.config import settings


def _build_engine(url: str):
    if url.startswith("sqlite"):
        # One shared connection so an in-memory DB survives across sessions
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=False,
        )
    return create_engine(
        url,
        pool_pre_ping=True,          # Auto-reconnect if DB connection drops
        pool_size=10,
        max_overflow=20,
        pool_timeout=10,             # Surfaces as a transient error instead of hanging
        echo=False,                  # Set True to log all SQL queries (debug only)
    )


engine = _build_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """FastAPI dependency: yields a DB session and closes it after request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables():
    """
    Creates all DB tables on startup. Safe to call multiple times.
    Import all models here so SQLAlchemy knows about them.
    """
    from fleetobd.models.company import Company                      # noqa
    from fleetobd.models.driver import Driver                        # noqa
    from fleetobd.models.vehicle import Vehicle                      # noqa
    from fleetobd.models.telemetry_reading import TelemetryReading   # noqa

    Base.metadata.create_all(bind=engine)


def drop_tables():
    """Drops every table. Used by the test suite between cases."""
    Base.metadata.drop_all(bind=engine)
