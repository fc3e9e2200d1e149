"""Database engine and session factory"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from investment_tracker.infrastructure.database.models import Base


def make_engine(database_url: str) -> Engine:
    """Create an engine; SQLite connections are shared across threadpool workers"""
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        # In-memory databases live only as long as their single connection
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)
    return create_engine(database_url, pool_pre_ping=True, pool_recycle=3600)


def make_session_factory(database_url: str) -> sessionmaker:
    """Create tables if missing and return a session factory bound to them"""
    engine = make_engine(database_url)
    Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
