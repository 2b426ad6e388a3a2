"""
Database engine, session factory and FastAPI dependency
"""
import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from coursequiz.config import settings

logger = logging.getLogger(__name__)


def _engine_kwargs(url: str) -> dict:
    """SQLite needs cross-thread access; in-memory SQLite needs a single shared connection"""
    if not url.startswith("sqlite"):
        return {"pool_pre_ping": True}

    kwargs = {"connect_args": {"check_same_thread": False}}
    if url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
    return kwargs


engine = create_engine(settings.DATABASE_URL, **_engine_kwargs(settings.DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """Yield a database session for one request"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Create all tables"""
    # Register models on Base.metadata
    import coursequiz.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ensured")
