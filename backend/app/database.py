import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from app.config import get_settings
from app.models import Base

settings = get_settings()

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> dict:
    # SQLite uses a single-connection pool that rejects the sizing arguments.
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_timeout": settings.db_pool_timeout_seconds,
        "pool_pre_ping": True,
    }


engine = create_engine(
    settings.database_url,
    echo=settings.debug,
    future=True,
    **_engine_options(settings.database_url),
)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)


def init_database(bind: Engine | None = None) -> None:
    """Create the message and blocklist tables when they are missing."""

    target = bind or engine
    Base.metadata.create_all(target)
    logger.info("Database initialized")
