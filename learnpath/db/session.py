## Engine + session factory
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from learnpath.settings import settings
from learnpath.db.base import Base


def _connect_args(url: str) -> dict:
    # SQLite connections are shared across the request thread pool
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,
    connect_args=_connect_args(settings.database_url),
)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def create_tables(bind=None) -> None:
    """Local development helper; production schema lives in the data store."""
    import learnpath.db.models  # noqa: F401  registers every table on Base.metadata

    Base.metadata.create_all(bind=bind or engine)
