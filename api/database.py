"""Engine, session factory and declarative base."""
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool

from api.config import DATABASE_URL

MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


def create_db_engine(url: str = DATABASE_URL) -> Engine:
    """
    SQLite connections are shared across the server's worker threads; an
    in-memory database keeps a single connection so every session sees it.
    """
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True)
    options: dict = {"connect_args": {"check_same_thread": False}}
    if url in MEMORY_URLS:
        options["poolclass"] = StaticPool
    return create_engine(url, **options)


engine = create_db_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    """Declarative base for the question bank tables."""


def get_db():
    """Request-scoped database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine | None = None) -> None:
    """Create any missing table."""
    # registers every table on Base.metadata
    import api.models.db  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
