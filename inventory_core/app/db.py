import logging
from pathlib import Path
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from .config import settings

logger = logging.getLogger(__name__)

# Prefer explicit DATABASE_URL env var. If not provided, construct a local
# SQLite URL in a `data/` folder adjacent to the package directory.
if settings.database_url:
    DATABASE_URL = settings.database_url
else:
    data_dir = Path(__file__).resolve().parents[1] / "data"
    data_dir.mkdir(parents=True, exist_ok=True)
    DATABASE_URL = f"sqlite:///{(data_dir / 'inventory_core.db').as_posix()}"

logger.info("Using database %s", DATABASE_URL.split("@")[-1])

engine = create_engine(
    DATABASE_URL,
    echo=settings.database_echo,
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {},
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def create_db_and_tables():
    # Register every mapped class on Base.metadata before creating
    from . import models, models_inventory  # noqa: F401
    Base.metadata.create_all(bind=engine)


def get_db() -> Generator:
    """Database session dependency"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
