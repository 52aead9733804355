"""Ad Ops Hub - Database Engine.

Backs the database sheet store and the shared cache backend.
"""

from sqlalchemy import text
from sqlalchemy.engine import Engine, make_url
from sqlmodel import SQLModel, create_engine

from adops.config import settings
from adops.core.logging import get_logger

logger = get_logger("database")

db_url = settings.effective_database_url


def build_engine(url: str) -> Engine:
    """SQLite gets a thread-shared connection; anything else gets a pre-pinged pool."""
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite":
        logger.info(f"📦 Database: SQLite at {parsed.database or ':memory:'}")
        return create_engine(url, echo=False, connect_args={"check_same_thread": False})

    logger.info(f"🐘 Database: {parsed.render_as_string(hide_password=True)}")
    return create_engine(
        url,
        echo=False,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
        pool_recycle=300,
    )


engine = build_engine(db_url)


def check_connection(bind: Engine = engine) -> bool:
    """Run SELECT 1; False (logged) when the database is unreachable."""
    try:
        with bind.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"❌ Database connection check failed: {e}")
        return False
    logger.info("✅ Database connection OK")
    return True


def init_db(bind: Engine = engine) -> None:
    """Create the sheet and cache tables if missing."""
    # Table models must be registered on the metadata before create_all
    from adops.models import storage_models  # noqa: F401

    SQLModel.metadata.create_all(bind)
    logger.info("✅ Database tables ready")
