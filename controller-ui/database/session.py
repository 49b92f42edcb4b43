# controller-ui/database/session.py
"""
Database Session Management
"""

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
import logging

from config import settings
from .models import Base

logger = logging.getLogger(__name__)


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """Create an engine with the pool settings suited to the backend"""
    if database_url.startswith("sqlite"):
        # SQLite specific settings; sessions are used from worker threads
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=echo,
        )

    # PostgreSQL or other databases
    return create_engine(
        database_url,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,
        echo=echo,
    )


engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)

# Session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)


def init_db(bind: Engine = engine) -> None:
    """
    Initialize database tables
    Call this on application startup
    """
    logger.info("Initializing database...")
    Base.metadata.create_all(bind=bind)
    logger.info("Database initialized successfully")


class DatabaseManager:
    """
    Database manager for advanced operations
    """

    @staticmethod
    def check_connection() -> bool:
        """Check if database connection is healthy"""
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"Database connection check failed: {e}")
            return False


# Export
db_manager = DatabaseManager()
