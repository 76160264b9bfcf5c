"""
Database configuration.
Connection pooling for PostgreSQL, plain engine for local SQLite.
"""

from contextlib import contextmanager
import logging

from sqlalchemy import create_engine, pool, text
from sqlalchemy.orm import registry, sessionmaker

from config.settings import settings

logger = logging.getLogger(__name__)

DATABASE_URL = settings.POSTGRES_URI


def build_engine(url: str = DATABASE_URL, **overrides):
    """Create an engine tuned for the backend named in ``url``."""
    if url.startswith("postgresql"):
        options = dict(
            poolclass=pool.QueuePool,
            pool_size=10,
            max_overflow=20,
            pool_timeout=30,
            pool_recycle=3600,  # Recycle connections after 1 hour
            pool_pre_ping=True,
            echo=False,
            connect_args={"connect_timeout": 10},
        )
    else:
        options = dict(echo=False)
    options.update(overrides)
    return create_engine(url, **options)


engine = build_engine()

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False,  # Prevent detached instance issues
)

mapper_registry = registry()
Base = mapper_registry.generate_base()


def configure_mappers():
    """Configure SQLAlchemy mappers dynamically to avoid circular imports."""
    from models.user import User
    from models.expenses import Expense

    mapper_registry.configure()
    logger.info("Mappers configured successfully.")


def get_db():
    """
    Dependency for getting database sessions with automatic cleanup
    """
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error(f"Database session error: {e}")
        db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def session_scope(session_factory=SessionLocal):
    """Session for background jobs, which run outside request dependencies."""
    db = session_factory()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db(bind=None):
    """Initialize database with tables"""
    configure_mappers()
    Base.metadata.create_all(bind=bind or engine)
    logger.info("Database initialized with tables")


def close_all_connections():
    """Close all database connections (for shutdown)"""
    try:
        engine.dispose()
        logger.info("All database connections closed")
    except Exception as e:
        logger.error(f"Error closing connections: {e}")


def check_database_health() -> dict:
    """
    Check database health and return status

    Returns:
        dict: Database health status
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return {"status": "healthy"}
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return {"status": "unhealthy", "error": str(e)}
