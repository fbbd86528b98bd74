"""
Script to initialize the database tables.
Run this after setting up the database for the first time.
Then run scripts/create_admin.py to create the first admin account.
"""
from sqlalchemy.exc import SQLAlchemyError
from app.core.database import engine, Base
import app.models  # noqa: F401
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def init_db():
    """Initialize database tables."""
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created successfully")
        logger.info("Next step: run 'python scripts/create_admin.py <username> <password>'")
    except SQLAlchemyError as e:
        logger.error(f"Error creating database tables: {e}")
        raise


if __name__ == "__main__":
    init_db()
