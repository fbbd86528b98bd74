#!/usr/bin/env python3
"""
Create the first admin account.

Usage: python scripts/create_admin.py <username> <password> [full name]
"""

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy.orm import Session
from app.core.database import engine, Base
from app.core.security import get_password_hash
from app.models.user import User, UserRole
import app.models  # noqa: F401
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def create_admin(username: str, password: str, full_name: str = None):
    """Create an admin unless the username is already taken."""
    Base.metadata.create_all(bind=engine)

    with Session(engine) as db:
        existing = db.query(User).filter(User.username == username).first()
        if existing:
            logger.info(f"User '{username}' already exists with role {existing.role}")
            return existing

        admin = User(
            username=username,
            hashed_password=get_password_hash(password),
            full_name=full_name,
            role=UserRole.ADMIN.value,
            is_active=True
        )
        db.add(admin)
        db.commit()
        db.refresh(admin)
        logger.info(f"Admin '{username}' created with id {admin.id}")
        return admin


if __name__ == "__main__":
    if len(sys.argv) < 3:
        print(__doc__.strip())
        sys.exit(1)
    create_admin(sys.argv[1], sys.argv[2], " ".join(sys.argv[3:]) or None)
