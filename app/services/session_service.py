import logging
from datetime import datetime, timedelta
from typing import Optional, Tuple
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from app.core.config import settings
from app.core.exceptions import InvalidCredentials, PersistenceError
from app.core.security import generate_session_token, verify_password
from app.models.session import UserSession
from app.models.user import User

logger = logging.getLogger(__name__)


class SessionService:
    """Token sessions persisted in the database; one row per login."""

    def __init__(self, expire_minutes: Optional[int] = None):
        self.expire_minutes = expire_minutes or settings.SESSION_EXPIRE_MINUTES

    def login(self, db: Session, username: str, password: str) -> Tuple[User, str]:
        """Verify credentials and open a session. Returns the user and its token."""
        user = db.query(User).filter(User.username == username.strip()).first()
        if not user or not verify_password(password, user.hashed_password):
            logger.info(f"Failed login for username '{username}'")
            raise InvalidCredentials("Invalid credentials")
        if not user.is_active:
            raise InvalidCredentials("Account disabled")

        now = datetime.utcnow()
        session = UserSession(
            user_id=user.id,
            session_token=generate_session_token(),
            is_active=True,
            created_at=now,
            last_activity=now,
            expires_at=now + timedelta(minutes=self.expire_minutes),
        )
        try:
            db.add(session)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error creating session for user {user.id}: {e}")
            raise PersistenceError("Failed to sign in. Please try again.")

        logger.info(f"User {user.username} logged in")
        return user, session.session_token

    def current_user(self, db: Session, token: Optional[str]) -> Optional[User]:
        """Resolve the user behind a session token, or None if it is not valid."""
        if not token:
            return None
        session = db.query(UserSession).filter(UserSession.session_token == token).first()
        now = datetime.utcnow()
        if not session or not session.is_valid(now):
            return None
        if not session.user or not session.user.is_active:
            return None

        session.last_activity = now
        db.commit()
        return session.user

    def logout(self, db: Session, token: str) -> None:
        session = db.query(UserSession).filter(UserSession.session_token == token).first()
        if not session:
            return
        session.is_active = False
        db.commit()
        logger.info(f"Session closed for user {session.user_id}")


# Singleton instance
session_service = SessionService()
