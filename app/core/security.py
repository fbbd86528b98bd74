import secrets
from passlib.context import CryptContext

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def get_password_hash(password: str) -> str:
    """Hash a password with bcrypt."""
    # bcrypt only considers the first 72 bytes
    return pwd_context.hash(password[:72])


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a plain password against its stored hash."""
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password[:72], hashed_password)


def generate_session_token() -> str:
    return secrets.token_urlsafe(32)
