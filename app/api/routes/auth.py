from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session
from app.core.database import get_db
from app.core.security import get_password_hash, verify_password
from app.models.user import User
from app.schemas.user import Token, UserResponse, ProfileUpdate, PasswordChange
from app.api.deps import get_current_user, get_current_token
from app.services.session_service import session_service
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/login", response_model=Token)
async def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db)
):
    """Log in with username and password and open a session."""
    user, token = session_service.login(db, form_data.username, form_data.password)
    return Token(access_token=token, user=UserResponse.model_validate(user))


@router.post("/logout")
async def logout(
    token: str = Depends(get_current_token),
    db: Session = Depends(get_db)
):
    """Close the current session."""
    session_service.logout(db, token)
    return {"message": "Logged out"}


@router.get("/me", response_model=UserResponse)
async def read_me(current_user: User = Depends(get_current_user)):
    """Get the authenticated user."""
    return current_user


@router.put("/me", response_model=UserResponse)
async def update_me(
    profile: ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Update own profile information."""
    update_data = profile.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(current_user, field, value)

    db.commit()
    db.refresh(current_user)

    return current_user


@router.post("/change-password")
async def change_password(
    data: PasswordChange,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Change own password after confirming the current one."""
    if not verify_password(data.current_password, current_user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password is incorrect"
        )

    current_user.hashed_password = get_password_hash(data.new_password)
    db.commit()
    logger.info(f"User {current_user.id} changed their password")

    return {"message": "Password updated successfully"}
