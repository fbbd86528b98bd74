from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Optional
from app.core.database import get_db
from app.core.security import get_password_hash
from app.models.user import User, UserRole, APPROVER_ROLES
from app.models.project import Project
from app.models.timesheet import Timesheet
from app.schemas.user import UserCreate, UserUpdate, UserResponse, UserSummary, UserDetail
from app.api.deps import get_admin_user, get_manager_user
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


def _to_detail(user: User) -> UserDetail:
    detail = UserResponse.model_validate(user).model_dump()
    return UserDetail(
        **detail,
        manager=UserSummary.model_validate(user.manager) if user.manager else None,
        team=[UserSummary.model_validate(member) for member in user.team],
        project_ids=sorted(p.id for p in user.assigned_projects),
    )


def _validate_manager(db: Session, manager_id: Optional[int], user_id: Optional[int] = None):
    """A manager must exist, be someone else, and hold an approver role."""
    if manager_id is None:
        return
    if user_id is not None and manager_id == user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A user cannot be their own manager"
        )
    manager = db.query(User).filter(User.id == manager_id).first()
    if not manager:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Manager not found"
        )
    if manager.role not in APPROVER_ROLES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Assigned manager must have the manager or admin role"
        )


def _load_projects(db: Session, project_ids: List[int]) -> List[Project]:
    projects = db.query(Project).filter(Project.id.in_(project_ids)).all() if project_ids else []
    missing = set(project_ids) - {p.id for p in projects}
    if missing:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Projects not found: {sorted(missing)}"
        )
    return projects


@router.get("/", response_model=List[UserDetail])
async def list_users(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_admin_user)
):
    """List all users with their manager, team and project assignments."""
    users = db.query(User).order_by(User.created_at.desc()).all()
    return [_to_detail(u) for u in users]


@router.get("/team", response_model=List[UserResponse])
async def list_my_team(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_manager_user)
):
    """List the users who report to the current manager."""
    return db.query(User).filter(User.manager_id == current_user.id).order_by(User.username).all()


@router.get("/{user_id}", response_model=UserDetail)
async def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_admin_user)
):
    """Get user by ID."""
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return _to_detail(user)


@router.post("/", response_model=UserDetail, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: UserCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_admin_user)
):
    """Create a new user."""
    existing = db.query(User).filter(User.username == user_data.username).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username already exists"
        )
    _validate_manager(db, user_data.manager_id)
    projects = _load_projects(db, user_data.assigned_projects)

    user = User(
        username=user_data.username,
        hashed_password=get_password_hash(user_data.password),
        full_name=user_data.full_name,
        email=user_data.email,
        role=user_data.role,
        manager_id=user_data.manager_id,
        is_active=True
    )
    user.assigned_projects = projects

    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"User {user.username} created by {current_user.username}")

    return _to_detail(user)


@router.put("/{user_id}", response_model=UserDetail)
async def update_user(
    user_id: int,
    user_data: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_admin_user)
):
    """Update user, optionally resetting the password and project assignments."""
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    update_data = user_data.model_dump(exclude_unset=True)
    if "manager_id" in update_data:
        _validate_manager(db, update_data["manager_id"], user.id)

    password = update_data.pop("password", None)
    if password:
        user.hashed_password = get_password_hash(password)

    # Replacing assignments leaves historical timesheets untouched
    project_ids = update_data.pop("assigned_projects", None)
    if project_ids is not None:
        user.assigned_projects = _load_projects(db, project_ids)

    for field, value in update_data.items():
        setattr(user, field, value)

    # Demoted managers no longer lead a team
    if user.role == UserRole.USER.value:
        for member in list(user.team):
            member.manager_id = None

    db.commit()
    db.refresh(user)

    return _to_detail(user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_admin_user)
):
    """Delete a user together with their timesheets and sessions."""
    if user_id == current_user.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot delete your own account"
        )

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    # Team members escalate to admins once their manager is gone
    for member in list(user.team):
        member.manager_id = None
    db.query(Timesheet).filter(Timesheet.approved_by == user_id).update(
        {"approved_by": None}, synchronize_session=False
    )

    db.delete(user)
    db.commit()
    logger.info(f"User {user_id} deleted by {current_user.username}")

    return None
