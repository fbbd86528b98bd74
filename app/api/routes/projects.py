from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session, joinedload
from typing import List, Optional
from app.core.database import get_db
from app.models.user import User, UserRole
from app.models.client import Client
from app.models.project import Project, ProjectState
from app.models.timesheet import Timesheet
from app.schemas.project import (
    ProjectCreate, ProjectUpdate, ProjectResponse, ProjectUtilizationResponse
)
from app.schemas.user import UserResponse
from app.services.aggregation_service import (
    month_range, parse_month, project_user_breakdown, utilization
)
from app.api.deps import get_current_user, get_manager_user
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["Projects"])


def _get_project_or_404(db: Session, project_id: int) -> Project:
    project = db.query(Project).options(joinedload(Project.client)).filter(Project.id == project_id).first()
    if not project:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Project not found"
        )
    return project


def _ensure_visible(project: Project, user: User):
    if user.role == UserRole.USER.value and user not in project.members:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You are not assigned to this project"
        )


def _ensure_client(db: Session, client_id: int):
    if not db.query(Client).filter(Client.id == client_id).first():
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Client not found"
        )


def _load_members(db: Session, member_ids: List[int]) -> List[User]:
    members = db.query(User).filter(User.id.in_(member_ids)).all() if member_ids else []
    missing = set(member_ids) - {u.id for u in members}
    if missing:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Users not found: {sorted(missing)}"
        )
    return members


@router.post("/", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    project_data: ProjectCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_manager_user)
):
    """Create a new project."""
    _ensure_client(db, project_data.client_id)

    project = Project(
        name=project_data.name,
        description=project_data.description,
        client_id=project_data.client_id,
        allocated_hours=project_data.allocated_hours,
        is_active=True,
        created_by=current_user.id
    )
    project.members = _load_members(db, project_data.member_ids)

    db.add(project)
    db.commit()
    db.refresh(project)
    logger.info(f"Project '{project.name}' created by {current_user.username}")

    return project


@router.get("/", response_model=List[ProjectResponse])
async def list_projects(
    state: Optional[ProjectState] = None,
    client_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """List projects. Regular users only see projects they are assigned to."""
    query = db.query(Project).options(joinedload(Project.client))

    if current_user.role == UserRole.USER.value:
        query = query.filter(Project.members.any(User.id == current_user.id))
    if client_id:
        query = query.filter(Project.client_id == client_id)

    if state == ProjectState.ACTIVE:
        query = query.filter(Project.is_active.is_(True), Project.completed_at.is_(None))
    elif state == ProjectState.ARCHIVED:
        query = query.filter(Project.is_active.is_(False), Project.completed_at.is_(None))
    elif state == ProjectState.COMPLETED:
        query = query.filter(Project.completed_at.isnot(None))

    return query.order_by(Project.name).all()


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Get project by ID."""
    project = _get_project_or_404(db, project_id)
    _ensure_visible(project, current_user)
    return project


@router.put("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: int,
    project_data: ProjectUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_manager_user)
):
    """Update project details and, when given, replace its member list."""
    project = _get_project_or_404(db, project_id)

    update_data = project_data.model_dump(exclude_unset=True)
    if update_data.get("client_id") is not None:
        _ensure_client(db, update_data["client_id"])

    member_ids = update_data.pop("member_ids", None)
    if member_ids is not None:
        project.members = _load_members(db, member_ids)

    for field, value in update_data.items():
        if value is not None or field == "description":
            setattr(project, field, value)

    db.commit()
    db.refresh(project)

    return project


def _change_state(db: Session, project_id: int, user: User, action: str) -> Project:
    project = _get_project_or_404(db, project_id)
    getattr(project, action)()
    db.commit()
    db.refresh(project)
    logger.info(f"Project {project_id} is now {project.state.value} ({action} by {user.username})")
    return project


@router.post("/{project_id}/archive", response_model=ProjectResponse)
async def archive_project(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_manager_user)
):
    """Archive a project; it stops accepting new hours."""
    return _change_state(db, project_id, current_user, "archive")


@router.post("/{project_id}/complete", response_model=ProjectResponse)
async def complete_project(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_manager_user)
):
    return _change_state(db, project_id, current_user, "complete")


@router.post("/{project_id}/reactivate", response_model=ProjectResponse)
async def reactivate_project(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_manager_user)
):
    return _change_state(db, project_id, current_user, "reactivate")


# Project Members endpoints
@router.get("/{project_id}/members", response_model=List[UserResponse])
async def list_project_members(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_manager_user)
):
    """List all members assigned to a project."""
    project = _get_project_or_404(db, project_id)
    return project.members


@router.post("/{project_id}/members/{user_id}", status_code=status.HTTP_201_CREATED)
async def assign_user_to_project(
    project_id: int,
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_manager_user)
):
    """Assign a user to a project."""
    project = _get_project_or_404(db, project_id)

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    if user in project.members:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User already assigned to this project"
        )

    project.members.append(user)
    db.commit()

    return {"message": "User assigned successfully", "project_id": project_id, "user_id": user_id}


@router.delete("/{project_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_user_from_project(
    project_id: int,
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_manager_user)
):
    """Remove a user from a project. Their past timesheets are kept."""
    project = _get_project_or_404(db, project_id)

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    if user not in project.members:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User not assigned to this project"
        )

    project.members.remove(user)
    db.commit()

    return None


@router.get("/{project_id}/utilization", response_model=ProjectUtilizationResponse)
async def get_project_utilization(
    project_id: int,
    month: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Hours logged against a project in one month, with a per-user breakdown."""
    try:
        first_day = parse_month(month)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    project = _get_project_or_404(db, project_id)
    _ensure_visible(project, current_user)

    date_range = month_range(first_day)
    timesheets = db.query(Timesheet).filter(
        Timesheet.project_id == project_id,
        Timesheet.submitted_at >= date_range.start,
        Timesheet.submitted_at <= date_range.end,
    ).all()
    if current_user.role == UserRole.USER.value:
        timesheets = [t for t in timesheets if t.user_id == current_user.id]

    usage = utilization(project, timesheets, date_range)
    user_ids = {t.user_id for t in timesheets}
    users = db.query(User).filter(User.id.in_(user_ids)).all() if user_ids else []

    return ProjectUtilizationResponse(
        project=ProjectResponse.model_validate(project),
        month=first_day.strftime("%Y-%m"),
        total_hours=usage.total_hours,
        allocated_hours=project.allocated_hours,
        utilization_percent=usage.utilization_percent,
        users=project_user_breakdown(timesheets, {u.id: u.display_name for u in users}),
    )
