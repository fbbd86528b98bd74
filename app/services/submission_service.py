"""
Weekly hour submission.

A submission replaces the owner's whole week: every row for
``(user, week_number, year)`` that is not approved is deleted and one pending
row per project with hours is inserted, all inside a single transaction.
Approved rows stay as they are and cannot be named in a submission.
Validation runs first, so a rejected submission never touches stored rows.
"""
import logging
from datetime import datetime
from typing import Dict, List, Mapping, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload
from app.core.exceptions import (
    AuthorizationError, FetchError, NotFoundError, PersistenceError, ValidationError
)
from app.models.project import Project
from app.models.timesheet import Timesheet, TimesheetStatus
from app.models.user import User
from app.services.aggregation_service import DAY_FIELDS, weekly_project_total

logger = logging.getLogger(__name__)

APPROVED_LOCKED = "Approved timesheets cannot be edited"

HoursBuffer = Mapping[int, Mapping[str, Optional[float]]]


def _has_hours(hours_by_day: Optional[Mapping[str, Optional[float]]]) -> bool:
    return any((hours_by_day or {}).get(day) for day in DAY_FIELDS)


def build_rows(
    user_id: int,
    week_number: int,
    year: int,
    buffer: HoursBuffer,
    now: Optional[datetime] = None
) -> List[Timesheet]:
    """Turn an edit buffer into fresh pending rows, dropping all-zero projects."""
    kept = {project_id: hours for project_id, hours in (buffer or {}).items() if _has_hours(hours)}
    if not kept:
        raise ValidationError("No hours to submit")

    submitted_at = now or datetime.utcnow()
    rows = []
    for project_id, hours in kept.items():
        row = Timesheet(
            user_id=user_id,
            project_id=project_id,
            week_number=week_number,
            year=year,
            status=TimesheetStatus.PENDING.value,
            submitted_at=submitted_at,
            approved_by=None,
            approved_at=None,
            rejection_reason=None,
            **{day: float(hours.get(day) or 0) for day in DAY_FIELDS}
        )
        row.refresh_total()
        rows.append(row)
    return rows


def _check_projects(db: Session, user: User, project_ids) -> None:
    assigned = {
        p.id: p for p in db.query(Project)
        .filter(Project.id.in_(project_ids), Project.members.any(User.id == user.id))
        .all()
    }
    for project_id in project_ids:
        project = assigned.get(project_id)
        if project is None:
            raise AuthorizationError(f"You are not assigned to project {project_id}")
        if not project.is_active:
            raise ValidationError(f"Project '{project.name}' is not active")


def submit_week(
    db: Session,
    user: User,
    week_number: int,
    year: int,
    buffer: HoursBuffer,
    now: Optional[datetime] = None
) -> List[Timesheet]:
    """Replace the user's timesheets for one week with the buffer's contents."""
    rows = build_rows(user.id, week_number, year, buffer, now)
    _check_projects(db, user, [row.project_id for row in rows])

    existing = db.query(Timesheet).filter(
        Timesheet.user_id == user.id,
        Timesheet.week_number == week_number,
        Timesheet.year == year,
    ).all()
    # Approved rows are final; only the rest of the week is replaced
    locked = {t.project_id for t in existing if t.is_approved}
    if locked.intersection(row.project_id for row in rows):
        raise ValidationError(APPROVED_LOCKED)
    replaced = [t for t in existing if not t.is_approved]

    try:
        for timesheet in replaced:
            db.delete(timesheet)
        db.flush()
        db.add_all(rows)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error submitting week {week_number}/{year} for user {user.id}: {e}")
        raise PersistenceError("Failed to submit timesheets. Your previous submission was kept.")

    for row in rows:
        db.refresh(row)
    logger.info(
        f"User {user.id} submitted week {week_number}/{year}: "
        f"{len(rows)} project(s), replaced {len(replaced)} row(s)"
    )
    return rows


def _as_buffer_row(timesheet: Timesheet) -> Dict[str, float]:
    return {day: getattr(timesheet, day) or 0.0 for day in DAY_FIELDS}


def week_buffer(db: Session, user: User, week_number: int, year: int) -> Dict[int, Dict[str, float]]:
    """Editable hours for a week; approved rows are left out."""
    try:
        timesheets = db.query(Timesheet).filter(
            Timesheet.user_id == user.id,
            Timesheet.week_number == week_number,
            Timesheet.year == year,
        ).all()
    except SQLAlchemyError as e:
        logger.error(f"Error loading week {week_number}/{year} for user {user.id}: {e}")
        raise FetchError("Failed to load data. Please try again.")

    return {t.project_id: _as_buffer_row(t) for t in timesheets if not t.is_approved}


def load_for_edit(db: Session, user: User, timesheet_id: int) -> dict:
    """Load one submitted timesheet back into an edit buffer."""
    timesheet = db.query(Timesheet).filter(Timesheet.id == timesheet_id).first()
    if not timesheet:
        raise NotFoundError("Timesheet not found")
    if timesheet.user_id != user.id:
        raise AuthorizationError("You can only edit your own timesheets")
    if timesheet.is_approved:
        raise ValidationError(APPROVED_LOCKED)

    # The form edits the whole week, so the sibling rows come along
    hours = week_buffer(db, user, timesheet.week_number, timesheet.year)
    return {
        "timesheet_id": timesheet.id,
        "week_number": timesheet.week_number,
        "year": timesheet.year,
        "status": timesheet.status,
        "rejection_reason": timesheet.rejection_reason,
        "hours": hours,
        "weekly_total": weekly_project_total(hours.get(timesheet.project_id)),
    }


def recent_submissions(db: Session, user: User, limit: int = 10) -> List[Timesheet]:
    try:
        return (
            db.query(Timesheet)
            .options(joinedload(Timesheet.project), joinedload(Timesheet.approver))
            .filter(Timesheet.user_id == user.id)
            .order_by(Timesheet.submitted_at.desc())
            .limit(limit)
            .all()
        )
    except SQLAlchemyError as e:
        logger.error(f"Error loading submissions for user {user.id}: {e}")
        raise FetchError("Failed to load data. Please try again.")
