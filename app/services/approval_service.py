"""
Approval workflow for submitted timesheets.

    pending --approve--> approved   (terminal)
    pending --reject---> rejected   (left only by the owner resubmitting the week)

Managers act on their own team. Admins act on managers and on users with no
manager. Transitions are applied with a compare-and-swap on ``status`` so two
approvers racing on the same row cannot both win.
"""
import logging
from datetime import datetime
from typing import List, Optional
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload
from app.core.exceptions import (
    AuthorizationError, ConflictError, FetchError, InvalidTransition,
    NotFoundError, PersistenceError, ValidationError
)
from app.models.timesheet import Timesheet, TimesheetStatus
from app.models.user import User, UserRole

logger = logging.getLogger(__name__)


def can_act_on(actor: User, owner: User) -> bool:
    """Whether ``actor`` may approve or reject timesheets owned by ``owner``."""
    if actor is None or owner is None:
        return False
    if actor.role == UserRole.MANAGER.value:
        return owner.manager_id == actor.id
    if actor.role == UserRole.ADMIN.value:
        return owner.role == UserRole.MANAGER.value or owner.manager_id is None
    return False


def _with_details(query):
    return query.options(
        joinedload(Timesheet.user),
        joinedload(Timesheet.project),
        joinedload(Timesheet.approver),
    )


def _require_approver(actor: User):
    if actor.role not in (UserRole.MANAGER.value, UserRole.ADMIN.value):
        raise AuthorizationError("Only managers and admins can review timesheets")


def pending_queue(db: Session, actor: User) -> List[Timesheet]:
    """Pending timesheets this approver is responsible for."""
    _require_approver(actor)
    query = _with_details(
        db.query(Timesheet)
        .join(User, Timesheet.user_id == User.id)
        .filter(Timesheet.status == TimesheetStatus.PENDING.value)
    )
    if actor.role == UserRole.MANAGER.value:
        query = query.filter(User.manager_id == actor.id)
    else:
        query = query.filter(or_(User.role == UserRole.MANAGER.value, User.manager_id.is_(None)))

    try:
        return query.order_by(Timesheet.submitted_at.desc()).all()
    except SQLAlchemyError as e:
        logger.error(f"Error loading pending queue for user {actor.id}: {e}")
        raise FetchError("Failed to load timesheets. Please try refreshing the page.")


def approved_list(db: Session, actor: User) -> List[Timesheet]:
    """Approved timesheets: the team's for a manager, everything for an admin."""
    _require_approver(actor)
    query = _with_details(
        db.query(Timesheet)
        .join(User, Timesheet.user_id == User.id)
        .filter(Timesheet.status == TimesheetStatus.APPROVED.value)
    )
    if actor.role == UserRole.MANAGER.value:
        query = query.filter(User.manager_id == actor.id)

    try:
        return query.order_by(Timesheet.submitted_at.desc()).all()
    except SQLAlchemyError as e:
        logger.error(f"Error loading approved timesheets for user {actor.id}: {e}")
        raise FetchError("Failed to load timesheets. Please try refreshing the page.")


def _transition(db: Session, actor: User, timesheet_id: int, values: dict, action: str) -> Timesheet:
    new_status = values["status"]
    timesheet = db.query(Timesheet).filter(Timesheet.id == timesheet_id).first()
    if not timesheet:
        raise NotFoundError("Timesheet not found")

    if not timesheet.is_pending:
        raise InvalidTransition(f"Only pending timesheets can be {new_status}; this one is {timesheet.status}")

    if not can_act_on(actor, timesheet.user):
        raise AuthorizationError(f"You are not allowed to review timesheets of {timesheet.user.display_name}")

    try:
        affected = (
            db.query(Timesheet)
            .filter(Timesheet.id == timesheet_id, Timesheet.status == TimesheetStatus.PENDING.value)
            .update(values, synchronize_session=False)
        )
        if affected == 0:
            db.rollback()
            raise ConflictError("This timesheet was already reviewed by someone else")
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error trying to mark timesheet {timesheet_id} as {new_status}: {e}")
        raise PersistenceError(f"Failed to {action} timesheet. Please try again.")

    db.refresh(timesheet)
    logger.info(f"Timesheet {timesheet_id} {new_status} by user {actor.id}")
    return timesheet


def approve(db: Session, actor: User, timesheet_id: int, now: Optional[datetime] = None) -> Timesheet:
    return _transition(db, actor, timesheet_id, {
        "status": TimesheetStatus.APPROVED.value,
        "approved_by": actor.id,
        "approved_at": now or datetime.utcnow(),
        "rejection_reason": None,
    }, "approve")


def reject(
    db: Session,
    actor: User,
    timesheet_id: int,
    reason: Optional[str],
    now: Optional[datetime] = None
) -> Timesheet:
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("A rejection reason is required")

    return _transition(db, actor, timesheet_id, {
        "status": TimesheetStatus.REJECTED.value,
        "approved_by": actor.id,
        "approved_at": now or datetime.utcnow(),
        "rejection_reason": reason,
    }, "reject")
