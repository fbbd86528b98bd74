from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session, joinedload
from typing import List, Optional
from datetime import date
from app.core.config import settings
from app.core.database import get_db
from app.models.user import User
from app.models.timesheet import Timesheet
from app.schemas.timesheet import (
    WeekSubmission, WeekOption, WeekView, EditBuffer, TimesheetDetail
)
from app.services import submission_service
from app.services.aggregation_service import (
    available_weeks, iso_week, week_start, weekly_project_total
)
from app.api.deps import get_current_user

router = APIRouter(prefix="/timesheets", tags=["Timesheets"])


@router.get("/weeks", response_model=List[WeekOption])
async def list_weeks(current_user: User = Depends(get_current_user)):
    """Weeks offered by the submission form, oldest first."""
    return available_weeks(date.today(), settings.WEEKS_BACK, settings.WEEKS_AHEAD)


@router.get("/week", response_model=WeekView)
async def get_week(
    week_number: Optional[int] = Query(None, ge=1, le=53),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Editable hours for one week plus every row already stored for it."""
    if week_number is None or year is None:
        week_number, year = iso_week(date.today())
    try:
        start = week_start(week_number, year)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{year} has no ISO week {week_number}"
        )

    buffer = submission_service.week_buffer(db, current_user, week_number, year)
    timesheets = (
        db.query(Timesheet)
        .options(joinedload(Timesheet.project), joinedload(Timesheet.approver))
        .filter(
            Timesheet.user_id == current_user.id,
            Timesheet.week_number == week_number,
            Timesheet.year == year,
        )
        .all()
    )

    return WeekView(
        week_number=week_number,
        year=year,
        start_date=start,
        hours=buffer,
        weekly_totals={project_id: weekly_project_total(hours) for project_id, hours in buffer.items()},
        timesheets=[TimesheetDetail.model_validate(t) for t in timesheets],
    )


@router.post("/submit", response_model=List[TimesheetDetail], status_code=status.HTTP_201_CREATED)
async def submit_week(
    submission: WeekSubmission,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Replace the whole week with the submitted hours; every row becomes pending."""
    buffer = {project_id: hours.model_dump() for project_id, hours in submission.hours.items()}
    return submission_service.submit_week(
        db, current_user, submission.week_number, submission.year, buffer
    )


@router.get("/mine", response_model=List[TimesheetDetail])
async def list_my_timesheets(
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Most recent submissions of the current user."""
    return submission_service.recent_submissions(db, current_user, limit)


@router.get("/{timesheet_id}/edit", response_model=EditBuffer)
async def load_for_edit(
    timesheet_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return submission_service.load_for_edit(db, current_user, timesheet_id)
