from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import Optional
from app.core.database import get_db
from app.core.exceptions import FetchError
from app.models.user import User, UserRole
from app.models.project import Project
from app.models.timesheet import Timesheet
from app.schemas.timesheet import OverviewResponse, ProjectUtilizationItem, WeekBucketResponse
from app.services.aggregation_service import (
    dashboard_stats, month_range, parse_month, utilization, weekly_series
)
from app.api.deps import get_current_user
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("/overview", response_model=OverviewResponse)
async def get_overview(
    month: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Monthly overview: summary cards, project utilization and the weekly chart.

    Regular users only see their own timesheets and the projects they are
    assigned to. Managers and admins see everything. Cards, utilization and
    chart all count the same rows: those submitted during the month.
    """
    try:
        first_day = parse_month(month)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    date_range = month_range(first_day)

    project_query = db.query(Project)
    timesheet_query = db.query(Timesheet).filter(
        Timesheet.submitted_at >= date_range.start,
        Timesheet.submitted_at <= date_range.end,
    )
    if current_user.role == UserRole.USER.value:
        project_query = project_query.filter(Project.members.any(User.id == current_user.id))
        timesheet_query = timesheet_query.filter(Timesheet.user_id == current_user.id)

    try:
        projects = project_query.order_by(Project.name).all()
        timesheets = timesheet_query.all()
    except SQLAlchemyError as e:
        logger.error(f"Error loading dashboard for user {current_user.id}: {e}")
        raise FetchError("Failed to load data. Please try again.")

    project_items = []
    for project in projects:
        usage = utilization(project, timesheets, date_range)
        if usage.utilization_percent > 0:
            project_items.append(ProjectUtilizationItem(
                id=project.id,
                name=project.name,
                allocated_hours=project.allocated_hours,
                total_hours=usage.total_hours,
                utilization_percent=usage.utilization_percent,
            ))

    weekly = [
        WeekBucketResponse(**bucket._asdict())
        for bucket in weekly_series(timesheets, date_range, current_user.role, projects)
    ]

    return OverviewResponse(
        month=first_day.strftime("%Y-%m"),
        stats=dashboard_stats(projects, timesheets),
        projects=project_items,
        weekly=weekly,
    )
