from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List, Dict
from datetime import datetime, date
from app.core.config import settings
from app.schemas.user import UserSummary
from app.services.aggregation_service import daily_total


class DayHours(BaseModel):
    """Hours for one project across the working week."""
    monday_hours: float = Field(0, ge=0, le=24)
    tuesday_hours: float = Field(0, ge=0, le=24)
    wednesday_hours: float = Field(0, ge=0, le=24)
    thursday_hours: float = Field(0, ge=0, le=24)
    friday_hours: float = Field(0, ge=0, le=24)

    @field_validator(
        'monday_hours', 'tuesday_hours', 'wednesday_hours', 'thursday_hours', 'friday_hours',
        mode='before'
    )
    @classmethod
    def blank_is_zero(cls, v):
        if v is None or v == "":
            return 0
        return v

    @field_validator(
        'monday_hours', 'tuesday_hours', 'wednesday_hours', 'thursday_hours', 'friday_hours'
    )
    @classmethod
    def check_step(cls, v: float) -> float:
        if v > settings.MAX_DAY_HOURS:
            raise ValueError(f'Hours cannot exceed {settings.MAX_DAY_HOURS:g} per day')
        steps = v / settings.HOURS_STEP
        if abs(steps - round(steps)) > 1e-9:
            raise ValueError(f'Hours must be in steps of {settings.HOURS_STEP:g}')
        return v


class WeekSubmission(BaseModel):
    week_number: int = Field(..., ge=1, le=53)
    year: int = Field(..., ge=2000, le=2100)
    hours: Dict[int, DayHours]

    @model_validator(mode='after')
    def check_iso_week(self):
        try:
            date.fromisocalendar(self.year, self.week_number, 1)
        except ValueError:
            raise ValueError(f'{self.year} has no ISO week {self.week_number}')
        return self


class RejectRequest(BaseModel):
    reason: str = ""


class ProjectSummary(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class TimesheetResponse(BaseModel):
    id: int
    user_id: int
    project_id: int
    week_number: int
    year: int
    monday_hours: float
    tuesday_hours: float
    wednesday_hours: float
    thursday_hours: float
    friday_hours: float
    total_hours: float = 0
    status: str
    submitted_at: datetime
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None

    @model_validator(mode='after')
    def derive_total(self):
        # The stored column may be stale; always recompute
        self.total_hours = daily_total(self)
        return self

    class Config:
        from_attributes = True


class TimesheetDetail(TimesheetResponse):
    user: Optional[UserSummary] = None
    project: Optional[ProjectSummary] = None
    approver: Optional[UserSummary] = None


class WeekOption(BaseModel):
    week_number: int
    year: int
    start_date: date
    end_date: date


class WeekView(BaseModel):
    week_number: int
    year: int
    start_date: date
    hours: Dict[int, DayHours]
    weekly_totals: Dict[int, float]
    timesheets: List[TimesheetDetail]


class EditBuffer(BaseModel):
    timesheet_id: int
    week_number: int
    year: int
    status: str
    rejection_reason: Optional[str] = None
    hours: Dict[int, DayHours]
    weekly_total: float


class DashboardStats(BaseModel):
    total_hours: float
    active_projects: int
    pending_submissions: int
    approved_submissions: int


class ProjectUtilizationItem(BaseModel):
    id: int
    name: str
    allocated_hours: float
    total_hours: float
    utilization_percent: float


class WeekBucketResponse(BaseModel):
    label: str
    week_number: int
    year: int
    start: date
    hours: float
    per_project: Optional[Dict[str, float]] = None


class OverviewResponse(BaseModel):
    month: str
    stats: DashboardStats
    projects: List[ProjectUtilizationItem]
    weekly: List[WeekBucketResponse]
