from app.schemas.user import (
    UserCreate, UserUpdate, UserResponse, UserSummary, UserDetail,
    ProfileUpdate, PasswordChange, Token
)
from app.schemas.client import (
    ClientCreate, ClientUpdate, ClientResponse
)
from app.schemas.project import (
    ProjectCreate, ProjectUpdate, ProjectResponse,
    UserHours, ProjectUtilizationResponse
)
from app.schemas.timesheet import (
    DayHours, WeekSubmission, RejectRequest, TimesheetResponse, TimesheetDetail,
    WeekOption, WeekView, EditBuffer, DashboardStats, ProjectUtilizationItem,
    WeekBucketResponse, OverviewResponse
)

__all__ = [
    "UserCreate", "UserUpdate", "UserResponse", "UserSummary", "UserDetail",
    "ProfileUpdate", "PasswordChange", "Token",
    "ClientCreate", "ClientUpdate", "ClientResponse",
    "ProjectCreate", "ProjectUpdate", "ProjectResponse",
    "UserHours", "ProjectUtilizationResponse",
    "DayHours", "WeekSubmission", "RejectRequest", "TimesheetResponse", "TimesheetDetail",
    "WeekOption", "WeekView", "EditBuffer", "DashboardStats", "ProjectUtilizationItem",
    "WeekBucketResponse", "OverviewResponse",
]
