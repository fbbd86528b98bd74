from app.models.user import User, UserRole
from app.models.client import Client
from app.models.project import Project, ProjectState, project_users
from app.models.timesheet import Timesheet, TimesheetStatus
from app.models.session import UserSession

__all__ = [
    "User",
    "UserRole",
    "Client",
    "Project",
    "ProjectState",
    "project_users",
    "Timesheet",
    "TimesheetStatus",
    "UserSession",
]
