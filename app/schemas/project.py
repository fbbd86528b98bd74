from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from app.models.project import ProjectState
from app.schemas.client import ClientResponse


class ProjectBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    client_id: int
    allocated_hours: float = Field(0, ge=0)


class ProjectCreate(ProjectBase):
    member_ids: List[int] = []


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    client_id: Optional[int] = None
    allocated_hours: Optional[float] = Field(None, ge=0)
    member_ids: Optional[List[int]] = None


class ProjectResponse(ProjectBase):
    id: int
    is_active: bool
    completed_at: Optional[datetime] = None
    state: ProjectState
    created_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    client: Optional[ClientResponse] = None

    class Config:
        from_attributes = True


class UserHours(BaseModel):
    user_id: int
    name: str
    hours: float


class ProjectUtilizationResponse(BaseModel):
    project: ProjectResponse
    month: str
    total_hours: float
    allocated_hours: float
    utilization_percent: float
    users: List[UserHours]
