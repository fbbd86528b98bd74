from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List, Literal
from datetime import datetime

Role = Literal["user", "manager", "admin"]


class UserBase(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    full_name: Optional[str] = None
    email: Optional[EmailStr] = None
    role: Role = "user"
    manager_id: Optional[int] = None


class UserCreate(UserBase):
    password: str = Field(..., min_length=6)
    assigned_projects: List[int] = []


class UserUpdate(BaseModel):
    full_name: Optional[str] = None
    email: Optional[EmailStr] = None
    role: Optional[Role] = None
    manager_id: Optional[int] = None
    is_active: Optional[bool] = None
    password: Optional[str] = Field(None, min_length=6)
    assigned_projects: Optional[List[int]] = None


class UserResponse(UserBase):
    id: int
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class UserSummary(BaseModel):
    id: int
    username: str
    full_name: Optional[str] = None
    role: str

    class Config:
        from_attributes = True


class UserDetail(UserResponse):
    manager: Optional[UserSummary] = None
    team: List[UserSummary] = []
    project_ids: List[int] = []


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = None
    email: Optional[EmailStr] = None


class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=6)


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
