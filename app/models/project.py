from sqlalchemy import Column, Integer, String, Float, DateTime, Boolean, Text, Table, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
from typing import Optional
import enum
from app.core.database import Base
from app.core.exceptions import InvalidTransition


class ProjectState(str, enum.Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"
    COMPLETED = "completed"


# Many-to-Many relationship table
project_users = Table(
    'project_users',
    Base.metadata,
    Column('project_id', Integer, ForeignKey('projects.id', ondelete='CASCADE'), primary_key=True),
    Column('user_id', Integer, ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
    Column('assigned_at', DateTime, default=datetime.utcnow)
)


class Project(Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    allocated_hours = Column(Float, default=0.0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    completed_at = Column(DateTime, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    client = relationship("Client", back_populates="projects")
    members = relationship("User", secondary=project_users, back_populates="assigned_projects")
    timesheets = relationship("Timesheet", back_populates="project", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Project {self.name} ({self.state.value})>"

    @property
    def state(self) -> ProjectState:
        if self.completed_at is not None:
            return ProjectState.COMPLETED
        if self.is_active:
            return ProjectState.ACTIVE
        return ProjectState.ARCHIVED

    def _require_state(self, action: str, *allowed: ProjectState):
        if self.state not in allowed:
            raise InvalidTransition(f"Cannot {action} a project that is {self.state.value}")

    def archive(self):
        """Take the project out of rotation without marking it done."""
        self._require_state("archive", ProjectState.ACTIVE)
        self.is_active = False
        self.completed_at = None

    def complete(self, now: Optional[datetime] = None):
        self._require_state("complete", ProjectState.ACTIVE)
        self.is_active = False
        self.completed_at = now or datetime.utcnow()

    def reactivate(self):
        self._require_state("reactivate", ProjectState.ARCHIVED, ProjectState.COMPLETED)
        self.is_active = True
        self.completed_at = None
