from sqlalchemy import Column, Integer, String, Float, DateTime, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
import enum
from app.core.database import Base
from app.services.aggregation_service import daily_total


class TimesheetStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Timesheet(Base):
    __tablename__ = "timesheets"
    __table_args__ = (
        UniqueConstraint("user_id", "project_id", "week_number", "year", name="uq_timesheet_user_project_week"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    week_number = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)

    monday_hours = Column(Float, default=0.0, nullable=False)
    tuesday_hours = Column(Float, default=0.0, nullable=False)
    wednesday_hours = Column(Float, default=0.0, nullable=False)
    thursday_hours = Column(Float, default=0.0, nullable=False)
    friday_hours = Column(Float, default=0.0, nullable=False)
    # Display cache only, recomputed on every write
    total_hours = Column(Float, default=0.0, nullable=False)

    status = Column(String(20), default=TimesheetStatus.PENDING.value, nullable=False, index=True)
    submitted_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    approved_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    approved_at = Column(DateTime, nullable=True)
    rejection_reason = Column(Text, nullable=True)

    # Relationships
    user = relationship("User", back_populates="timesheets", foreign_keys=[user_id])
    approver = relationship("User", foreign_keys=[approved_by])
    project = relationship("Project", back_populates="timesheets")

    def __repr__(self):
        return f"<Timesheet user={self.user_id} project={self.project_id} W{self.week_number}/{self.year} {self.status}>"

    def refresh_total(self) -> float:
        self.total_hours = daily_total(self)
        return self.total_hours

    @property
    def is_approved(self) -> bool:
        return self.status == TimesheetStatus.APPROVED.value

    @property
    def is_pending(self) -> bool:
        return self.status == TimesheetStatus.PENDING.value
