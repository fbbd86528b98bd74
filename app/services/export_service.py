import pandas as pd
from typing import List, Optional
from io import BytesIO
from datetime import date, datetime
from app.services.aggregation_service import DAY_FIELDS, daily_total

CSV_COLUMNS = [
    "Week", "Year", "Project", "User",
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday",
    "Total Hours", "Status", "Submitted", "Approved By", "Approved At", "Rejection Reason",
]

EXPORTABLE_STATUSES = ("approved", "pending")


def format_hours(value: Optional[float]) -> str:
    """Render hours without a trailing ``.0`` (8.0 -> "8", 7.5 -> "7.5")."""
    value = float(value or 0)
    return f"{value:g}"


def format_day(value: Optional[datetime]) -> str:
    return value.strftime('%Y-%m-%d') if value else ""


class ExportService:
    """Service for exporting timesheets to CSV."""

    @staticmethod
    def timesheet_row(timesheet) -> dict:
        project = timesheet.project
        user = timesheet.user
        approver = timesheet.approver
        row = {
            "Week": timesheet.week_number,
            "Year": timesheet.year,
            "Project": project.name if project else "Unknown Project",
            "User": user.display_name if user else "Unknown User",
        }
        for column, day in zip(CSV_COLUMNS[4:9], DAY_FIELDS):
            row[column] = format_hours(getattr(timesheet, day))
        row.update({
            "Total Hours": format_hours(daily_total(timesheet)),
            "Status": timesheet.status,
            "Submitted": format_day(timesheet.submitted_at),
            "Approved By": approver.display_name if approver else "",
            "Approved At": format_day(timesheet.approved_at),
            "Rejection Reason": timesheet.rejection_reason or "",
        })
        return row

    def export_timesheets_csv(self, timesheets: List) -> BytesIO:
        """
        Export timesheets to CSV format.

        Args:
            timesheets: Timesheet rows with user, project and approver loaded

        Returns:
            BytesIO object containing CSV data
        """
        df = pd.DataFrame([self.timesheet_row(t) for t in timesheets], columns=CSV_COLUMNS)

        buffer = BytesIO()
        df.to_csv(buffer, index=False, encoding='utf-8')
        buffer.seek(0)

        return buffer

    @staticmethod
    def export_filename(status: str, today: Optional[date] = None) -> str:
        return f"{status}-timesheets-{(today or datetime.utcnow().date()).strftime('%Y-%m-%d')}.csv"


# Singleton instance
export_service = ExportService()
