"""
Hour aggregation over timesheet rows.

Every total shown by the API is computed here from the five day fields.
The stored ``total_hours`` column is only a display cache and is never used
as input. All functions are pure: they accept ORM objects or plain mappings
and never touch the database.
"""
import calendar
from datetime import date, datetime, time, timedelta
from typing import Dict, Iterable, List, Mapping, NamedTuple, Optional, Sequence, Tuple

DAY_FIELDS = (
    "monday_hours",
    "tuesday_hours",
    "wednesday_hours",
    "thursday_hours",
    "friday_hours",
)


class DateRange(NamedTuple):
    start: datetime
    end: datetime

    def contains(self, moment: Optional[datetime]) -> bool:
        if moment is None:
            return False
        return self.start <= moment <= self.end


class Utilization(NamedTuple):
    total_hours: float
    utilization_percent: float


class WeekBucket(NamedTuple):
    label: str
    week_number: int
    year: int
    start: date
    hours: float
    per_project: Optional[Dict[str, float]]


def _field(record, name: str):
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def daily_total(timesheet) -> float:
    """Sum of the five day fields; missing values count as zero."""
    return float(sum((_field(timesheet, day) or 0) for day in DAY_FIELDS))


def weekly_project_total(hours_by_day: Optional[Mapping[str, Optional[float]]]) -> float:
    """Total of an in-progress edit row, before it is persisted."""
    if not hours_by_day:
        return 0.0
    return float(sum((hours or 0) for hours in hours_by_day.values()))


def utilization(project, timesheets: Iterable, date_range: DateRange) -> Utilization:
    project_id = _field(project, "id")
    total = sum(
        daily_total(t)
        for t in timesheets
        if _field(t, "project_id") == project_id and date_range.contains(_field(t, "submitted_at"))
    )
    allocated = _field(project, "allocated_hours") or 0
    percent = (total / allocated) * 100 if allocated > 0 else 0.0
    return Utilization(total_hours=float(total), utilization_percent=float(percent))


# Week helpers. ISO-8601 numbering everywhere: Monday start, ISO week-year.

def iso_week(day: date) -> Tuple[int, int]:
    """Return ``(week_number, year)`` using the ISO week-numbering year."""
    iso = day.isocalendar()
    return iso[1], iso[0]


def week_start(week_number: int, year: int) -> date:
    return date.fromisocalendar(year, week_number, 1)


def monday_of(day: date) -> date:
    return day - timedelta(days=day.weekday())


def month_range(day: date) -> DateRange:
    last = calendar.monthrange(day.year, day.month)[1]
    return DateRange(
        start=datetime.combine(date(day.year, day.month, 1), time.min),
        end=datetime.combine(date(day.year, day.month, last), time.max),
    )


def parse_month(value: Optional[str], today: Optional[date] = None) -> date:
    """Parse ``YYYY-MM``; defaults to the current month."""
    if not value:
        return (today or date.today()).replace(day=1)
    try:
        year, month = value.split("-")
        return date(int(year), int(month), 1)
    except ValueError:
        raise ValueError(f"Invalid month '{value}', expected YYYY-MM")


def available_weeks(today: date, back: int = 12, ahead: int = 4) -> List[dict]:
    """Weeks offered by the submission form, oldest first."""
    first = monday_of(today) - timedelta(weeks=back)
    weeks = []
    for i in range(back + ahead + 1):
        start = first + timedelta(weeks=i)
        week_number, year = iso_week(start)
        weeks.append({
            "week_number": week_number,
            "year": year,
            "start_date": start,
            "end_date": start + timedelta(days=4),
        })
    return weeks


def weekly_series(
    timesheets: Sequence,
    month: DateRange,
    role: str,
    projects: Sequence = (),
) -> List[WeekBucket]:
    """
    Bucket timesheets into the calendar weeks overlapping ``month``.

    Buckets start on the Monday on or before the first of the month and
    advance a week at a time while the bucket start is still inside the
    month. A ``user`` gets one total per bucket; approvers get a subtotal
    for every visible project, zero-filled so the chart keeps its shape.
    """
    by_week: Dict[Tuple[int, int], list] = {}
    for t in timesheets:
        key = (_field(t, "week_number"), _field(t, "year"))
        by_week.setdefault(key, []).append(t)

    project_names = {_field(p, "id"): _field(p, "name") for p in projects}

    buckets = []
    current = monday_of(month.start.date())
    month_end = month.end.date()
    while current <= month_end:
        week_number, year = iso_week(current)
        rows = by_week.get((week_number, year), [])
        total = float(sum(daily_total(t) for t in rows))

        per_project = None
        if role != "user":
            per_project = {name: 0.0 for name in project_names.values()}
            for t in rows:
                name = project_names.get(_field(t, "project_id"))
                if name is not None:
                    per_project[name] += daily_total(t)

        buckets.append(WeekBucket(
            label=f"Week {week_number}",
            week_number=week_number,
            year=year,
            start=current,
            hours=total,
            per_project=per_project,
        ))
        current += timedelta(days=7)
    return buckets


def project_user_breakdown(timesheets: Iterable, users: Mapping[int, str]) -> List[dict]:
    """Hours per user for one project, largest contributor first."""
    totals: Dict[int, float] = {}
    for t in timesheets:
        user_id = _field(t, "user_id")
        totals[user_id] = totals.get(user_id, 0.0) + daily_total(t)
    breakdown = [
        {"user_id": user_id, "name": users.get(user_id, "Unknown User"), "hours": hours}
        for user_id, hours in totals.items()
    ]
    return sorted(breakdown, key=lambda row: row["hours"], reverse=True)


def dashboard_stats(projects: Sequence, timesheets: Sequence) -> dict:
    return {
        "total_hours": float(sum(daily_total(t) for t in timesheets)),
        "active_projects": len([
            p for p in projects
            if _field(p, "is_active") and not _field(p, "completed_at")
        ]),
        "pending_submissions": len([t for t in timesheets if _field(t, "status") == "pending"]),
        "approved_submissions": len([t for t in timesheets if _field(t, "status") == "approved"]),
    }
