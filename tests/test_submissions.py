from datetime import date, datetime

import pytest
from sqlalchemy.exc import SQLAlchemyError
from app.core.exceptions import PersistenceError, ValidationError
from app.models.project import Project
from app.models.timesheet import Timesheet
from app.models.user import User
from app.services import submission_service
from conftest import TestingSessionLocal, client, full_week, login, make_user


def submit(headers, hours, week_number=10, year=2024):
    return client.post(
        "/api/timesheets/submit",
        json={"week_number": week_number, "year": year, "hours": hours},
        headers=headers
    )


def stored_week(db, user_id, week_number=10, year=2024):
    db.expire_all()
    rows = db.query(Timesheet).filter(
        Timesheet.user_id == user_id,
        Timesheet.week_number == week_number,
        Timesheet.year == year,
    ).all()
    return sorted(
        (t.project_id, t.monday_hours, t.tuesday_hours, t.wednesday_hours,
         t.thursday_hours, t.friday_hours, t.status)
        for t in rows
    )


def test_build_rows_drops_empty_projects():
    buffer = {
        1: {"monday_hours": 8, "friday_hours": 1.5},
        2: {"monday_hours": 0, "tuesday_hours": None},
    }
    rows = submission_service.build_rows(7, 10, 2024, buffer, now=datetime(2024, 3, 8))

    assert len(rows) == 1
    row = rows[0]
    assert (row.user_id, row.project_id, row.status) == (7, 1, "pending")
    assert row.total_hours == 9.5
    assert row.submitted_at == datetime(2024, 3, 8)
    assert row.rejection_reason is None


def test_build_rows_rejects_all_zero_buffer():
    with pytest.raises(ValidationError):
        submission_service.build_rows(7, 10, 2024, {1: {"monday_hours": 0}})
    with pytest.raises(ValidationError):
        submission_service.build_rows(7, 10, 2024, {})


def test_submit_creates_pending_rows(employee, project):
    response = submit(login("employee"), full_week(project.id, hours=7.5, friday=4))
    assert response.status_code == 201, response.text

    rows = response.json()
    assert len(rows) == 1
    assert rows[0]["status"] == "pending"
    assert rows[0]["total_hours"] == 34
    assert rows[0]["project"]["name"] == "Apollo"


def test_all_zero_submission_leaves_week_untouched(db, employee, project):
    headers = login("employee")
    submit(headers, full_week(project.id))
    before = stored_week(db, employee.id)

    response = submit(headers, full_week(project.id, hours=0))
    assert response.status_code == 400
    assert response.json() == {"detail": "No hours to submit", "error": "validation"}
    assert stored_week(db, employee.id) == before


def test_resubmitting_same_buffer_is_idempotent(db, employee, project):
    headers = login("employee")
    submit(headers, full_week(project.id))
    first = stored_week(db, employee.id)

    assert submit(headers, full_week(project.id)).status_code == 201
    assert stored_week(db, employee.id) == first


def test_resubmission_replaces_whole_week(db, acme, employee, project):
    other = Project(name="Gemini", client_id=acme.id, allocated_hours=10)
    other.members.append(employee)
    db.add(other)
    db.commit()

    headers = login("employee")
    both = dict(full_week(project.id), **full_week(other.id, hours=1))
    assert submit(headers, both).status_code == 201
    assert len(stored_week(db, employee.id)) == 2

    assert submit(headers, full_week(other.id, hours=2)).status_code == 201
    assert stored_week(db, employee.id) == [(other.id, 2, 2, 2, 2, 0, "pending")]


def test_submission_with_approved_row_is_refused(db, manager, employee, project):
    headers = login("employee")
    row = submit(headers, full_week(project.id)).json()[0]
    client.post(f"/api/approvals/{row['id']}/approve", headers=login("manager"))

    response = submit(headers, full_week(project.id, hours=1))
    assert response.status_code == 400
    assert response.json()["detail"] == "Approved timesheets cannot be edited"
    assert stored_week(db, employee.id) == [(project.id, 8, 8, 8, 8, 0, "approved")]

    response = client.get(f"/api/timesheets/{row['id']}/edit", headers=headers)
    assert response.status_code == 400


def test_rejected_row_resubmittable_next_to_approved_sibling(db, acme, manager, employee, project):
    borealis = Project(name="Borealis", client_id=acme.id, allocated_hours=20)
    borealis.members.append(employee)
    db.add(borealis)
    db.commit()

    headers = login("employee")
    both = dict(full_week(project.id), **full_week(borealis.id, hours=4))
    rows = {r["project_id"]: r for r in submit(headers, both).json()}

    manager_headers = login("manager")
    client.post(f"/api/approvals/{rows[project.id]['id']}/approve", headers=manager_headers)
    client.post(
        f"/api/approvals/{rows[borealis.id]['id']}/reject",
        json={"reason": "Split across days"},
        headers=manager_headers
    )

    edit = client.get(f"/api/timesheets/{rows[borealis.id]['id']}/edit", headers=headers).json()
    assert list(edit["hours"]) == [str(borealis.id)]

    response = submit(headers, full_week(borealis.id, hours=2, friday=8))
    assert response.status_code == 201, response.text
    assert stored_week(db, employee.id) == sorted([
        (project.id, 8, 8, 8, 8, 0, "approved"),
        (borealis.id, 2, 2, 2, 2, 8, "pending"),
    ])


def test_unassigned_project_is_forbidden(db, acme, employee, project):
    stranger = Project(name="Secret", client_id=acme.id)
    db.add(stranger)
    db.commit()

    response = submit(login("employee"), full_week(stranger.id))
    assert response.status_code == 403
    assert stored_week(db, employee.id) == []


def test_inactive_project_is_refused(db, employee, project):
    project.archive()
    db.commit()

    response = submit(login("employee"), full_week(project.id))
    assert response.status_code == 400
    assert response.json()["error"] == "validation"


@pytest.mark.parametrize("hours", [-1, 24.5, 7.3])
def test_invalid_hours_are_rejected(employee, project, hours):
    response = submit(login("employee"), full_week(project.id, hours=hours))
    assert response.status_code == 422


def test_blank_hours_count_as_zero(employee, project):
    hours = full_week(project.id)
    hours[str(project.id)]["friday_hours"] = ""
    response = submit(login("employee"), hours)
    assert response.status_code == 201
    assert response.json()[0]["friday_hours"] == 0


def test_nonexistent_iso_week_is_rejected(employee, project):
    response = submit(login("employee"), full_week(project.id), week_number=53, year=2023)
    assert response.status_code == 422


def test_failed_write_keeps_previous_submission(db, employee, project, monkeypatch):
    submit(login("employee"), full_week(project.id))
    before = stored_week(db, employee.id)

    session = TestingSessionLocal()
    try:
        def broken_commit():
            raise SQLAlchemyError("disk full")

        monkeypatch.setattr(session, "commit", broken_commit)
        owner = session.get(User, employee.id)
        with pytest.raises(PersistenceError):
            submission_service.submit_week(session, owner, 10, 2024, {project.id: {"monday_hours": 1}})
    finally:
        session.close()

    assert stored_week(db, employee.id) == before


def test_week_view_excludes_approved_rows_from_buffer(db, manager, employee, project):
    headers = login("employee")
    row = submit(headers, full_week(project.id)).json()[0]

    week = client.get("/api/timesheets/week?week_number=10&year=2024", headers=headers).json()
    assert week["start_date"] == "2024-03-04"
    assert week["hours"][str(project.id)]["monday_hours"] == 8
    assert week["weekly_totals"][str(project.id)] == 32

    client.post(f"/api/approvals/{row['id']}/approve", headers=login("manager"))
    week = client.get("/api/timesheets/week?week_number=10&year=2024", headers=headers).json()
    assert week["hours"] == {}
    assert [t["status"] for t in week["timesheets"]] == ["approved"]


def test_load_for_edit(db, employee, project):
    headers = login("employee")
    row = submit(headers, full_week(project.id, friday=2)).json()[0]

    response = client.get(f"/api/timesheets/{row['id']}/edit", headers=headers)
    assert response.status_code == 200
    data = response.json()
    assert (data["week_number"], data["year"], data["status"]) == (10, 2024, "pending")
    assert data["hours"][str(project.id)]["friday_hours"] == 2
    assert data["weekly_total"] == 34

    make_user(db, "nosy")
    response = client.get(f"/api/timesheets/{row['id']}/edit", headers=login("nosy"))
    assert response.status_code == 403


def test_my_timesheets_and_week_options(employee, project):
    headers = login("employee")
    submit(headers, full_week(project.id), week_number=9)
    submit(headers, full_week(project.id), week_number=10)

    mine = client.get("/api/timesheets/mine", headers=headers).json()
    assert {t["week_number"] for t in mine} == {9, 10}

    weeks = client.get("/api/timesheets/weeks", headers=headers).json()
    assert len(weeks) == 17
    assert date.fromisoformat(weeks[0]["start_date"]).weekday() == 0
