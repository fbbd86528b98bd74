from app.models.timesheet import Timesheet
from app.models.user import User, UserRole
from conftest import client, full_week, login, make_user


def test_admin_creates_user_with_manager_and_projects(manager, project):
    response = client.post(
        "/api/users/",
        json={
            "username": "newbie",
            "password": "welcome1",
            "full_name": "New Bie",
            "role": "user",
            "manager_id": manager.id,
            "assigned_projects": [project.id],
        },
        headers=login("admin")
    )
    assert response.status_code == 201, response.text
    data = response.json()
    assert data["manager"]["username"] == "manager"
    assert data["project_ids"] == [project.id]

    assert login("newbie", "welcome1")


def test_duplicate_username(admin, employee):
    response = client.post(
        "/api/users/",
        json={"username": "employee", "password": "welcome1"},
        headers=login("admin")
    )
    assert response.status_code == 400


def test_manager_must_hold_approver_role(admin, employee):
    response = client.post(
        "/api/users/",
        json={"username": "newbie", "password": "welcome1", "manager_id": employee.id},
        headers=login("admin")
    )
    assert response.status_code == 400


def test_user_cannot_manage_themselves(admin, manager):
    response = client.put(
        f"/api/users/{manager.id}",
        json={"manager_id": manager.id},
        headers=login("admin")
    )
    assert response.status_code == 400


def test_only_admins_manage_users(manager, employee):
    assert client.get("/api/users/", headers=login("manager")).status_code == 403
    assert client.get("/api/users/", headers=login("employee")).status_code == 403


def test_list_users_includes_team(admin, manager, employee):
    users = client.get("/api/users/", headers=login("admin")).json()
    by_name = {u["username"]: u for u in users}

    assert [m["username"] for m in by_name["manager"]["team"]] == ["employee"]
    assert by_name["employee"]["manager"]["id"] == manager.id


def test_manager_lists_team(manager, employee):
    team = client.get("/api/users/team", headers=login("manager")).json()
    assert [u["username"] for u in team] == ["employee"]
    assert client.get("/api/users/team", headers=login("employee")).status_code == 403


def test_update_replaces_assignments_and_keeps_history(db, employee, project):
    row = client.post(
        "/api/timesheets/submit",
        json={"week_number": 10, "year": 2024, "hours": full_week(project.id)},
        headers=login("employee")
    ).json()[0]

    response = client.put(
        f"/api/users/{employee.id}",
        json={"assigned_projects": [], "full_name": "Eli Renamed"},
        headers=login("admin")
    )
    assert response.status_code == 200
    assert response.json()["project_ids"] == []
    assert response.json()["full_name"] == "Eli Renamed"

    db.expire_all()
    assert db.get(Timesheet, row["id"]) is not None


def test_password_reset(admin, employee):
    response = client.put(
        f"/api/users/{employee.id}",
        json={"password": "reset123"},
        headers=login("admin")
    )
    assert response.status_code == 200
    assert login("employee", "reset123")


def test_delete_manager_releases_team(db, admin, manager, employee, project):
    manager_id, employee_id = manager.id, employee.id
    row = client.post(
        "/api/timesheets/submit",
        json={"week_number": 10, "year": 2024, "hours": full_week(project.id)},
        headers=login("employee")
    ).json()[0]
    client.post(f"/api/approvals/{row['id']}/approve", headers=login("manager"))

    response = client.delete(f"/api/users/{manager_id}", headers=login("admin"))
    assert response.status_code == 204

    db.expire_all()
    assert db.get(User, manager_id) is None
    assert db.get(User, employee_id).manager_id is None
    timesheet = db.get(Timesheet, row["id"])
    assert timesheet.status == "approved"
    assert timesheet.approved_by is None


def test_admin_cannot_delete_self(admin):
    response = client.delete(f"/api/users/{admin.id}", headers=login("admin"))
    assert response.status_code == 400


def test_demoted_manager_loses_team(db, admin, manager, employee):
    response = client.put(
        f"/api/users/{manager.id}",
        json={"role": UserRole.USER.value},
        headers=login("admin")
    )
    assert response.status_code == 200
    assert response.json()["team"] == []

    db.expire_all()
    assert db.get(User, employee.id).manager_id is None


def test_deactivated_user_cannot_login(db, admin):
    target = make_user(db, "leaving")
    client.put(f"/api/users/{target.id}", json={"is_active": False}, headers=login("admin"))

    response = client.post("/api/auth/login", data={"username": "leaving", "password": "secret123"})
    assert response.status_code == 401
