from __future__ import annotations

import pytest

from orgdb.apps.accounts import services as account_services

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "AdminPass123"


@pytest.fixture()
def admin_headers(db_session, roles, client):
    user, _ = account_services.provision_user(
        db_session,
        email=ADMIN_EMAIL,
        password=ADMIN_PASSWORD,
        role_id=roles["super_admin"].id,
    )
    user.is_superuser = True
    db_session.commit()
    return _login(client, ADMIN_EMAIL, ADMIN_PASSWORD)


def _login(client, email, password):
    resp = client.post("/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


def _create_zone(client, headers, roles):
    resp = client.post(
        "/structure/zone/create",
        headers=headers,
        json={
            "users": [
                {
                    "username": "moti",
                    "email": "moti@gmail.com",
                    "phone_number": "+251985654322",
                    "sector_name": "HR",
                    "role_id": roles["sector_staff"].id,
                }
            ],
            "zoneDetail": {
                "zone_name": "Ilu A/BORA",
                "city_name": "Metu",
                "email_address": "amaedris1@gmail.com",
                "contact_phone_number": "+251987654321",
                "role_id": roles["zone_admin"].id,
            },
        },
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}
    assert client.get("/").status_code == 200


def test_requests_without_token_are_401(client):
    assert client.get("/structure/work/get").status_code == 401
    assert client.get("/auth/me").status_code == 401


def test_login_rejects_bad_password(client, admin_headers):
    resp = client.post("/auth/login", json={"email": ADMIN_EMAIL, "password": "nope"})
    assert resp.status_code == 401


def test_me_lists_capabilities(client, admin_headers):
    body = client.get("/auth/me", headers=admin_headers).json()
    assert body["email"] == ADMIN_EMAIL
    assert "can_create_work" in body["capabilities"]


def test_roles_are_listed_with_capabilities(client, admin_headers):
    body = client.get("/auth/roles", headers=admin_headers).json()
    by_name = {r["name"]: r for r in body}
    assert {"super_admin", "zone_admin", "sector_staff"} <= set(by_name)
    assert "can_create_zone_admin" not in by_name["sector_staff"]["capabilities"]


def test_validation_errors_are_400_with_field_messages(client, admin_headers):
    resp = client.post("/structure/work/create", headers=admin_headers, json={"cost": -5})
    assert resp.status_code == 400
    body = resp.json()
    assert body["detail"] == "Validation failed"
    fields = {e["field"] for e in body["errors"]}
    assert {"description", "cost"} <= fields


def test_missing_capability_is_403(client, admin_headers, roles):
    zone = _create_zone(client, admin_headers, roles)
    staff = zone["users"][0]
    staff_headers = _login(client, staff["email"], staff["temporary_password"])

    resp = client.post(
        "/structure/work/create", headers=staff_headers, json={"description": "Sneaky"}
    )
    assert resp.status_code == 403
    assert client.get("/structure/zone/get", headers=staff_headers).status_code == 403


def test_work_scenario_end_to_end(client, admin_headers, roles):
    zone = _create_zone(client, admin_headers, roles)
    assert zone["admin"]["temporary_password"]
    staff = zone["users"][0]
    sector_id = staff["sector_id"]

    resp = client.post(
        "/structure/work/create",
        headers=admin_headers,
        json={
            "description": "Paint fence",
            "sectorId": sector_id,
            "plannedStartDate": "2024-07-01",
            "plannedEndDate": "2024-07-31",
            "quantity": 100,
            "cost": 2000.00,
        },
    )
    assert resp.status_code == 201, resp.text
    work = resp.json()
    work_id = work["work_id"]
    assert work["status"] == "unassigned"

    first = client.get(f"/structure/work/get/{work_id}", headers=admin_headers).json()
    second = client.get(f"/structure/work/get/{work_id}", headers=admin_headers).json()
    assert first == second

    resp = client.post(
        f"/structure/work/assign/{work_id}",
        headers=admin_headers,
        json={"sector_ids": [sector_id]},
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["status"] == "assigned"
    assert resp.json()["sector_ids"] == [sector_id]

    resp = client.post(
        "/structure/work/weeklyTask/",
        headers=admin_headers,
        json={"workId": work_id, "sector_ids": [sector_id], "weekNumber": "4"},
    )
    assert resp.status_code == 201, resp.text
    (task,) = resp.json()
    assert task["status"] == "unassigned"
    assert task["picked_by"] is None
    task_id = task["weekly_task_id"]

    by_task = client.get(f"/structure/work/weeklyTask/{task_id}", headers=admin_headers)
    assert by_task.json()["weekly_task_id"] == task_id
    by_work = client.get(f"/structure/work/weeklyTask/{work_id}", headers=admin_headers)
    assert [t["weekly_task_id"] for t in by_work.json()] == [task_id]
    explicit = client.get(f"/structure/work/weeklyTask/work/{work_id}", headers=admin_headers)
    assert explicit.json() == by_work.json()
    assert client.get("/structure/work/weeklyTask/unknown", headers=admin_headers).status_code == 404

    staff_headers = _login(client, staff["email"], staff["temporary_password"])
    resp = client.post(
        "/structure/work/pickWork", headers=staff_headers, json={"weeklyTaskId": task_id}
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["picked_by"] == staff["id"]
    assert resp.json()["status"] == "picked"

    resp = client.post(
        "/structure/work/pickWork", headers=admin_headers, json={"weekly_task_id": task_id}
    )
    assert resp.status_code == 409

    mine = client.get("/structure/work/getByUserId", headers=staff_headers).json()
    assert [w["work_id"] for w in mine] == [work_id]

    resp = client.put(
        f"/structure/work/weeklyTask/{task_id}",
        headers=staff_headers,
        json={"status": "in_progress", "version": 2},
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["status"] == "in_progress"
    assert resp.json()["version"] == 3

    resp = client.put(
        f"/structure/work/weeklyTask/{task_id}",
        headers=staff_headers,
        json={"status": "completed", "version": 2},
    )
    assert resp.status_code == 409

    assert client.delete(f"/structure/work/{work_id}", headers=admin_headers).status_code == 204
    assert client.delete(f"/structure/work/{work_id}", headers=admin_headers).status_code == 404


def test_zone_and_group_routes(client, admin_headers, roles):
    zone = _create_zone(client, admin_headers, roles)
    admin_user_id = zone["admin"]["id"]
    zone_id = zone["zone"]["zone_id"]

    listed = client.get("/structure/zone/get", headers=admin_headers).json()
    assert [z["zone_id"] for z in listed] == [zone_id]
    fetched = client.get(f"/structure/zone/get/{admin_user_id}", headers=admin_headers)
    assert fetched.json()["zone_name"] == "Ilu A/BORA"
    assert [s["name"] for s in fetched.json()["sectors"]] == ["HR"]

    resp = client.post(
        "/structure/group/create",
        headers=admin_headers,
        json={
            "users": [{"username": "lensa", "email": "lensa@example.com", "sector_name": "Finance"}],
            "groupDetail": {
                "group_name": "Yayo",
                "email_address": "yayo@example.com",
                "zone_id": zone_id,
            },
        },
    )
    assert resp.status_code == 201, resp.text
    group_id = resp.json()["group"]["group_id"]
    assert client.get("/structure/group/get", headers=admin_headers).json()[0]["group_id"] == group_id
    assert client.get(f"/structure/group/get/{group_id}", headers=admin_headers).status_code == 200

    # Duplicate zone name: nothing from the second batch survives.
    dup = client.post(
        "/structure/zone/create",
        headers=admin_headers,
        json={"users": [], "zoneDetail": {"zone_name": "Ilu A/BORA", "email_address": "z@example.com"}},
    )
    assert dup.status_code == 409

    assert client.delete(f"/structure/zone/{admin_user_id}", headers=admin_headers).status_code == 204
    assert client.get(f"/structure/zone/get/{admin_user_id}", headers=admin_headers).status_code == 404
    assert client.get("/structure/group/get", headers=admin_headers).json() == []


def test_zone_admin_without_role_id_can_use_zone_routes(client, admin_headers):
    resp = client.post(
        "/structure/zone/create",
        headers=admin_headers,
        json={
            "users": [{"username": "moti", "email": "moti@gmail.com", "sector_name": "HR"}],
            "zoneDetail": {"zone_name": "Jimma", "email_address": "jimma@example.com"},
        },
    )
    assert resp.status_code == 201, resp.text
    admin = resp.json()["admin"]

    headers = _login(client, admin["email"], admin["temporary_password"])
    me = client.get("/auth/me", headers=headers).json()
    assert me["role_id"] is not None
    assert "can_view_zone_admin" in me["capabilities"]
    assert client.get("/structure/zone/get", headers=headers).status_code == 200


def test_temporary_password_is_replaced_through_change_password(client, admin_headers, roles):
    staff = _create_zone(client, admin_headers, roles)["users"][0]
    temporary = staff["temporary_password"]
    headers = _login(client, staff["email"], temporary)
    assert client.get("/auth/me", headers=headers).json()["must_change_password"] is True

    wrong = client.post(
        "/auth/change-password",
        headers=headers,
        json={"currentPassword": "not-it", "newPassword": "BrandNew123"},
    )
    assert wrong.status_code == 400

    resp = client.post(
        "/auth/change-password",
        headers=headers,
        json={"currentPassword": temporary, "newPassword": "BrandNew123"},
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["must_change_password"] is False

    stale = client.post("/auth/login", json={"email": staff["email"], "password": temporary})
    assert stale.status_code == 401
    _login(client, staff["email"], "BrandNew123")
