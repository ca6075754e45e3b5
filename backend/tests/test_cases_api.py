"""End-to-end tests for the cases API: filing, listing, updates, deletion."""

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from resolveai.auth.context import Actor
from resolveai.auth.roles import ALL_CATEGORIES, ActorKind
from resolveai.models import Case, CaseEvent, CasePhoto, Employee, User
from resolveai.services.case_manager import CaseManager
from tests.conftest import employee_headers, user_headers

POTHOLE_CASE = {"category": "POTHOLE", "description": "hole", "address": "Main St 1"}


async def _file(client: AsyncClient, owner: User, **overrides) -> dict:
    resp = await client.post("/api/cases", json={**POTHOLE_CASE, **overrides}, headers=user_headers(owner))
    assert resp.status_code == 201, resp.text
    return resp.json()


async def _count(db: AsyncSession, model, case_id: int) -> int:
    return (await db.execute(
        select(func.count()).select_from(model).where(model.case_id == case_id)
    )).scalar_one()


class _CaseRowDeleteFails:
    """Session wrapper whose DELETE on the cases table errors out."""

    def __init__(self, session: AsyncSession):
        self._session = session

    def __getattr__(self, name):
        return getattr(self._session, name)

    async def execute(self, statement, *args, **kwargs):
        if statement.is_delete and statement.table.name == "cases":
            raise OperationalError("DELETE FROM cases", {}, Exception("database is locked"))
        return await self._session.execute(statement, *args, **kwargs)


# ── Filing ───────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
class TestCreateCase:
    async def test_citizen_files_case(self, client: AsyncClient, citizen: User):
        case = await _file(client, citizen)
        assert case["status"] == "RECEIVED"
        assert case["protocol"].startswith("EPF-")
        assert case["owner_id"] == citizen.id
        assert case["events"] == []
        assert case["photo"] is None

    async def test_protocols_are_unique(self, client: AsyncClient, citizen: User):
        first = await _file(client, citizen)
        second = await _file(client, citizen)
        assert first["protocol"] != second["protocol"]

    async def test_report_photo_and_coordinates(self, client: AsyncClient, citizen: User):
        case = await _file(
            client, citizen,
            photoUrl="https://img/report.jpg", latitude="-23,5505", longitude=-46.6333,
        )
        assert case["photo"]["url"] == "https://img/report.jpg"
        assert case["photo"]["kind"] == "REPORT"
        assert case["latitude"] == pytest.approx(-23.5505)
        assert case["longitude"] == pytest.approx(-46.6333)

    async def test_unparseable_coordinates_are_dropped(self, client: AsyncClient, citizen: User):
        case = await _file(client, citizen, latitude="north-ish")
        assert case["latitude"] is None

    async def test_category_is_normalized(self, client: AsyncClient, citizen: User):
        case = await _file(client, citizen, category=" water_leak ")
        assert case["category"] == "WATER_LEAK"

    async def test_missing_fields(self, client: AsyncClient, citizen: User):
        resp = await client.post("/api/cases", json={"category": "POTHOLE", "description": " "},
                                 headers=user_headers(citizen))
        assert resp.status_code == 400
        assert "error" in resp.json()

    async def test_unknown_category(self, client: AsyncClient, citizen: User):
        resp = await client.post("/api/cases", json={**POTHOLE_CASE, "category": "FLOODING"},
                                 headers=user_headers(citizen))
        assert resp.status_code == 400

    async def test_overlong_address(self, client: AsyncClient, citizen: User):
        resp = await client.post("/api/cases", json={**POTHOLE_CASE, "address": "x" * 501},
                                 headers=user_headers(citizen))
        assert resp.status_code == 400
        assert resp.json()["error"].startswith("address")

    async def test_employee_cannot_file(self, client: AsyncClient, pothole_employee: Employee):
        resp = await client.post("/api/cases", json=POTHOLE_CASE, headers=employee_headers(pothole_employee))
        assert resp.status_code == 403

    async def test_admin_can_file(self, client: AsyncClient, admin_user: User):
        case = await _file(client, admin_user)
        assert case["owner_id"] == admin_user.id

    async def test_requires_authentication(self, client: AsyncClient, db_session: AsyncSession):
        resp = await client.post("/api/cases", json=POTHOLE_CASE)
        assert resp.status_code == 401


# ── Reading ──────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
class TestGetCase:
    async def test_owner_reads_own_case(self, client: AsyncClient, citizen: User):
        case = await _file(client, citizen)
        resp = await client.get(f"/api/cases/{case['id']}", headers=user_headers(citizen))
        assert resp.status_code == 200
        assert resp.json()["owner"]["email"] == "maria@example.com"

    async def test_other_citizen_is_forbidden(self, client: AsyncClient, citizen: User, other_citizen: User):
        case = await _file(client, citizen)
        resp = await client.get(f"/api/cases/{case['id']}", headers=user_headers(other_citizen))
        assert resp.status_code == 403

    async def test_employee_out_of_scope(self, client: AsyncClient, citizen: User, lighting_employee: Employee):
        case = await _file(client, citizen)
        resp = await client.get(f"/api/cases/{case['id']}", headers=employee_headers(lighting_employee))
        assert resp.status_code == 403

    async def test_missing_case(self, client: AsyncClient, admin_user: User):
        resp = await client.get("/api/cases/9999", headers=user_headers(admin_user))
        assert resp.status_code == 404
        assert resp.json() == {"error": "Case not found"}


# ── Listings ─────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
class TestListCases:
    async def test_admin_sees_everything_newest_first(self, client: AsyncClient, citizen: User, admin_user: User):
        first = await _file(client, citizen)
        second = await _file(client, citizen, category="PUBLIC_LIGHTING")
        resp = await client.get("/api/cases", headers=user_headers(admin_user))
        assert resp.status_code == 200
        assert [c["id"] for c in resp.json()] == [second["id"], first["id"]]

    async def test_employee_sees_only_its_categories(
        self, client: AsyncClient, citizen: User, pothole_employee: Employee,
    ):
        pothole = await _file(client, citizen)
        await _file(client, citizen, category="PUBLIC_LIGHTING")
        resp = await client.get("/api/cases", headers=employee_headers(pothole_employee))
        assert [c["id"] for c in resp.json()] == [pothole["id"]]

    async def test_administrative_employee_sees_all(
        self, client: AsyncClient, citizen: User, administrative_employee: Employee,
    ):
        await _file(client, citizen)
        await _file(client, citizen, category="GARBAGE_COLLECTION")
        resp = await client.get("/api/cases", headers=employee_headers(administrative_employee))
        assert len(resp.json()) == 2

    async def test_citizen_cannot_list_all(self, client: AsyncClient, citizen: User):
        resp = await client.get("/api/cases", headers=user_headers(citizen))
        assert resp.status_code == 403

    async def test_my_cases(self, client: AsyncClient, citizen: User, other_citizen: User):
        mine = await _file(client, citizen)
        await _file(client, other_citizen)
        resp = await client.get("/api/cases/my", headers=user_headers(citizen))
        assert resp.status_code == 200
        assert [c["id"] for c in resp.json()] == [mine["id"]]

    async def test_employee_has_no_own_cases(self, client: AsyncClient, pothole_employee: Employee):
        resp = await client.get("/api/cases/my", headers=employee_headers(pothole_employee))
        assert resp.status_code == 403

    async def test_listing_previews_recent_events(
        self, client: AsyncClient, citizen: User, pothole_employee: Employee,
    ):
        case = await _file(client, citizen)
        for n in range(5):
            await client.patch(f"/api/cases/{case['id']}", json={"message": f"note {n}"},
                               headers=employee_headers(pothole_employee))
        listed = (await client.get("/api/cases", headers=employee_headers(pothole_employee))).json()
        assert [e["message"] for e in listed[0]["recent_events"]] == ["note 2", "note 3", "note 4"]


    async def test_preview_is_limited_per_case(
        self, client: AsyncClient, citizen: User, pothole_employee: Employee,
    ):
        first = await _file(client, citizen)
        second = await _file(client, citizen)
        headers = employee_headers(pothole_employee)
        for n in range(4):
            for case in (first, second):
                await client.patch(f"/api/cases/{case['id']}", json={"message": f"{case['id']}-{n}"},
                                   headers=headers)

        listed = {c["id"]: c for c in (await client.get("/api/cases", headers=headers)).json()}
        for case in (first, second):
            messages = [e["message"] for e in listed[case["id"]]["recent_events"]]
            assert messages == [f"{case['id']}-{n}" for n in (1, 2, 3)]

    async def test_preview_without_history(self, client: AsyncClient, citizen: User):
        await _file(client, citizen)
        listed = (await client.get("/api/cases/my", headers=user_headers(citizen))).json()
        assert listed[0]["recent_events"] == []

# ── Updates ──────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
class TestUpdateCase:
    async def test_employee_moves_case_in_progress(
        self, client: AsyncClient, db_session: AsyncSession, citizen: User, pothole_employee: Employee,
    ):
        case = await _file(client, citizen)
        resp = await client.patch(
            f"/api/cases/{case['id']}",
            json={"status": "IN_PROGRESS", "message": "crew dispatched"},
            headers=employee_headers(pothole_employee),
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["ok"] is True
        assert body["case"]["status"] == "IN_PROGRESS"

        events = body["case"]["events"]
        assert len(events) == 1
        assert events[0]["status"] == "IN_PROGRESS"
        assert events[0]["message"] == "crew dispatched"
        assert events[0]["employee_id"] == pothole_employee.id
        assert events[0]["author_id"] is None
        assert events[0]["employee"]["employee_code"] == 2123456
        assert await _count(db_session, CaseEvent, case["id"]) == 1

    async def test_completed_without_photo(self, client: AsyncClient, citizen: User, pothole_employee: Employee):
        case = await _file(client, citizen)
        resp = await client.patch(f"/api/cases/{case['id']}", json={"status": "COMPLETED"},
                                  headers=employee_headers(pothole_employee))
        assert resp.status_code == 400
        assert "photo" in resp.json()["error"]

    async def test_completed_with_photo(
        self, client: AsyncClient, db_session: AsyncSession, citizen: User, pothole_employee: Employee,
    ):
        case = await _file(client, citizen)
        resp = await client.patch(
            f"/api/cases/{case['id']}",
            json={"status": "COMPLETED", "photoUrl": "https://img/fixed.jpg"},
            headers=employee_headers(pothole_employee),
        )
        assert resp.status_code == 200
        detail = resp.json()["case"]
        assert detail["status"] == "COMPLETED"
        assert detail["events"][0]["photo_url"] == "https://img/fixed.jpg"
        assert [p["kind"] for p in detail["photos"]] == ["UPDATE"]
        assert await _count(db_session, CasePhoto, case["id"]) == 1

    async def test_in_progress_with_photo(self, client: AsyncClient, citizen: User, pothole_employee: Employee):
        case = await _file(client, citizen)
        resp = await client.patch(
            f"/api/cases/{case['id']}",
            json={"status": "IN_PROGRESS", "photo_url": "https://img/x.jpg"},
            headers=employee_headers(pothole_employee),
        )
        assert resp.status_code == 400

    async def test_empty_patch(
        self, client: AsyncClient, db_session: AsyncSession, citizen: User, pothole_employee: Employee,
    ):
        case = await _file(client, citizen)
        resp = await client.patch(f"/api/cases/{case['id']}", json={"status": "", "message": "  "},
                                  headers=employee_headers(pothole_employee))
        assert resp.status_code == 400
        assert resp.json() == {"error": "Nothing to update"}
        assert await _count(db_session, CaseEvent, case["id"]) == 0

    async def test_overlong_photo_url(self, client: AsyncClient, citizen: User, pothole_employee: Employee):
        case = await _file(client, citizen)
        resp = await client.patch(
            f"/api/cases/{case['id']}",
            json={"status": "COMPLETED", "photoUrl": "https://img/" + "p" * 1000},
            headers=employee_headers(pothole_employee),
        )
        assert resp.status_code == 400

    async def test_unknown_status(self, client: AsyncClient, citizen: User, pothole_employee: Employee):
        case = await _file(client, citizen)
        resp = await client.patch(f"/api/cases/{case['id']}", json={"status": "ARCHIVED"},
                                  headers=employee_headers(pothole_employee))
        assert resp.status_code == 400

    async def test_category_cannot_change(self, client: AsyncClient, citizen: User, admin_user: User):
        case = await _file(client, citizen)
        resp = await client.patch(
            f"/api/cases/{case['id']}",
            json={"category": "WATER_LEAK", "message": "recategorize please"},
            headers=user_headers(admin_user),
        )
        assert resp.status_code == 200
        assert resp.json()["case"]["category"] == "POTHOLE"

    async def test_every_patch_appends_one_event(
        self, client: AsyncClient, citizen: User, pothole_employee: Employee,
    ):
        case = await _file(client, citizen)
        headers = employee_headers(pothole_employee)
        url = f"/api/cases/{case['id']}"

        await client.patch(url, json={"status": "IN_PROGRESS"}, headers=headers)
        await client.patch(url, json={"status": "AWAITING_UPDATE", "message": "waiting on parts"}, headers=headers)
        await client.patch(url, json={"message": "parts arrived"}, headers=headers)
        resp = await client.patch(url, json={"status": "AWAITING_UPDATE"}, headers=headers)

        events = resp.json()["case"]["events"]
        assert [e["status"] for e in events] == ["IN_PROGRESS", "AWAITING_UPDATE", "AWAITING_UPDATE", "AWAITING_UPDATE"]

    async def test_out_of_scope_employee(self, client: AsyncClient, citizen: User, lighting_employee: Employee):
        case = await _file(client, citizen)
        resp = await client.patch(f"/api/cases/{case['id']}", json={"message": "mine?"},
                                  headers=employee_headers(lighting_employee))
        assert resp.status_code == 403

    async def test_owner_adds_description(self, client: AsyncClient, citizen: User):
        case = await _file(client, citizen)
        resp = await client.patch(f"/api/cases/{case['id']}", json={"description": "hole, now deeper"},
                                  headers=user_headers(citizen))
        assert resp.status_code == 200
        detail = resp.json()["case"]
        assert detail["description"] == "hole, now deeper"
        assert detail["status"] == "RECEIVED"
        assert detail["events"][0]["author_id"] == citizen.id
        assert detail["events"][0]["employee_id"] is None

    async def test_other_citizen_cannot_patch(self, client: AsyncClient, citizen: User, other_citizen: User):
        case = await _file(client, citizen)
        resp = await client.patch(f"/api/cases/{case['id']}", json={"message": "hi"},
                                  headers=user_headers(other_citizen))
        assert resp.status_code == 403

    async def test_patch_missing_case(self, client: AsyncClient, admin_user: User):
        resp = await client.patch("/api/cases/9999", json={"message": "hi"}, headers=user_headers(admin_user))
        assert resp.status_code == 404

    async def test_report_photo_stays_canonical(
        self, client: AsyncClient, citizen: User, pothole_employee: Employee,
    ):
        case = await _file(client, citizen, photo_url="https://img/report.jpg")
        headers = employee_headers(pothole_employee)
        url = f"/api/cases/{case['id']}"
        await client.patch(url, json={"status": "AWAITING_UPDATE", "photo_url": "https://img/u1.jpg"}, headers=headers)
        await client.patch(url, json={"status": "COMPLETED", "photo_url": "https://img/u2.jpg"}, headers=headers)

        listed = (await client.get("/api/cases", headers=headers)).json()
        assert listed[0]["photo"]["url"] == "https://img/report.jpg"

        detail = (await client.get(url, headers=headers)).json()
        assert detail["photo"]["url"] == "https://img/report.jpg"
        assert [p["url"] for p in detail["photos"]] == [
            "https://img/u2.jpg", "https://img/u1.jpg", "https://img/report.jpg",
        ]


# ── Deletion ─────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
class TestDeleteCase:
    async def test_admin_deletes_case_with_history(
        self, client: AsyncClient, db_session: AsyncSession,
        citizen: User, admin_user: User, pothole_employee: Employee,
    ):
        case = await _file(client, citizen, photo_url="https://img/report.jpg")
        await client.patch(f"/api/cases/{case['id']}", json={"status": "COMPLETED", "photo_url": "https://img/done.jpg"},
                           headers=employee_headers(pothole_employee))

        resp = await client.delete(f"/api/cases/{case['id']}", headers=user_headers(admin_user))
        assert resp.status_code == 200
        assert resp.json() == {"ok": True}

        resp = await client.get(f"/api/cases/{case['id']}", headers=user_headers(admin_user))
        assert resp.status_code == 404
        assert await _count(db_session, CaseEvent, case["id"]) == 0
        assert await _count(db_session, CasePhoto, case["id"]) == 0

    async def test_employee_can_never_delete(
        self, client: AsyncClient, citizen: User,
        pothole_employee: Employee, administrative_employee: Employee,
    ):
        case = await _file(client, citizen)
        for employee in (pothole_employee, administrative_employee):
            resp = await client.delete(f"/api/cases/{case['id']}", headers=employee_headers(employee))
            assert resp.status_code == 403

    async def test_employee_delete_of_missing_case_is_still_forbidden(
        self, client: AsyncClient, pothole_employee: Employee,
    ):
        resp = await client.delete("/api/cases/9999", headers=employee_headers(pothole_employee))
        assert resp.status_code == 403

    async def test_owner_cannot_delete(self, client: AsyncClient, citizen: User):
        case = await _file(client, citizen)
        resp = await client.delete(f"/api/cases/{case['id']}", headers=user_headers(citizen))
        assert resp.status_code == 403

    async def test_delete_missing_case(self, client: AsyncClient, admin_user: User):
        resp = await client.delete("/api/cases/9999", headers=user_headers(admin_user))
        assert resp.status_code == 404

    async def test_failed_delete_leaves_everything_in_place(
        self, client: AsyncClient, db_session: AsyncSession,
        citizen: User, admin_user: User, pothole_employee: Employee,
    ):
        case = await _file(client, citizen, photo_url="https://img/report.jpg")
        await client.patch(f"/api/cases/{case['id']}", json={"status": "AWAITING_UPDATE", "message": "checking"},
                           headers=employee_headers(pothole_employee))
        await db_session.commit()

        admin = Actor(kind=ActorKind.ADMIN, id=admin_user.id, category_scope=ALL_CATEGORIES)
        manager = CaseManager(db_session)
        manager.session = _CaseRowDeleteFails(db_session)
        with pytest.raises(OperationalError):
            await manager.delete_case(admin, case["id"])
        await db_session.rollback()

        remaining = (await db_session.execute(
            select(func.count()).select_from(Case).where(Case.id == case["id"])
        )).scalar_one()
        assert remaining == 1
        assert await _count(db_session, CaseEvent, case["id"]) == 1
        assert await _count(db_session, CasePhoto, case["id"]) == 1
