from datetime import datetime, timezone

import pytest
from sqlmodel import select

from hod_approval.core.clock import ensure_aware
from hod_approval.models.audit import AuditLog
from hod_approval.models.user import User, UserRole

DAY0 = "2026-03-02T00:00:00Z"
DAY7 = "2026-03-09T00:00:00Z"
DAY10 = "2026-03-12T00:00:00Z"


async def delegate(client, headers, faculty, start=DAY0, end=DAY7, permissions=None):
    return await client.post(
        "/api/hod/delegate",
        json={
            "faculty_id": str(faculty.id),
            "start_date": start,
            "end_date": end,
            "permissions": permissions or ["approve_requests", "reject_requests"],
        },
        headers=headers,
    )


@pytest.mark.asyncio
async def test_grant_and_list(client, make_user, auth_headers, db_session):
    hod = await make_user(UserRole.HOD, "CS")
    faculty = await make_user(UserRole.FACULTY, "CS", first_name="Anil", last_name="Shah")
    other = await make_user(UserRole.FACULTY, "CS", first_name="Zoya")
    headers = auth_headers(hod)

    res = await delegate(client, headers, faculty)
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["message"] == "Approval rights delegated to Anil Shah"
    assert body["delegation"]["is_active"] is True
    assert body["delegation"]["delegation_permissions"] == ["approve_requests", "reject_requests"]

    res = await client.get("/api/hod/delegations", headers=headers)
    assert [d["faculty"]["id"] for d in res.json()] == [str(faculty.id)]

    res = await client.get("/api/hod/department-faculty", headers=headers)
    assert [f["id"] for f in res.json()] == [str(other.id)]

    log = (
        await db_session.execute(select(AuditLog).where(AuditLog.action == "delegation_granted"))
    ).scalar_one()
    assert log.target_id == faculty.id


@pytest.mark.asyncio
async def test_me_reports_delegation(client, make_user, auth_headers):
    hod = await make_user(UserRole.HOD, "CS")
    faculty = await make_user(UserRole.FACULTY, "CS")
    await delegate(client, auth_headers(hod), faculty)

    res = await client.get("/api/auth/me", headers=auth_headers(faculty))
    assert res.status_code == 200
    assert res.json()["delegation_active"] is True


@pytest.mark.asyncio
async def test_grant_rules(client, make_user, auth_headers):
    hod = await make_user(UserRole.HOD, "CS")
    outsider = await make_user(UserRole.FACULTY, "Mechanical")
    faculty = await make_user(UserRole.FACULTY, "CS")
    headers = auth_headers(hod)

    res = await delegate(client, headers, outsider)
    assert res.status_code == 400
    assert res.json()["reason"] == "WRONG_DEPARTMENT"

    res = await delegate(client, headers, faculty, start=DAY7, end=DAY0)
    assert res.status_code == 400
    assert res.json()["reason"] == "INVALID_WINDOW"

    res = await delegate(client, headers, faculty, permissions=["approve_everything"])
    assert res.status_code == 422

    assert (await delegate(client, headers, faculty)).status_code == 200
    res = await delegate(client, headers, faculty)
    assert res.status_code == 409
    assert res.json()["reason"] == "ALREADY_DELEGATED"


@pytest.mark.asyncio
async def test_only_hod_delegates(client, make_user, auth_headers):
    faculty = await make_user(UserRole.FACULTY, "CS")
    peer = await make_user(UserRole.FACULTY, "CS")

    res = await delegate(client, auth_headers(faculty), peer)
    assert res.status_code == 403


@pytest.mark.asyncio
async def test_revoke(client, make_user, auth_headers):
    hod = await make_user(UserRole.HOD, "CS")
    other_hod = await make_user(UserRole.HOD, "Mechanical")
    faculty = await make_user(UserRole.FACULTY, "CS")
    await delegate(client, auth_headers(hod), faculty)

    res = await client.delete(f"/api/hod/delegations/{faculty.id}", headers=auth_headers(other_hod))
    assert res.status_code == 403
    assert res.json()["reason"] == "NOT_GRANTOR"

    res = await client.delete(f"/api/hod/delegations/{faculty.id}", headers=auth_headers(hod))
    assert res.status_code == 200

    res = await client.get("/api/hod/delegations", headers=auth_headers(hod))
    assert res.json() == []

    res = await client.get("/api/auth/me", headers=auth_headers(faculty))
    assert res.json()["delegation_active"] is False


@pytest.mark.asyncio
async def test_lapsed_grant_frees_the_faculty(client, make_user, auth_headers, frozen_clock):
    hod = await make_user(UserRole.HOD, "CS")
    faculty = await make_user(UserRole.FACULTY, "CS")
    headers = auth_headers(hod)
    await delegate(client, headers, faculty)

    frozen_clock.advance(days=8)

    res = await client.get("/api/hod/delegations", headers=headers)
    assert res.json()[0]["is_active"] is False

    res = await client.get("/api/hod/department-faculty", headers=headers)
    assert [f["id"] for f in res.json()] == [str(faculty.id)]

    res = await delegate(client, headers, faculty, start="2026-03-10T00:00:00Z", end=DAY10)
    assert res.status_code == 200


@pytest.mark.asyncio
async def test_extend_lapsed_grant(client, make_user, auth_headers, frozen_clock, db_session):
    hod = await make_user(UserRole.HOD, "CS")
    faculty = await make_user(UserRole.FACULTY, "CS")
    headers = auth_headers(hod)
    await delegate(client, headers, faculty)

    frozen_clock.advance(days=8)

    res = await client.patch(
        f"/api/hod/extend/{faculty.id}", json={"new_end_date": DAY10}, headers=headers
    )
    assert res.status_code == 200, res.text
    assert res.json()["delegation"]["is_active"] is True

    log = (
        await db_session.execute(select(AuditLog).where(AuditLog.action == "delegation_extended"))
    ).scalar_one()
    assert log.details["new_end_date"].startswith("2026-03-12")


@pytest.mark.asyncio
async def test_extend_must_move_forward(client, make_user, auth_headers):
    hod = await make_user(UserRole.HOD, "CS")
    faculty = await make_user(UserRole.FACULTY, "CS")
    headers = auth_headers(hod)
    await delegate(client, headers, faculty)

    res = await client.patch(
        f"/api/hod/extend/{faculty.id}", json={"new_end_date": DAY0}, headers=headers
    )
    assert res.status_code == 400
    assert res.json()["reason"] == "INVALID_WINDOW"

    res = await client.patch(
        "/api/hod/extend/00000000-0000-0000-0000-000000000000",
        json={"new_end_date": DAY10},
        headers=headers,
    )
    assert res.status_code == 404


@pytest.mark.asyncio
async def test_offset_end_date_lapses_on_the_exact_instant(client, make_user, auth_headers, frozen_clock):
    hod = await make_user(UserRole.HOD, "CS")
    faculty = await make_user(UserRole.FACULTY, "CS")

    # 14:30:00.123456 in India is 09:00:00.123456 UTC
    res = await delegate(
        client, auth_headers(hod), faculty, end="2026-03-02T14:30:00.123456+05:30"
    )
    assert res.status_code == 200, res.text

    frozen_clock.set(datetime(2026, 3, 2, 9, 0, 0, 123456, tzinfo=timezone.utc))
    res = await client.get("/api/auth/me", headers=auth_headers(faculty))
    assert res.json()["delegation_active"] is True

    frozen_clock.advance(microseconds=1)
    res = await client.get("/api/auth/me", headers=auth_headers(faculty))
    assert res.json()["delegation_active"] is False


@pytest.mark.asyncio
async def test_writes_stamp_the_injected_clock(client, make_user, auth_headers, frozen_clock, db_session):
    hod = await make_user(UserRole.HOD, "CS")
    faculty = await make_user(UserRole.FACULTY, "CS")
    headers = auth_headers(hod)

    frozen_clock.set(datetime(2026, 3, 4, 12, 0, tzinfo=timezone.utc))
    await delegate(client, headers, faculty, end=DAY10)
    frozen_clock.advance(hours=1)
    res = await client.patch(
        f"/api/hod/extend/{faculty.id}", json={"new_end_date": "2026-03-13T00:00:00Z"}, headers=headers
    )
    assert res.status_code == 200

    stored = await db_session.get(User, faculty.id)
    assert ensure_aware(stored.updated_at) == datetime(2026, 3, 4, 13, 0, tzinfo=timezone.utc)

    frozen_clock.advance(hours=1)
    res = await client.delete(f"/api/hod/delegations/{faculty.id}", headers=headers)
    assert res.status_code == 200

    await db_session.refresh(stored)
    assert ensure_aware(stored.updated_at) == datetime(2026, 3, 4, 14, 0, tzinfo=timezone.utc)
