from datetime import datetime, timedelta, timezone

import pytest

from hod_approval.core.clock import ensure_aware
from hod_approval.core.errors import AuthorizationError, ConflictError, ValidationError
from hod_approval.domain import delegation
from hod_approval.domain.delegation import DelegationGrant, normalize_permissions
from hod_approval.models.user import UserRole


NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
ALL = ["approve_requests", "reject_requests", "request_more_info"]


@pytest.fixture
def hod(build_user):
    return build_user(UserRole.HOD, "CS")


@pytest.fixture
def faculty(build_user):
    return build_user(UserRole.FACULTY, "CS")


def _grant(hod, faculty, days=7, permissions=ALL, start_offset=0):
    start = NOW + timedelta(days=start_offset)
    return delegation.grant_delegation(
        hod, faculty, start, start + timedelta(days=days), permissions, NOW
    )


# ------------------------------------------------------------------
# is_active
# ------------------------------------------------------------------
def test_active_inside_window_inclusive(hod, faculty):
    _grant(hod, faculty)
    grant = DelegationGrant.from_user(faculty)

    assert grant.is_active(grant.start)
    assert grant.is_active(grant.end)
    assert not grant.is_active(grant.end + timedelta(seconds=1))
    assert not grant.is_active(grant.start - timedelta(seconds=1))


def test_no_grant_is_never_active(faculty):
    assert DelegationGrant.from_user(faculty) is None
    assert not delegation.is_active(faculty, NOW)


def test_active_needs_permissions(hod, faculty):
    _grant(hod, faculty)
    faculty.delegation_permissions = []
    assert not delegation.is_active(faculty, NOW)


def test_lapse_is_lazy(hod, faculty):
    _grant(hod, faculty, days=1)
    later = NOW + timedelta(days=2)

    assert not delegation.is_active(faculty, later)
    # nothing was cleared, the record is still there
    assert faculty.delegated_by == hod.id
    assert faculty.delegation_end_date is not None


def test_has_permission(hod, faculty):
    _grant(hod, faculty, permissions=["approve_requests"])
    assert delegation.has_permission(faculty, "approve_requests", NOW)
    assert not delegation.has_permission(faculty, "reject_requests", NOW)
    assert not delegation.has_permission(faculty, "approve_requests", NOW + timedelta(days=30))


# ------------------------------------------------------------------
# grant
# ------------------------------------------------------------------
def test_grant_sets_all_fields(hod, faculty):
    grant = _grant(hod, faculty, permissions=["reject_requests", "approve_requests"])

    assert faculty.delegated_by == hod.id
    assert faculty.delegation_start_date == grant.start
    assert faculty.delegation_end_date == grant.end
    assert faculty.delegation_permissions == ["approve_requests", "reject_requests"]


def test_grant_stores_offset_dates_as_utc(hod, faculty):
    ist = timezone(timedelta(hours=5, minutes=30))
    grant = delegation.grant_delegation(
        hod, faculty, NOW, datetime(2026, 3, 2, 14, 30, 0, 123456, tzinfo=ist), ALL, NOW
    )

    assert faculty.delegation_end_date.utcoffset() == timedelta(0)
    assert faculty.delegation_end_date.replace(tzinfo=None) == datetime(2026, 3, 2, 9, 0, 0, 123456)
    assert grant.is_active(datetime(2026, 3, 2, 9, 0, 0, 123456, tzinfo=timezone.utc))
    assert not grant.is_active(datetime(2026, 3, 2, 9, 0, 0, 123457, tzinfo=timezone.utc))


def test_ensure_aware_converts_offsets_to_utc():
    ist = timezone(timedelta(hours=5, minutes=30))
    converted = ensure_aware(datetime(2026, 3, 2, 14, 30, tzinfo=ist))
    assert converted.tzinfo == timezone.utc
    assert converted.hour == 9
    assert ensure_aware(datetime(2026, 3, 2, 9, 0)) == NOW


def test_clear_delegation_skips_grantor_check(hod, faculty):
    _grant(hod, faculty)
    previous = delegation.clear_delegation(faculty)

    assert previous.granted_by == hod.id
    assert faculty.delegated_by is None
    assert faculty.delegation_permissions == []
    assert delegation.clear_delegation(faculty) is None


@pytest.mark.parametrize(
    "actor_role, target_role, target_dept, reason",
    [
        (UserRole.FACULTY, UserRole.FACULTY, "CS", "NOT_HOD"),
        (UserRole.HOD, UserRole.HOD, "CS", "NOT_FACULTY"),
        (UserRole.HOD, UserRole.FACULTY, "Mechanical", "WRONG_DEPARTMENT"),
    ],
)
def test_grant_preconditions(build_user, actor_role, target_role, target_dept, reason):
    actor = build_user(actor_role, "CS")
    target = build_user(target_role, target_dept)

    with pytest.raises(ValidationError) as exc:
        _grant(actor, target)
    assert exc.value.reason == reason


def test_grant_rejects_inverted_window(hod, faculty):
    with pytest.raises(ValidationError) as exc:
        delegation.grant_delegation(hod, faculty, NOW, NOW, ALL, NOW)
    assert exc.value.reason == "INVALID_WINDOW"


def test_grant_rejects_empty_and_unknown_permissions(hod, faculty):
    with pytest.raises(ValidationError) as exc:
        _grant(hod, faculty, permissions=[])
    assert exc.value.reason == "MISSING_PERMISSIONS"

    with pytest.raises(ValidationError) as exc:
        _grant(hod, faculty, permissions=["approve_requests", "delete_everything"])
    assert exc.value.reason == "UNKNOWN_PERMISSION"


def test_second_active_grant_conflicts(hod, faculty):
    _grant(hod, faculty)
    with pytest.raises(ConflictError) as exc:
        _grant(hod, faculty)
    assert exc.value.reason == "ALREADY_DELEGATED"


def test_lapsed_grant_does_not_block_new_one(hod, faculty):
    delegation.grant_delegation(
        hod, faculty, NOW - timedelta(days=10), NOW - timedelta(days=3), ALL, NOW
    )
    grant = _grant(hod, faculty, days=2)
    assert grant.is_active(NOW)


def test_future_grant_not_yet_active(hod, faculty):
    _grant(hod, faculty, start_offset=3)
    assert not delegation.is_active(faculty, NOW)
    assert delegation.is_active(faculty, NOW + timedelta(days=4))


def test_normalize_permissions_accepts_enum_members():
    from hod_approval.models.enums import DelegationPermission

    assert normalize_permissions([DelegationPermission.REQUEST_MORE_INFO, "approve_requests"]) == [
        "approve_requests",
        "request_more_info",
    ]


# ------------------------------------------------------------------
# revoke / extend
# ------------------------------------------------------------------
def test_revoke_clears_everything(hod, faculty):
    _grant(hod, faculty)
    previous = delegation.revoke_delegation(hod, faculty)

    assert previous.granted_by == hod.id
    assert faculty.delegated_by is None
    assert faculty.delegation_start_date is None
    assert faculty.delegation_end_date is None
    assert faculty.delegation_permissions == []
    assert not delegation.is_active(faculty, NOW)


def test_revoke_only_by_grantor(build_user, hod, faculty):
    other_hod = build_user(UserRole.HOD, "CS")
    _grant(hod, faculty)

    with pytest.raises(AuthorizationError) as exc:
        delegation.revoke_delegation(other_hod, faculty)
    assert exc.value.reason == "NOT_GRANTOR"


def test_revoke_lapsed_grant(hod, faculty):
    delegation.grant_delegation(
        hod, faculty, NOW - timedelta(days=10), NOW - timedelta(days=3), ALL, NOW
    )
    delegation.revoke_delegation(hod, faculty)
    assert faculty.delegated_by is None


def test_extend_moves_end_forward(hod, faculty):
    grant = _grant(hod, faculty, days=2)
    new_end = grant.end + timedelta(days=5)

    previous = delegation.extend_delegation(hod, faculty, new_end)

    assert previous == grant.end
    assert faculty.delegation_end_date == new_end


def test_extend_must_move_forward(hod, faculty):
    grant = _grant(hod, faculty, days=2)
    with pytest.raises(ValidationError) as exc:
        delegation.extend_delegation(hod, faculty, grant.end)
    assert exc.value.reason == "INVALID_WINDOW"


def test_extend_without_grant(hod, faculty):
    faculty.delegated_by = hod.id
    with pytest.raises(ValidationError) as exc:
        delegation.extend_delegation(hod, faculty, NOW + timedelta(days=1))
    assert exc.value.message == "No active delegation to extend"


def test_extend_only_by_grantor(build_user, hod, faculty):
    _grant(hod, faculty)
    with pytest.raises(AuthorizationError):
        delegation.extend_delegation(build_user(UserRole.HOD, "CS"), faculty, NOW + timedelta(days=30))


def test_extend_revives_lapsed_grant(hod, faculty):
    delegation.grant_delegation(
        hod, faculty, NOW - timedelta(days=10), NOW - timedelta(days=3), ALL, NOW
    )
    assert not delegation.is_active(faculty, NOW)

    delegation.extend_delegation(hod, faculty, NOW + timedelta(days=1))
    assert delegation.is_active(faculty, NOW)


def test_is_eligible(hod, faculty, build_user):
    assert delegation.is_eligible(faculty, NOW)
    _grant(hod, faculty, days=1)
    assert not delegation.is_eligible(faculty, NOW)
    assert delegation.is_eligible(faculty, NOW + timedelta(days=2))
    assert not delegation.is_eligible(build_user(UserRole.HOD, "CS"), NOW)
