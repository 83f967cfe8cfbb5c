from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from src.worksite_attendance.worksite_attendance.announcements.model import Announcement
from src.worksite_attendance.worksite_attendance.announcements.service import AnnouncementService, sort_by_priority
from src.worksite_attendance.worksite_attendance.core.enums import AssignedRole, Role
from src.worksite_attendance.worksite_attendance.core.exceptions import (
    AuthorizationError,
    InvalidPriority,
    NotFoundError,
    ValidationError,
)


def _announcement(announcement_id, *, priority="medium", created_at, site_id=1, created_by=2,
                  is_active=True, expiry_date=None, creator_role="site_coordinator"):
    return Announcement(
        announcement_id=announcement_id,
        site_id=site_id,
        title=f"Notice {announcement_id}",
        message="Body",
        priority=priority,
        expiry_date=expiry_date,
        is_active=is_active,
        created_by=created_by,
        created_at=created_at,
        creator_role=creator_role,
    )


@pytest.fixture
def service(announcements_repo, assignments, sites):
    return AnnouncementService(announcements_repo, assignments, sites)


def test_sort_by_priority_then_newest_first():
    base = datetime(2026, 3, 1, 9, 0, 0)
    a = _announcement(1, priority="low", created_at=base)
    b = _announcement(2, priority="high", created_at=base + timedelta(minutes=1))
    c = _announcement(3, priority="medium", created_at=base + timedelta(minutes=2))
    d = _announcement(4, priority="high", created_at=base + timedelta(minutes=3))

    ordered = sort_by_priority([a, b, c, d])

    assert [x.announcement_id for x in ordered] == [4, 2, 3, 1]


def test_unknown_priority_sorts_last():
    base = datetime(2026, 3, 1, 9, 0, 0)
    odd = _announcement(1, priority="urgent", created_at=base + timedelta(hours=1))
    low = _announcement(2, priority="low", created_at=base)

    assert [x.announcement_id for x in sort_by_priority([odd, low])] == [2, 1]


def test_create_announcement_normalizes_input(service, fixed_now):
    created = service.create_announcement(
        site_id="1",
        title="  Safety drill  ",
        message=" Assemble at gate 2 ",
        priority="HIGH",
        expiry_date="2026-03-20T18:00:00",
        created_by=2,
    )

    assert created.site_id == 1
    assert created.title == "Safety drill"
    assert created.message == "Assemble at gate 2"
    assert created.priority == "high"
    assert created.expiry_date == datetime(2026, 3, 20, 18, 0, 0)
    assert created.is_active
    assert created.creator_name == "Chris Coordinator"


def test_create_announcement_all_sites_is_global(service):
    created = service.create_announcement(
        site_id="all", title="Holiday", message="Closed Friday", priority="low", expiry_date=None, created_by=1
    )
    assert created.site_id is None
    assert created.is_global


def test_create_announcement_rejects_invalid_priority(service, announcements_repo):
    with pytest.raises(InvalidPriority) as exc:
        service.create_announcement(
            site_id=1, title="T", message="M", priority="urgent", expiry_date=None, created_by=2
        )
    assert "priority" in exc.value.errors
    assert announcements_repo.list_by_creator(created_by=2) == []


@pytest.mark.parametrize("title,message,field", [("   ", "M", "title"), ("T", "", "message")])
def test_create_announcement_requires_title_and_message(service, title, message, field):
    with pytest.raises(ValidationError) as exc:
        service.create_announcement(
            site_id=1, title=title, message=message, priority="low", expiry_date=None, created_by=2
        )
    assert field in exc.value.errors


def test_create_announcement_rejects_unparseable_expiry(service):
    with pytest.raises(ValidationError) as exc:
        service.create_announcement(
            site_id=1, title="T", message="M", priority="low", expiry_date="next week", created_by=2
        )
    assert "expiryDate" in exc.value.errors


def test_visibility_is_scoped_to_assigned_sites(service, announcements_repo, assignments, fixed_now):
    assignments.add(1, 3)
    earlier = fixed_now - timedelta(days=1)
    announcements_repo.add(_announcement(1, site_id=1, created_at=earlier))
    announcements_repo.add(_announcement(2, site_id=2, created_at=earlier))
    announcements_repo.add(_announcement(3, site_id=None, created_at=earlier, created_by=1, creator_role="admin"))
    announcements_repo.add(_announcement(4, site_id=1, created_at=earlier, expiry_date=fixed_now - timedelta(hours=1)))
    announcements_repo.add(_announcement(5, site_id=1, created_at=earlier, is_active=False))

    visible = service.get_announcements_for_user(3, Role.WORKER, now=fixed_now)

    assert sorted(a.announcement_id for a in visible) == [1, 3]


def test_unassigned_user_sees_only_global(service, announcements_repo, fixed_now):
    earlier = fixed_now - timedelta(days=1)
    announcements_repo.add(_announcement(1, site_id=1, created_at=earlier))
    announcements_repo.add(_announcement(2, site_id=None, created_at=earlier))

    visible = service.get_announcements_for_user(4, Role.WORKER, now=fixed_now)

    assert [a.announcement_id for a in visible] == [2]


def test_admin_sees_active_admin_authored_announcements(service, announcements_repo, fixed_now):
    earlier = fixed_now - timedelta(days=1)
    announcements_repo.add(_announcement(1, site_id=2, created_at=earlier, created_by=1, creator_role="admin"))
    announcements_repo.add(_announcement(2, site_id=1, created_at=earlier))

    visible = service.get_announcements_for_user(1, Role.ADMIN, now=fixed_now)

    assert [a.announcement_id for a in visible] == [1]


def test_visible_list_is_priority_ordered(service, announcements_repo, assignments, fixed_now):
    assignments.add(1, 3, AssignedRole.WORKER)
    base = fixed_now - timedelta(days=1)
    for i, priority in enumerate(["low", "high", "medium", "high"], start=1):
        announcements_repo.add(_announcement(i, priority=priority, created_at=base + timedelta(minutes=i)))

    visible = service.get_announcements_for_user(3, Role.WORKER, now=fixed_now)

    assert [a.announcement_id for a in visible] == [4, 2, 3, 1]


def test_my_announcements_flags_expired(service, announcements_repo, fixed_now):
    announcements_repo.add(_announcement(1, created_at=fixed_now - timedelta(days=2), expiry_date=fixed_now - timedelta(days=1)))
    announcements_repo.add(_announcement(2, created_at=fixed_now - timedelta(days=1), site_id=None))
    announcements_repo.add(_announcement(3, created_at=fixed_now, created_by=1))

    rows = service.get_my_announcements(2, now=fixed_now)

    assert [(r["id"], r["is_expired"]) for r in rows] == [(2, False), (1, True)]
    assert [r["id"] for r in service.get_my_announcements(2, "all", now=fixed_now)] == [2]
    assert [r["id"] for r in service.get_my_announcements(2, "1", now=fixed_now)] == [1]


def test_only_creator_can_deactivate(service, announcements_repo, fixed_now):
    announcements_repo.add(_announcement(1, created_at=fixed_now, created_by=2))

    with pytest.raises(AuthorizationError):
        service.deactivate_announcement(1, user_id=1)
    assert announcements_repo.get_by_id(1).is_active

    result = service.deactivate_announcement(1, user_id=2)
    assert result.is_active is False


def test_deactivate_is_idempotent_for_creator(service, announcements_repo, fixed_now):
    announcements_repo.add(_announcement(1, created_at=fixed_now, created_by=2, is_active=False))
    assert service.deactivate_announcement(1, user_id=2).is_active is False


def test_deactivate_missing_announcement(service):
    with pytest.raises(NotFoundError):
        service.deactivate_announcement(42, user_id=2)


def test_create_announcement_for_unknown_site(service, announcements_repo):
    with pytest.raises(NotFoundError, match="Site not found"):
        service.create_announcement(
            site_id="999", title="T", message="M", priority="low", expiry_date=None, created_by=2
        )
    assert announcements_repo.list_by_creator(created_by=2) == []


@pytest.mark.parametrize("priority", [5, ["high"], None])
def test_create_announcement_non_string_priority(service, priority):
    with pytest.raises(InvalidPriority):
        service.create_announcement(
            site_id=1, title="T", message="M", priority=priority, expiry_date=None, created_by=2
        )


@pytest.mark.parametrize(
    "overrides,field",
    [
        ({"title": ["T"]}, "title"),
        ({"message": {"text": "M"}}, "message"),
        ({"expiry_date": 20260320}, "expiryDate"),
    ],
)
def test_create_announcement_non_string_fields(service, overrides, field):
    data = dict(site_id=1, title="T", message="M", priority="low", expiry_date=None, created_by=2)
    data.update(overrides)
    with pytest.raises(ValidationError) as exc:
        service.create_announcement(**data)
    assert field in exc.value.errors


def test_announcement_expiring_exactly_now_is_still_visible(service, announcements_repo, assignments, fixed_now):
    assignments.add(1, 3)
    announcements_repo.add(_announcement(1, created_at=fixed_now - timedelta(days=1), expiry_date=fixed_now))

    visible = service.get_announcements_for_user(3, Role.WORKER, now=fixed_now)

    assert [a.announcement_id for a in visible] == [1]
    assert service.get_my_announcements(2, now=fixed_now)[0]["is_expired"] is False
