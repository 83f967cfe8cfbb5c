from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from typing import Optional

import pytest

from src.worksite_attendance.worksite_attendance.announcements.model import Announcement
from src.worksite_attendance.worksite_attendance.attendance.model import AttendanceRecord, AttendanceReportRow
from src.worksite_attendance.worksite_attendance.core.enums import AssignedRole, Role
from src.worksite_attendance.worksite_attendance.core.exceptions import DuplicateKeyError
from src.worksite_attendance.worksite_attendance.sites.model import Site, SiteAssignment
from src.worksite_attendance.worksite_attendance.users.model import User


class InMemoryUsers:
    def __init__(self, users=()):
        self._by_id: dict[int, User] = {u.user_id: u for u in users}
        self._next_id = max(self._by_id, default=0) + 1

    def add(self, user: User) -> User:
        self._by_id[user.user_id] = user
        self._next_id = max(self._next_id, user.user_id + 1)
        return user

    def get_by_id(self, user_id):
        return self._by_id.get(user_id)

    def get_many(self, user_ids):
        return [self._by_id[i] for i in user_ids if i in self._by_id]

    def get_by_mobile(self, country_code, mobile_number):
        for u in self._by_id.values():
            if u.country_code == country_code and u.mobile_number == mobile_number:
                return u
        return None

    def get_first_by_mobile(self, mobile_number):
        for u in sorted(self._by_id.values(), key=lambda u: u.user_id):
            if u.mobile_number == mobile_number:
                return u
        return None

    def create_user(self, *, country_code, mobile_number, password_hash, full_name, role, profile_image_url=None):
        if self.get_by_mobile(country_code, mobile_number):
            raise DuplicateKeyError("users.uq_users_mobile")
        user_id = self._next_id
        self._next_id += 1
        self._by_id[user_id] = User(
            user_id=user_id,
            country_code=country_code,
            mobile_number=mobile_number,
            password_hash=password_hash,
            full_name=full_name,
            role=role,
            profile_image_url=profile_image_url,
        )
        return user_id

    def touch_last_login(self, user_id, *, at):
        user = self._by_id.get(user_id)
        if not user:
            return False
        self._by_id[user_id] = replace(user, last_login_at=at)
        return True

    def list_by_role(self, role):
        matching = [u for u in self._by_id.values() if u.role == role]
        return sorted(matching, key=lambda u: u.full_name or "")


class InMemorySites:
    def __init__(self, sites=()):
        self._by_id: dict[int, Site] = {s.site_id: s for s in sites}
        self._next_id = max(self._by_id, default=0) + 1

    def get_by_id(self, site_id):
        return self._by_id.get(site_id)

    def get_by_code(self, code):
        return next((s for s in self._by_id.values() if s.code == code), None)

    def get_many(self, site_ids):
        return [self._by_id[i] for i in site_ids if i in self._by_id]

    def list_all(self):
        return sorted(self._by_id.values(), key=lambda s: s.name)

    def create_site(self, *, code, name, address, latitude, longitude):
        if code and self.get_by_code(code):
            raise DuplicateKeyError("sites.code")
        site_id = self._next_id
        self._next_id += 1
        self._by_id[site_id] = Site(site_id, name, code, address, latitude, longitude)
        return site_id


class InMemoryAssignments:
    def __init__(self):
        self._rows: dict[int, SiteAssignment] = {}
        self._next_id = 1
        self._clock = 0

    def add(self, site_id: int, user_id: int, role: AssignedRole = AssignedRole.WORKER) -> int:
        return self.create(site_id=site_id, user_id=user_id, assigned_role=role)

    def find(self, *, site_id, user_id):
        return next((a for a in self._rows.values() if a.site_id == site_id and a.user_id == user_id), None)

    def create(self, *, site_id, user_id, assigned_role):
        if self.find(site_id=site_id, user_id=user_id):
            raise DuplicateKeyError("site_user_assignments.uq_site_user")
        assignment_id = self._next_id
        self._next_id += 1
        self._clock += 1
        self._rows[assignment_id] = SiteAssignment(
            assignment_id=assignment_id,
            site_id=site_id,
            user_id=user_id,
            assigned_role=assigned_role,
            assigned_at=datetime(2026, 1, 1, 8, 0, self._clock),
        )
        return assignment_id

    def delete(self, assignment_id):
        return self._rows.pop(assignment_id, None) is not None

    def list_for_user(self, user_id):
        rows = [a for a in self._rows.values() if a.user_id == user_id]
        return sorted(rows, key=lambda a: a.assigned_at)

    def list_for_site(self, site_id):
        return [a for a in self._rows.values() if a.site_id == site_id]

    def assigned_user_ids(self):
        return {a.user_id for a in self._rows.values()}

    def site_ids_with_role(self, assigned_role):
        return {a.site_id for a in self._rows.values() if a.assigned_role == assigned_role}


class InMemoryAttendance:
    """Mirrors the unique (worker_id, work_date) key and the guarded updates of the MySQL store."""

    def __init__(self, users: Optional[InMemoryUsers] = None, sites: Optional[InMemorySites] = None):
        self._rows: dict[int, AttendanceRecord] = {}
        self._next_id = 1
        self._users = users
        self._sites = sites

    def __len__(self):
        return len(self._rows)

    def insert(self, record: AttendanceRecord) -> AttendanceRecord:
        self._rows[record.attendance_id] = record
        self._next_id = max(self._next_id, record.attendance_id + 1)
        return record

    def get_by_id(self, attendance_id):
        return self._rows.get(attendance_id)

    def get_for_worker_and_date(self, worker_id, work_date):
        return next(
            (r for r in self._rows.values() if r.worker_id == worker_id and r.work_date == work_date),
            None,
        )

    def create_punch_in(self, *, worker_id, site_id, work_date, punch_in_time, latitude, longitude, selfie_url):
        if self.get_for_worker_and_date(worker_id, work_date):
            raise DuplicateKeyError("attendance.uq_attendance_worker_date")
        attendance_id = self._next_id
        self._next_id += 1
        self._rows[attendance_id] = AttendanceRecord(
            attendance_id=attendance_id,
            worker_id=worker_id,
            site_id=site_id,
            work_date=work_date,
            punch_in_time=punch_in_time,
            punch_in_latitude=latitude,
            punch_in_longitude=longitude,
            punch_in_selfie_url=selfie_url,
        )
        return attendance_id

    def fill_punch_in(self, *, attendance_id, punch_in_time, latitude, longitude, selfie_url):
        row = self._rows.get(attendance_id)
        if not row or row.punch_in_time is not None:
            return False
        self._rows[attendance_id] = replace(
            row,
            punch_in_time=punch_in_time,
            punch_in_latitude=latitude,
            punch_in_longitude=longitude,
            punch_in_selfie_url=selfie_url,
        )
        return True

    def record_punch_out(self, *, attendance_id, punch_out_time, latitude, longitude, selfie_url, total_hours):
        row = self._rows.get(attendance_id)
        if not row or row.punch_out_time is not None:
            return False
        self._rows[attendance_id] = replace(
            row,
            punch_out_time=punch_out_time,
            punch_out_latitude=latitude,
            punch_out_longitude=longitude,
            punch_out_selfie_url=selfie_url,
            total_hours=total_hours,
        )
        return True

    def list_for_worker(self, *, worker_id, start, end):
        rows = [
            r
            for r in self._rows.values()
            if r.worker_id == worker_id and start.date() <= r.work_date <= end.date()
        ]
        return sorted(rows, key=lambda r: r.work_date, reverse=True)

    def list_filtered(self, *, site_id, worker_ids, start, end):
        result = []
        for r in sorted(self._rows.values(), key=lambda r: r.work_date, reverse=True):
            if r.site_id != site_id or r.worker_id not in worker_ids:
                continue
            if not start.date() <= r.work_date <= end.date():
                continue
            worker = self._users.get_by_id(r.worker_id) if self._users else None
            site = self._sites.get_by_id(r.site_id) if self._sites else None
            result.append(
                AttendanceReportRow(
                    record=r,
                    worker_name=worker.full_name if worker else None,
                    worker_role=worker.role.value if worker else None,
                    site_name=site.name if site else None,
                    site_code=site.code if site else None,
                )
            )
        return result


class InMemoryAnnouncements:
    def __init__(self, users: Optional[InMemoryUsers] = None):
        self._rows: dict[int, Announcement] = {}
        self._next_id = 1
        self._users = users
        self.created_at = datetime(2026, 3, 1, 9, 0, 0)

    def add(self, announcement: Announcement) -> Announcement:
        self._rows[announcement.announcement_id] = announcement
        self._next_id = max(self._next_id, announcement.announcement_id + 1)
        return announcement

    def get_by_id(self, announcement_id):
        return self._rows.get(announcement_id)

    def create(self, *, site_id, title, message, priority, expiry_date, created_by):
        announcement_id = self._next_id
        self._next_id += 1
        creator = self._users.get_by_id(created_by) if self._users else None
        self._rows[announcement_id] = Announcement(
            announcement_id=announcement_id,
            site_id=site_id,
            title=title,
            message=message,
            priority=priority,
            expiry_date=expiry_date,
            is_active=True,
            created_by=created_by,
            created_at=self.created_at,
            creator_role=creator.role.value if creator else None,
            creator_name=creator.full_name if creator else None,
        )
        return announcement_id

    def deactivate(self, announcement_id):
        row = self._rows.get(announcement_id)
        if not row:
            return False
        self._rows[announcement_id] = replace(row, is_active=False)
        return True

    def _newest_first(self, rows):
        return sorted(rows, key=lambda a: a.created_at, reverse=True)

    def _live(self, a, now):
        return a.is_active and (a.expiry_date is None or a.expiry_date >= now)

    def list_active_by_creator_role(self, *, role, now):
        return self._newest_first(
            a for a in self._rows.values() if a.creator_role == role.value and self._live(a, now)
        )

    def list_active_for_sites(self, *, site_ids, now):
        site_ids = set(site_ids)
        return self._newest_first(
            a
            for a in self._rows.values()
            if (a.site_id is None or a.site_id in site_ids) and self._live(a, now)
        )

    def list_by_creator(self, *, created_by, site_id=None, only_global=False):
        rows = [a for a in self._rows.values() if a.created_by == created_by]
        if only_global:
            rows = [a for a in rows if a.site_id is None]
        elif site_id is not None:
            rows = [a for a in rows if a.site_id == site_id]
        return self._newest_first(rows)


def make_user(user_id: int, role: Role = Role.WORKER, *, name: Optional[str] = None, mobile: Optional[str] = None) -> User:
    return User(
        user_id=user_id,
        country_code="+91",
        mobile_number=mobile or f"90000000{user_id:02d}",
        password_hash=None,
        full_name=name or f"User {user_id}",
        role=role,
    )


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2026, 3, 10, 9, 0, 0)


@pytest.fixture
def today(fixed_now) -> date:
    return fixed_now.date()


@pytest.fixture
def users() -> InMemoryUsers:
    return InMemoryUsers(
        [
            make_user(1, Role.ADMIN, name="Asha Admin"),
            make_user(2, Role.SITE_COORDINATOR, name="Chris Coordinator"),
            make_user(3, Role.WORKER, name="Wendy Worker"),
            make_user(4, Role.WORKER, name="Bala Builder"),
        ]
    )


@pytest.fixture
def sites() -> InMemorySites:
    return InMemorySites([Site(1, "Head Office", "HQ"), Site(2, "North Yard", "NORTH-01")])


@pytest.fixture
def assignments() -> InMemoryAssignments:
    return InMemoryAssignments()


@pytest.fixture
def attendance_repo(users, sites) -> InMemoryAttendance:
    return InMemoryAttendance(users, sites)


@pytest.fixture
def announcements_repo(users) -> InMemoryAnnouncements:
    return InMemoryAnnouncements(users)


@pytest.fixture
def user_factory():
    return make_user
