from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from src.worksite_attendance.worksite_attendance.attendance.model import AttendanceRecord, WorkerSelector
from src.worksite_attendance.worksite_attendance.attendance.service import AttendanceService, parse_worker_selector
from src.worksite_attendance.worksite_attendance.core.enums import AssignedRole
from src.worksite_attendance.worksite_attendance.core.exceptions import (
    AlreadyPunchedIn,
    AlreadyPunchedOut,
    DuplicateKeyError,
    InvalidDateRange,
    NoPunchInFound,
    SiteNotFound,
    ValidationError,
)


@pytest.fixture
def service(attendance_repo, sites, assignments):
    return AttendanceService(attendance_repo, sites, assignments)


def test_punch_in_creates_todays_record(service, attendance_repo, fixed_now):
    record = service.punch_in(3, 1, 12.97, 77.59, "/uploads/a.jpg", now=fixed_now)

    assert record.worker_id == 3
    assert record.site_id == 1
    assert record.work_date == fixed_now.date()
    assert record.punch_in_time == fixed_now
    assert record.punch_in_selfie_url == "/uploads/a.jpg"
    assert record.is_on_site
    assert len(attendance_repo) == 1


def test_second_punch_in_same_day_is_rejected_without_new_row(service, attendance_repo, fixed_now):
    first = service.punch_in(3, 1, 12.97, 77.59, "/uploads/a.jpg", now=fixed_now)

    with pytest.raises(AlreadyPunchedIn) as exc:
        service.punch_in(3, 1, 12.97, 77.59, "/uploads/b.jpg", now=fixed_now + timedelta(hours=1))

    assert exc.value.attendance.attendance_id == first.attendance_id
    assert len(attendance_repo) == 1
    assert attendance_repo.get_by_id(first.attendance_id).punch_in_selfie_url == "/uploads/a.jpg"


def test_punch_in_next_day_creates_second_row(service, attendance_repo, fixed_now):
    service.punch_in(3, 1, 12.97, 77.59, "/uploads/a.jpg", now=fixed_now)
    service.punch_in(3, 1, 12.97, 77.59, "/uploads/b.jpg", now=fixed_now + timedelta(days=1))

    assert len(attendance_repo) == 2


def test_punch_in_unknown_site(service, attendance_repo, fixed_now):
    with pytest.raises(SiteNotFound):
        service.punch_in(3, 99, 12.97, 77.59, "/uploads/a.jpg", now=fixed_now)
    assert len(attendance_repo) == 0


def test_punch_in_without_site_is_allowed(service, fixed_now):
    record = service.punch_in(1, None, 12.97, 77.59, "/uploads/a.jpg", now=fixed_now)
    assert record.site_id is None


@pytest.mark.parametrize("lat,lng,bad_field", [(91.0, 10.0, "lat"), (10.0, -200.0, "lng")])
def test_out_of_range_coordinates_rejected_without_mutation(service, attendance_repo, fixed_now, lat, lng, bad_field):
    with pytest.raises(ValidationError) as exc:
        service.punch_in(3, 1, lat, lng, "/uploads/a.jpg", now=fixed_now)

    assert bad_field in exc.value.errors
    assert len(attendance_repo) == 0


def test_punch_out_with_bad_coordinates_leaves_record_open(service, attendance_repo, fixed_now):
    record = service.punch_in(3, 1, 12.97, 77.59, "/uploads/a.jpg", now=fixed_now)

    with pytest.raises(ValidationError):
        service.punch_out(3, 12.97, 181.0, "/uploads/b.jpg", now=fixed_now + timedelta(hours=8))

    assert attendance_repo.get_by_id(record.attendance_id).punch_out_time is None


def test_punch_in_fills_existing_row_without_punch_in(service, attendance_repo, fixed_now):
    attendance_repo.insert(AttendanceRecord(attendance_id=7, worker_id=3, site_id=1, work_date=fixed_now.date()))

    record = service.punch_in(3, 1, 12.97, 77.59, "/uploads/a.jpg", now=fixed_now)

    assert record.attendance_id == 7
    assert record.punch_in_time == fixed_now
    assert len(attendance_repo) == 1


def test_concurrent_punch_in_losing_insert_reports_already_punched_in(attendance_repo, sites, assignments, fixed_now):
    class RacingAttendance(type(attendance_repo)):
        """The read sees no row; a concurrent request inserts one before our insert lands."""

        def __init__(self, inner):
            self.__dict__.update(inner.__dict__)
            self._raced = False

        def get_for_worker_and_date(self, worker_id, work_date):
            if not self._raced:
                return None
            return super().get_for_worker_and_date(worker_id, work_date)

        def create_punch_in(self, **kwargs):
            self._raced = True
            super().create_punch_in(**{**kwargs, "selfie_url": "/uploads/winner.jpg"})
            raise DuplicateKeyError("attendance.uq_attendance_worker_date")

    repo = RacingAttendance(attendance_repo)
    service = AttendanceService(repo, sites, assignments)

    with pytest.raises(AlreadyPunchedIn) as exc:
        service.punch_in(3, 1, 12.97, 77.59, "/uploads/loser.jpg", now=fixed_now)

    assert exc.value.attendance.punch_in_selfie_url == "/uploads/winner.jpg"
    assert len(repo) == 1


def test_punch_out_without_punch_in(service, fixed_now):
    with pytest.raises(NoPunchInFound):
        service.punch_out(3, 12.97, 77.59, "/uploads/b.jpg", now=fixed_now)


def test_punch_out_computes_total_hours(service):
    start = datetime(2026, 3, 10, 9, 0, 0)
    service.punch_in(3, 1, 12.97, 77.59, "/uploads/a.jpg", now=start)

    record = service.punch_out(3, 12.98, 77.60, "/uploads/b.jpg", now=datetime(2026, 3, 10, 17, 30, 0))

    assert record.total_hours == 8.5
    assert record.punch_out_latitude == 12.98
    assert record.punch_out_selfie_url == "/uploads/b.jpg"
    assert not record.is_on_site


def test_total_hours_rounded_to_two_decimals(service):
    service.punch_in(3, 1, 0.0, 0.0, "/uploads/a.jpg", now=datetime(2026, 3, 10, 9, 0, 0))
    record = service.punch_out(3, 0.0, 0.0, "/uploads/b.jpg", now=datetime(2026, 3, 10, 9, 20, 0))
    assert record.total_hours == 0.33


def test_second_punch_out_rejected_and_keeps_first(service, attendance_repo, fixed_now):
    service.punch_in(3, 1, 12.97, 77.59, "/uploads/a.jpg", now=fixed_now)
    first = service.punch_out(3, 12.97, 77.59, "/uploads/b.jpg", now=fixed_now + timedelta(hours=4))

    with pytest.raises(AlreadyPunchedOut) as exc:
        service.punch_out(3, 12.97, 77.59, "/uploads/c.jpg", now=fixed_now + timedelta(hours=6))

    assert exc.value.attendance.punch_out_time == first.punch_out_time
    assert attendance_repo.get_by_id(first.attendance_id).total_hours == 4.0


def test_today_status(service, fixed_now):
    assert service.get_today_status(3, now=fixed_now).to_dict() == {
        "has_punched_in": False,
        "has_punched_out": False,
        "punch_in_time": None,
        "punch_out_time": None,
    }

    service.punch_in(3, 1, 12.97, 77.59, "/uploads/a.jpg", now=fixed_now)
    status = service.get_today_status(3, now=fixed_now)
    assert status.has_punched_in and not status.has_punched_out
    assert status.punch_in_time == fixed_now

    service.punch_out(3, 12.97, 77.59, "/uploads/b.jpg", now=fixed_now + timedelta(hours=1))
    assert service.get_today_status(3, now=fixed_now).has_punched_out


def _seed_days(repo, worker_id, site_id, days):
    for d in days:
        repo.insert(
            AttendanceRecord(
                attendance_id=repo._next_id,
                worker_id=worker_id,
                site_id=site_id,
                work_date=d,
                punch_in_time=datetime.combine(d, datetime.min.time()).replace(hour=9),
            )
        )


def test_attendance_records_range_is_inclusive_and_newest_first(service, attendance_repo):
    _seed_days(attendance_repo, 3, 1, [date(2026, 2, 28), date(2026, 3, 1), date(2026, 3, 15), date(2026, 3, 31), date(2026, 4, 1)])

    records = service.get_attendance_records(3, date(2026, 3, 1), date(2026, 3, 31))

    assert [r.work_date for r in records] == [date(2026, 3, 31), date(2026, 3, 15), date(2026, 3, 1)]


def test_attendance_records_rejects_inverted_range(service):
    with pytest.raises(InvalidDateRange) as exc:
        service.get_attendance_records(3, date(2026, 3, 31), date(2026, 3, 1))
    assert "start" in exc.value.errors


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("all", WorkerSelector.all()),
        ("Myself", WorkerSelector.myself()),
        ("7", WorkerSelector.of(7)),
        ("7,9", WorkerSelector.of(7, 9)),
        (["7", "9"], WorkerSelector.of(7, 9)),
    ],
)
def test_parse_worker_selector(raw, expected):
    assert parse_worker_selector(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "abc", "7,x"])
def test_parse_worker_selector_rejects_bad_input(raw):
    with pytest.raises(ValidationError) as exc:
        parse_worker_selector(raw)
    assert "workerId" in exc.value.errors


def test_filtered_attendance_selectors(service, attendance_repo, assignments):
    day = date(2026, 3, 10)
    assignments.add(1, 2, AssignedRole.SITE_COORDINATOR)
    assignments.add(1, 3)
    assignments.add(1, 4)
    for worker_id in (2, 3, 4):
        _seed_days(attendance_repo, worker_id, 1, [day])
    _seed_days(attendance_repo, 3, 2, [day + timedelta(days=1)])

    everyone = service.get_filtered_attendance(1, WorkerSelector.all(), day, day, requesting_user_id=2)
    assert sorted(r.record.worker_id for r in everyone) == [2, 3, 4]

    mine = service.get_filtered_attendance(1, WorkerSelector.myself(), day, day, requesting_user_id=2)
    assert [r.record.worker_id for r in mine] == [2]
    assert mine[0].worker_name == "Chris Coordinator"
    assert mine[0].site_code == "HQ"

    picked = service.get_filtered_attendance(1, WorkerSelector.of(4), day, day + timedelta(days=1), requesting_user_id=2)
    assert [r.record.worker_id for r in picked] == [4]


def test_filtered_attendance_all_on_empty_site(service):
    rows = service.get_filtered_attendance(2, WorkerSelector.all(), date(2026, 3, 1), date(2026, 3, 31), requesting_user_id=1)
    assert rows == []


def test_filtered_attendance_rejects_inverted_range(service):
    with pytest.raises(InvalidDateRange) as exc:
        service.get_filtered_attendance(1, WorkerSelector.all(), date(2026, 3, 2), date(2026, 3, 1), requesting_user_id=1)
    assert "startDate" in exc.value.errors
