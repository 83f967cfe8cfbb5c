from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional, Sequence

from ..common.datetime_utils import end_of_day, hours_between, now_local, start_of_day
from ..common.validators import require_coordinates
from ..core.exceptions import (
    AlreadyPunchedIn,
    AlreadyPunchedOut,
    DuplicateKeyError,
    InvalidDateRange,
    NoPunchInFound,
    SiteNotFound,
    ValidationError,
)
from ..sites.repository import AssignmentRepository, SiteRepository
from .model import AttendanceRecord, AttendanceReportRow, TodayStatus, WorkerSelector
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


def parse_worker_selector(raw: str | Sequence[str] | None) -> WorkerSelector:
    """Parse 'all', 'myself', '7' or '7,9' (or a list of such strings)."""

    if raw is None:
        raise ValidationError("Worker ID is required", {"workerId": "Worker ID is required"})

    parts = [raw] if isinstance(raw, str) else list(raw)
    tokens = [t.strip() for p in parts for t in str(p).split(",") if t.strip()]
    if not tokens:
        raise ValidationError("Worker ID is required", {"workerId": "Worker ID is required"})

    if len(tokens) == 1 and tokens[0].lower() in (WorkerSelector.ALL, WorkerSelector.MYSELF):
        return WorkerSelector(tokens[0].lower())

    try:
        return WorkerSelector.of(*(int(t) for t in tokens))
    except ValueError:
        raise ValidationError("Invalid worker ID", {"workerId": "Use 'all', 'myself' or numeric IDs"})


class AttendanceService:
    """Attendance ledger: one record per worker per day, punch-in then punch-out."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        sites: SiteRepository,
        assignments: AssignmentRepository,
    ):
        self._attendance = attendance
        self._sites = sites
        self._assignments = assignments

    def punch_in(
        self,
        worker_id: int,
        site_id: Optional[int],
        latitude: float,
        longitude: float,
        selfie_url: str,
        *,
        now: datetime | None = None,
    ) -> AttendanceRecord:
        require_coordinates(latitude, longitude)

        # site_id is optional (admins punch in without a site)
        if site_id is not None and not self._sites.get_by_id(site_id):
            raise SiteNotFound()

        now = now or now_local()
        today = now.date()

        existing = self._attendance.get_for_worker_and_date(worker_id, today)
        if existing:
            if existing.punch_in_time is not None:
                raise AlreadyPunchedIn(existing)

            filled = self._attendance.fill_punch_in(
                attendance_id=existing.attendance_id,
                punch_in_time=now,
                latitude=latitude,
                longitude=longitude,
                selfie_url=selfie_url,
            )
            if not filled:
                raise AlreadyPunchedIn(self._attendance.get_by_id(existing.attendance_id))
            attendance_id = existing.attendance_id
        else:
            try:
                attendance_id = self._attendance.create_punch_in(
                    worker_id=worker_id,
                    site_id=site_id,
                    work_date=today,
                    punch_in_time=now,
                    latitude=latitude,
                    longitude=longitude,
                    selfie_url=selfie_url,
                )
            except DuplicateKeyError:
                # Lost a race with a concurrent punch-in for the same worker/day.
                logger.warning("Concurrent punch-in rejected by store worker_id=%s date=%s", worker_id, today)
                raise AlreadyPunchedIn(self._attendance.get_for_worker_and_date(worker_id, today))

        logger.info("Punch in worker_id=%s site_id=%s at %s", worker_id, site_id, now.isoformat())
        return self._attendance.get_by_id(attendance_id)

    def punch_out(
        self,
        worker_id: int,
        latitude: float,
        longitude: float,
        selfie_url: str,
        *,
        now: datetime | None = None,
    ) -> AttendanceRecord:
        require_coordinates(latitude, longitude)

        now = now or now_local()
        record = self._attendance.get_for_worker_and_date(worker_id, now.date())
        if not record or record.punch_in_time is None:
            raise NoPunchInFound()
        if record.punch_out_time is not None:
            raise AlreadyPunchedOut(record)

        total_hours = hours_between(record.punch_in_time, now)
        updated = self._attendance.record_punch_out(
            attendance_id=record.attendance_id,
            punch_out_time=now,
            latitude=latitude,
            longitude=longitude,
            selfie_url=selfie_url,
            total_hours=total_hours,
        )
        if not updated:
            raise AlreadyPunchedOut(self._attendance.get_by_id(record.attendance_id))

        logger.info("Punch out worker_id=%s total_hours=%s", worker_id, total_hours)
        return self._attendance.get_by_id(record.attendance_id)

    def get_today_status(self, worker_id: int, *, now: datetime | None = None) -> TodayStatus:
        today = (now or now_local()).date()
        record = self._attendance.get_for_worker_and_date(worker_id, today)
        if not record:
            return TodayStatus()

        return TodayStatus(
            has_punched_in=record.punch_in_time is not None,
            has_punched_out=record.punch_out_time is not None,
            punch_in_time=record.punch_in_time,
            punch_out_time=record.punch_out_time,
        )

    def get_attendance_records(self, worker_id: int, start: date, end: date) -> Sequence[AttendanceRecord]:
        if start > end:
            raise InvalidDateRange(field="start")

        return self._attendance.list_for_worker(
            worker_id=worker_id,
            start=start_of_day(start),
            end=end_of_day(end),
        )

    def get_filtered_attendance(
        self,
        site_id: int,
        selector: WorkerSelector,
        start: date,
        end: date,
        requesting_user_id: int,
    ) -> Sequence[AttendanceReportRow]:
        if start > end:
            raise InvalidDateRange(field="startDate")

        if selector.kind == WorkerSelector.ALL:
            worker_ids = [a.user_id for a in self._assignments.list_for_site(site_id)]
        elif selector.kind == WorkerSelector.MYSELF:
            worker_ids = [requesting_user_id]
        else:
            worker_ids = list(selector.worker_ids)

        if not worker_ids:
            return []

        return self._attendance.list_filtered(
            site_id=site_id,
            worker_ids=worker_ids,
            start=start_of_day(start),
            end=end_of_day(end),
        )
