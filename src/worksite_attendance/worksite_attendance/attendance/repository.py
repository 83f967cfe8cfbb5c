from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from .model import AttendanceRecord, AttendanceReportRow


class AttendanceRepository(Protocol):
    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_for_worker_and_date(self, worker_id: int, work_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def create_punch_in(
        self,
        *,
        worker_id: int,
        site_id: Optional[int],
        work_date: date,
        punch_in_time: datetime,
        latitude: float,
        longitude: float,
        selfie_url: str,
    ) -> int:
        """Insert today's row; raises DuplicateKeyError if (worker_id, work_date) exists."""

        raise NotImplementedError

    def fill_punch_in(
        self,
        *,
        attendance_id: int,
        punch_in_time: datetime,
        latitude: float,
        longitude: float,
        selfie_url: str,
    ) -> bool:
        """Set punch-in fields only while punch_in_time is still NULL."""

        raise NotImplementedError

    def record_punch_out(
        self,
        *,
        attendance_id: int,
        punch_out_time: datetime,
        latitude: float,
        longitude: float,
        selfie_url: str,
        total_hours: Optional[float],
    ) -> bool:
        """Set punch-out fields only while punch_out_time is still NULL."""

        raise NotImplementedError

    def list_for_worker(self, *, worker_id: int, start: datetime, end: datetime) -> Sequence[AttendanceRecord]:
        """Rows with start <= work_date <= end, newest date first."""

        raise NotImplementedError

    def list_filtered(
        self,
        *,
        site_id: int,
        worker_ids: Sequence[int],
        start: datetime,
        end: datetime,
    ) -> Sequence[AttendanceReportRow]:
        raise NotImplementedError
