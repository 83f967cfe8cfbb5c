from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_float, db_cursor, fetchall, fetchone, placeholders
from .model import AttendanceRecord, AttendanceReportRow
from .repository import AttendanceRepository

_COLUMNS = """
    a.attendance_id, a.worker_id, a.site_id, a.work_date,
    a.punch_in_time, a.punch_in_latitude, a.punch_in_longitude, a.punch_in_selfie_url,
    a.punch_out_time, a.punch_out_latitude, a.punch_out_longitude, a.punch_out_selfie_url,
    a.total_hours, a.created_at, a.updated_at
"""


def _to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        worker_id=int(r["worker_id"]),
        site_id=int(r["site_id"]) if r.get("site_id") is not None else None,
        work_date=r["work_date"],
        punch_in_time=r.get("punch_in_time"),
        punch_in_latitude=as_float(r.get("punch_in_latitude")),
        punch_in_longitude=as_float(r.get("punch_in_longitude")),
        punch_in_selfie_url=r.get("punch_in_selfie_url"),
        punch_out_time=r.get("punch_out_time"),
        punch_out_latitude=as_float(r.get("punch_out_latitude")),
        punch_out_longitude=as_float(r.get("punch_out_longitude")),
        punch_out_selfie_url=r.get("punch_out_selfie_url"),
        total_hours=as_float(r.get("total_hours")),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance a WHERE a.attendance_id=%s", (int(attendance_id),))
            r = fetchone(cur)
            return _to_record(r) if r else None

    def get_for_worker_and_date(self, worker_id: int, work_date: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance a WHERE a.worker_id=%s AND a.work_date=%s",
                (int(worker_id), work_date),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance(
                    worker_id, site_id, work_date,
                    punch_in_time, punch_in_latitude, punch_in_longitude, punch_in_selfie_url
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (int(worker_id), site_id, work_date, punch_in_time, latitude, longitude, selfie_url),
            )
            return int(cur.lastrowid)

    def fill_punch_in(
        self,
        *,
        attendance_id: int,
        punch_in_time: datetime,
        latitude: float,
        longitude: float,
        selfie_url: str,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance
                SET punch_in_time=%s, punch_in_latitude=%s, punch_in_longitude=%s, punch_in_selfie_url=%s
                WHERE attendance_id=%s AND punch_in_time IS NULL
                """,
                (punch_in_time, latitude, longitude, selfie_url, int(attendance_id)),
            )
            return cur.rowcount > 0

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance
                SET punch_out_time=%s, punch_out_latitude=%s, punch_out_longitude=%s,
                    punch_out_selfie_url=%s, total_hours=%s
                WHERE attendance_id=%s AND punch_out_time IS NULL
                """,
                (punch_out_time, latitude, longitude, selfie_url, total_hours, int(attendance_id)),
            )
            return cur.rowcount > 0

    def list_for_worker(self, *, worker_id: int, start: datetime, end: datetime) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance a
                WHERE a.worker_id=%s AND a.work_date >= %s AND a.work_date <= %s
                ORDER BY a.work_date DESC
                """,
                (int(worker_id), start, end),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def list_filtered(
        self,
        *,
        site_id: int,
        worker_ids: Sequence[int],
        start: datetime,
        end: datetime,
    ) -> Sequence[AttendanceReportRow]:
        if not worker_ids:
            return []

        params: list[object] = [int(site_id), start, end, *[int(w) for w in worker_ids]]

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT
                    {_COLUMNS},
                    u.full_name AS worker_name, u.role AS worker_role,
                    s.name AS site_name, s.code AS site_code
                FROM attendance a
                LEFT JOIN users u ON u.user_id = a.worker_id
                LEFT JOIN sites s ON s.site_id = a.site_id
                WHERE a.site_id=%s
                  AND a.work_date >= %s AND a.work_date <= %s
                  AND a.worker_id IN ({placeholders(worker_ids)})
                ORDER BY a.work_date DESC, a.worker_id ASC
                """,
                tuple(params),
            )
            rows = fetchall(cur)

            return [
                AttendanceReportRow(
                    record=_to_record(r),
                    worker_name=r.get("worker_name"),
                    worker_role=r.get("worker_role"),
                    site_name=r.get("site_name"),
                    site_code=r.get("site_code"),
                )
                for r in rows
            ]
