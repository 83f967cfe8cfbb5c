from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime
from typing import Optional

from ..common.datetime_utils import isoformat_or_none


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one attendance row per worker per day."""

    attendance_id: int
    worker_id: int
    site_id: Optional[int]
    work_date: date
    punch_in_time: Optional[datetime] = None
    punch_in_latitude: Optional[float] = None
    punch_in_longitude: Optional[float] = None
    punch_in_selfie_url: Optional[str] = None
    punch_out_time: Optional[datetime] = None
    punch_out_latitude: Optional[float] = None
    punch_out_longitude: Optional[float] = None
    punch_out_selfie_url: Optional[str] = None
    total_hours: Optional[float] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_on_site(self) -> bool:
        return self.punch_in_time is not None and self.punch_out_time is None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["id"] = data.pop("attendance_id")
        for key, value in data.items():
            if isinstance(value, (date, datetime)):
                data[key] = value.isoformat()
        return data


@dataclass(frozen=True)
class AttendanceReportRow:
    """Read-model for cross-worker queries (record joined with worker and site names)."""

    record: AttendanceRecord
    worker_name: Optional[str]
    worker_role: Optional[str]
    site_name: Optional[str]
    site_code: Optional[str]

    def to_dict(self) -> dict:
        data = self.record.to_dict()
        data.update(
            worker_name=self.worker_name,
            worker_role=self.worker_role,
            site_name=self.site_name,
            site_code=self.site_code,
        )
        return data


@dataclass(frozen=True)
class TodayStatus:
    has_punched_in: bool = False
    has_punched_out: bool = False
    punch_in_time: Optional[datetime] = None
    punch_out_time: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "has_punched_in": self.has_punched_in,
            "has_punched_out": self.has_punched_out,
            "punch_in_time": isoformat_or_none(self.punch_in_time),
            "punch_out_time": isoformat_or_none(self.punch_out_time),
        }


@dataclass(frozen=True)
class WorkerSelector:
    """Which workers a cross-worker query covers.

    kind is one of "all" (everyone assigned to the site), "myself" (the caller) or "ids".
    """

    kind: str
    worker_ids: tuple[int, ...] = ()

    ALL = "all"
    MYSELF = "myself"
    IDS = "ids"

    @classmethod
    def all(cls) -> "WorkerSelector":
        return cls(cls.ALL)

    @classmethod
    def myself(cls) -> "WorkerSelector":
        return cls(cls.MYSELF)

    @classmethod
    def of(cls, *worker_ids: int) -> "WorkerSelector":
        return cls(cls.IDS, tuple(int(w) for w in worker_ids))
