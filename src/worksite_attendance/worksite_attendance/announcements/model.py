from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import isoformat_or_none
from ..core.enums import PRIORITY_RANK, UNKNOWN_PRIORITY_RANK


@dataclass(frozen=True)
class Announcement:
    """Domain entity: a site-scoped (or global, site_id=None) notice.

    site/creator fields are filled by joins on read and are never stored.
    """

    announcement_id: int
    site_id: Optional[int]
    title: str
    message: str
    priority: str
    expiry_date: Optional[datetime]
    is_active: bool
    created_by: int
    created_at: datetime
    updated_at: Optional[datetime] = None
    site_name: Optional[str] = None
    site_code: Optional[str] = None
    creator_role: Optional[str] = None
    creator_name: Optional[str] = None

    @property
    def priority_rank(self) -> int:
        return PRIORITY_RANK.get((self.priority or "").lower(), UNKNOWN_PRIORITY_RANK)

    @property
    def is_global(self) -> bool:
        return self.site_id is None

    def is_expired(self, now: datetime) -> bool:
        return self.expiry_date is not None and self.expiry_date < now

    def is_visible(self, now: datetime) -> bool:
        return self.is_active and (self.expiry_date is None or self.expiry_date >= now)

    def to_dict(self, *, now: Optional[datetime] = None) -> dict:
        """Serialize; when ``now`` is given the row also carries a derived is_expired flag."""

        data = {
            "id": self.announcement_id,
            "site_id": self.site_id,
            "site_name": self.site_name,
            "site_code": self.site_code,
            "title": self.title,
            "message": self.message,
            "priority": self.priority,
            "created_at": isoformat_or_none(self.created_at),
            "updated_at": isoformat_or_none(self.updated_at),
            "expiry_date": isoformat_or_none(self.expiry_date),
            "is_active": self.is_active,
            "created_by": self.created_by,
            "creator_role": self.creator_role,
            "creator_name": self.creator_name,
        }
        if now is not None:
            data["is_expired"] = self.is_expired(now)
        return data
