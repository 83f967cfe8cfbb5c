from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import isoformat_or_none
from ..core.enums import AssignedRole


@dataclass(frozen=True)
class Site:
    site_id: int
    name: str
    code: Optional[str] = None
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    created_at: Optional[datetime] = None

    def to_summary_dict(self) -> dict:
        return {"id": self.site_id, "name": self.name, "code": self.code}

    def to_dict(self) -> dict:
        return {
            "id": self.site_id,
            "code": self.code,
            "name": self.name,
            "address": self.address,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "created_at": isoformat_or_none(self.created_at),
        }


@dataclass(frozen=True)
class SiteAssignment:
    """Link entity: a user holding a role on a site."""

    assignment_id: int
    site_id: int
    user_id: int
    assigned_role: AssignedRole
    assigned_at: Optional[datetime] = None
