from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import isoformat_or_none
from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Domain entity: an account identified by (country_code, mobile_number).

    Plain data object, no DB access here.
    """

    user_id: int
    country_code: str
    mobile_number: str
    password_hash: Optional[str]
    full_name: Optional[str]
    role: Role
    profile_image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None

    def to_public_dict(self) -> dict:
        return {
            "id": self.user_id,
            "country_code": self.country_code,
            "mobile_number": self.mobile_number,
            "full_name": self.full_name,
            "role": self.role.value,
            "profile_image_url": self.profile_image_url,
            "created_at": isoformat_or_none(self.created_at),
            "last_login_at": isoformat_or_none(self.last_login_at),
        }

    def to_summary_dict(self) -> dict:
        return {
            "id": self.user_id,
            "name": self.full_name,
            "role": self.role.value,
            "mobile_number": self.mobile_number,
        }
