from __future__ import annotations

from enum import Enum
from typing import Optional

from .exceptions import ValidationError


class Role(str, Enum):
    """Account role used for authorization."""

    WORKER = "worker"
    SITE_COORDINATOR = "site_coordinator"
    ADMIN = "admin"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Role":
        """Parse a role from request input.

        Missing values default to WORKER; anything else outside the enum is rejected.
        """

        if value is None or not str(value).strip():
            return cls.WORKER
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValidationError("Invalid role", {"role": "Role must be worker, site_coordinator or admin"})


class AssignedRole(str, Enum):
    """Role a user holds on a specific site."""

    WORKER = "worker"
    SITE_COORDINATOR = "sitecoordinator"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


PRIORITY_RANK = {
    Priority.HIGH.value: 0,
    Priority.MEDIUM.value: 1,
    Priority.LOW.value: 2,
}
UNKNOWN_PRIORITY_RANK = 99
