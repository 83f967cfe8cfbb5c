from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Protocol, Sequence

from ..core.enums import Role
from .model import Announcement


class AnnouncementRepository(Protocol):
    """Store contract for announcements.

    List methods return rows joined with site and creator names, newest first.
    Priority ordering is applied by the service, not here.
    """

    def get_by_id(self, announcement_id: int) -> Optional[Announcement]:
        raise NotImplementedError

    def create(
        self,
        *,
        site_id: Optional[int],
        title: str,
        message: str,
        priority: str,
        expiry_date: Optional[datetime],
        created_by: int,
    ) -> int:
        raise NotImplementedError

    def deactivate(self, announcement_id: int) -> bool:
        raise NotImplementedError

    def list_active_by_creator_role(self, *, role: Role, now: datetime) -> Sequence[Announcement]:
        """Active, unexpired announcements authored by users holding ``role``."""

        raise NotImplementedError

    def list_active_for_sites(self, *, site_ids: Iterable[int], now: datetime) -> Sequence[Announcement]:
        """Active, unexpired announcements for the given sites plus global ones."""

        raise NotImplementedError

    def list_by_creator(
        self,
        *,
        created_by: int,
        site_id: Optional[int] = None,
        only_global: bool = False,
    ) -> Sequence[Announcement]:
        raise NotImplementedError
