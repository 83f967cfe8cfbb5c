from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Optional

from ..common.datetime_utils import now_local, parse_instant
from ..common.validators import require_non_empty
from ..core.constants import ALL_SITES
from ..core.enums import Priority, Role
from ..core.exceptions import AuthorizationError, InvalidPriority, NotFoundError, ValidationError
from ..sites.repository import AssignmentRepository, SiteRepository
from .model import Announcement
from .repository import AnnouncementRepository

logger = logging.getLogger(__name__)


def sort_by_priority(announcements: Iterable[Announcement]) -> list[Announcement]:
    """high -> medium -> low -> unknown, most recent first within a rank."""

    newest_first = sorted(announcements, key=lambda a: a.created_at, reverse=True)
    # sorted() is stable, so recency survives the rank sort
    return sorted(newest_first, key=lambda a: a.priority_rank)


def _parse_site_id(value) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError("Invalid site ID", {"siteId": "Site ID must be a number or 'all'"})


def _parse_expiry(value) -> datetime:
    invalid = ValidationError("Invalid expiry date", {"expiryDate": "Use an ISO-8601 date or datetime"})
    if not isinstance(value, str):
        raise invalid
    try:
        return parse_instant(value)
    except ValueError:
        raise invalid


class AnnouncementService:
    """Announcement board: creation, role/site scoped visibility and creator-only deactivation."""

    def __init__(
        self,
        announcements: AnnouncementRepository,
        assignments: AssignmentRepository,
        sites: SiteRepository,
    ):
        self._announcements = announcements
        self._assignments = assignments
        self._sites = sites

    def create_announcement(
        self,
        *,
        site_id,
        title: str,
        message: str,
        priority: str,
        expiry_date: Optional[str | datetime],
        created_by: int,
    ) -> Announcement:
        if not isinstance(priority, str):
            raise InvalidPriority()
        try:
            normalized_priority = Priority(priority.strip().lower())
        except ValueError:
            raise InvalidPriority()

        title = require_non_empty(title, "title")
        message = require_non_empty(message, "message")

        if site_id is None or str(site_id).strip().lower() == ALL_SITES:
            target_site: Optional[int] = None
        else:
            target_site = _parse_site_id(site_id)
            if not self._sites.get_by_id(target_site):
                raise NotFoundError("Site not found")

        expires_at: Optional[datetime]
        if not expiry_date:
            expires_at = None
        elif isinstance(expiry_date, datetime):
            expires_at = expiry_date
        else:
            expires_at = _parse_expiry(expiry_date)

        announcement_id = self._announcements.create(
            site_id=target_site,
            title=title,
            message=message,
            priority=normalized_priority.value,
            expiry_date=expires_at,
            created_by=created_by,
        )
        logger.info(
            "Announcement %s created by user_id=%s site_id=%s priority=%s",
            announcement_id,
            created_by,
            target_site,
            normalized_priority.value,
        )
        return self._announcements.get_by_id(announcement_id)

    def get_announcements_for_user(
        self,
        user_id: int,
        role: Role,
        *,
        now: datetime | None = None,
    ) -> list[Announcement]:
        now = now or now_local()

        if role == Role.ADMIN:
            rows = self._announcements.list_active_by_creator_role(role=Role.ADMIN, now=now)
        else:
            site_ids = {a.site_id for a in self._assignments.list_for_user(user_id)}
            rows = self._announcements.list_active_for_sites(site_ids=site_ids, now=now)

        return sort_by_priority(a for a in rows if a.is_visible(now))

    def get_my_announcements(self, user_id: int, site_id=None, *, now: datetime | None = None) -> list[dict]:
        """Announcements authored by user_id, newest first, each flagged with is_expired.

        site_id None means every site; "all" means only global announcements.
        """

        now = now or now_local()

        if site_id is None or str(site_id).strip() == "":
            rows = self._announcements.list_by_creator(created_by=user_id)
        elif str(site_id).strip().lower() == ALL_SITES:
            rows = self._announcements.list_by_creator(created_by=user_id, only_global=True)
        else:
            rows = self._announcements.list_by_creator(created_by=user_id, site_id=_parse_site_id(site_id))

        return [a.to_dict(now=now) for a in rows]

    def deactivate_announcement(self, announcement_id: int, user_id: int) -> Announcement:
        announcement = self._announcements.get_by_id(announcement_id)
        if not announcement:
            raise NotFoundError("Announcement not found")

        if announcement.created_by != user_id:
            logger.warning("User %s tried to deactivate announcement %s", user_id, announcement_id)
            raise AuthorizationError("You are not authorized to deactivate this announcement")

        if announcement.is_active:
            self._announcements.deactivate(announcement_id)
            logger.info("Announcement %s deactivated by user_id=%s", announcement_id, user_id)

        return self._announcements.get_by_id(announcement_id)
