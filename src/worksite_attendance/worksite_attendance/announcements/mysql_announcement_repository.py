from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Sequence

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, placeholders
from .model import Announcement
from .repository import AnnouncementRepository

_SELECT = """
    SELECT
        an.announcement_id, an.site_id, an.title, an.message, an.priority, an.expiry_date,
        an.is_active, an.created_by, an.created_at, an.updated_at,
        s.name AS site_name, s.code AS site_code,
        u.role AS creator_role, u.full_name AS creator_name
    FROM announcements an
    LEFT JOIN sites s ON s.site_id = an.site_id
    LEFT JOIN users u ON u.user_id = an.created_by
"""

_ACTIVE = "an.is_active = 1 AND (an.expiry_date IS NULL OR an.expiry_date >= %s)"


def _to_announcement(r: dict) -> Announcement:
    return Announcement(
        announcement_id=int(r["announcement_id"]),
        site_id=int(r["site_id"]) if r.get("site_id") is not None else None,
        title=r["title"],
        message=r["message"],
        priority=r["priority"],
        expiry_date=r.get("expiry_date"),
        is_active=bool(r["is_active"]),
        created_by=int(r["created_by"]),
        created_at=r["created_at"],
        updated_at=r.get("updated_at"),
        site_name=r.get("site_name"),
        site_code=r.get("site_code"),
        creator_role=r.get("creator_role"),
        creator_name=r.get("creator_name"),
    )


class MySQLAnnouncementRepository(AnnouncementRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, announcement_id: int) -> Optional[Announcement]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE an.announcement_id=%s", (int(announcement_id),))
            r = fetchone(cur)
            return _to_announcement(r) if r else None

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO announcements(site_id, title, message, priority, expiry_date, is_active, created_by)
                VALUES(%s,%s,%s,%s,%s,1,%s)
                """,
                (site_id, title, message, priority, expiry_date, int(created_by)),
            )
            return int(cur.lastrowid)

    def deactivate(self, announcement_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE announcements SET is_active=0 WHERE announcement_id=%s",
                (int(announcement_id),),
            )
            return cur.rowcount > 0

    def list_active_by_creator_role(self, *, role: Role, now: datetime) -> Sequence[Announcement]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{_SELECT} WHERE {_ACTIVE} AND u.role=%s ORDER BY an.created_at DESC",
                (now, role.value),
            )
            return [_to_announcement(r) for r in fetchall(cur)]

    def list_active_for_sites(self, *, site_ids: Iterable[int], now: datetime) -> Sequence[Announcement]:
        ids = sorted({int(i) for i in site_ids})
        if ids:
            scope = f"(an.site_id IN ({placeholders(ids)}) OR an.site_id IS NULL)"
        else:
            scope = "an.site_id IS NULL"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{_SELECT} WHERE {_ACTIVE} AND {scope} ORDER BY an.created_at DESC",
                (now, *ids),
            )
            return [_to_announcement(r) for r in fetchall(cur)]

    def list_by_creator(
        self,
        *,
        created_by: int,
        site_id: Optional[int] = None,
        only_global: bool = False,
    ) -> Sequence[Announcement]:
        clauses = ["an.created_by=%s"]
        params: list[object] = [int(created_by)]

        if only_global:
            clauses.append("an.site_id IS NULL")
        elif site_id is not None:
            clauses.append("an.site_id=%s")
            params.append(int(site_id))

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE {where} ORDER BY an.created_at DESC", tuple(params))
            return [_to_announcement(r) for r in fetchall(cur)]
