from __future__ import annotations

from typing import Iterable, Optional, Sequence

from ..core.enums import AssignedRole
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_float, db_cursor, fetchall, fetchone, placeholders
from .model import Site, SiteAssignment
from .repository import AssignmentRepository, SiteRepository

_SITE_COLUMNS = "site_id, code, name, address, latitude, longitude, created_at"
_ASSIGNMENT_COLUMNS = "assignment_id, site_id, user_id, assigned_role, assigned_at"


def _to_site(row: dict) -> Site:
    return Site(
        site_id=int(row["site_id"]),
        code=row.get("code"),
        name=row["name"],
        address=row.get("address"),
        latitude=as_float(row.get("latitude")),
        longitude=as_float(row.get("longitude")),
        created_at=row.get("created_at"),
    )


def _to_assignment(row: dict) -> SiteAssignment:
    return SiteAssignment(
        assignment_id=int(row["assignment_id"]),
        site_id=int(row["site_id"]),
        user_id=int(row["user_id"]),
        assigned_role=AssignedRole(row["assigned_role"]),
        assigned_at=row.get("assigned_at"),
    )


class MySQLSiteRepository(SiteRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, site_id: int) -> Optional[Site]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_SITE_COLUMNS} FROM sites WHERE site_id=%s", (int(site_id),))
            row = fetchone(cur)
            return _to_site(row) if row else None

    def get_by_code(self, code: str) -> Optional[Site]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_SITE_COLUMNS} FROM sites WHERE code=%s", (code,))
            row = fetchone(cur)
            return _to_site(row) if row else None

    def get_many(self, site_ids: Iterable[int]) -> Sequence[Site]:
        ids = sorted({int(i) for i in site_ids})
        if not ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_SITE_COLUMNS} FROM sites WHERE site_id IN ({placeholders(ids)}) ORDER BY name",
                tuple(ids),
            )
            return [_to_site(r) for r in fetchall(cur)]

    def list_all(self) -> Sequence[Site]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_SITE_COLUMNS} FROM sites ORDER BY name")
            return [_to_site(r) for r in fetchall(cur)]

    def create_site(
        self,
        *,
        code: Optional[str],
        name: str,
        address: Optional[str],
        latitude: Optional[float],
        longitude: Optional[float],
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO sites(code, name, address, latitude, longitude)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (code, name, address, latitude, longitude),
            )
            return int(cur.lastrowid)


class MySQLAssignmentRepository(AssignmentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def find(self, *, site_id: int, user_id: int) -> Optional[SiteAssignment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_ASSIGNMENT_COLUMNS} FROM site_user_assignments WHERE site_id=%s AND user_id=%s",
                (int(site_id), int(user_id)),
            )
            row = fetchone(cur)
            return _to_assignment(row) if row else None

    def create(self, *, site_id: int, user_id: int, assigned_role: AssignedRole) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO site_user_assignments(site_id, user_id, assigned_role) VALUES(%s,%s,%s)",
                (int(site_id), int(user_id), assigned_role.value),
            )
            return int(cur.lastrowid)

    def delete(self, assignment_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM site_user_assignments WHERE assignment_id=%s", (int(assignment_id),))
            return cur.rowcount > 0

    def list_for_user(self, user_id: int) -> Sequence[SiteAssignment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_ASSIGNMENT_COLUMNS} FROM site_user_assignments
                WHERE user_id=%s
                ORDER BY assigned_at ASC, assignment_id ASC
                """,
                (int(user_id),),
            )
            return [_to_assignment(r) for r in fetchall(cur)]

    def list_for_site(self, site_id: int) -> Sequence[SiteAssignment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_ASSIGNMENT_COLUMNS} FROM site_user_assignments
                WHERE site_id=%s
                ORDER BY assigned_at ASC, assignment_id ASC
                """,
                (int(site_id),),
            )
            return [_to_assignment(r) for r in fetchall(cur)]

    def assigned_user_ids(self) -> set[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT DISTINCT user_id FROM site_user_assignments")
            return {int(r["user_id"]) for r in fetchall(cur)}

    def site_ids_with_role(self, assigned_role: AssignedRole) -> set[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT DISTINCT site_id FROM site_user_assignments WHERE assigned_role=%s",
                (assigned_role.value,),
            )
            return {int(r["site_id"]) for r in fetchall(cur)}
