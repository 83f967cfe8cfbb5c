from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Sequence

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, placeholders
from .model import User
from .repository import UserRepository

_COLUMNS = """
    user_id, country_code, mobile_number, password_hash, full_name, role,
    profile_image_url, created_at, last_login_at
"""


def _to_user(row: dict) -> User:
    return User(
        user_id=int(row["user_id"]),
        country_code=row["country_code"],
        mobile_number=row["mobile_number"],
        password_hash=row.get("password_hash"),
        full_name=row.get("full_name"),
        role=Role(row["role"]),
        profile_image_url=row.get("profile_image_url"),
        created_at=row.get("created_at"),
        last_login_at=row.get("last_login_at"),
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, user_id: int) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM users WHERE user_id=%s", (int(user_id),))
            row = fetchone(cur)
            return _to_user(row) if row else None

    def get_many(self, user_ids: Iterable[int]) -> Sequence[User]:
        ids = sorted({int(i) for i in user_ids})
        if not ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM users WHERE user_id IN ({placeholders(ids)})", tuple(ids))
            return [_to_user(r) for r in fetchall(cur)]

    def get_by_mobile(self, country_code: str, mobile_number: str) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM users WHERE country_code=%s AND mobile_number=%s",
                (country_code, mobile_number),
            )
            row = fetchone(cur)
            return _to_user(row) if row else None

    def get_first_by_mobile(self, mobile_number: str) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM users WHERE mobile_number=%s ORDER BY user_id LIMIT 1",
                (mobile_number,),
            )
            row = fetchone(cur)
            return _to_user(row) if row else None

    def create_user(
        self,
        *,
        country_code: str,
        mobile_number: str,
        password_hash: str,
        full_name: Optional[str],
        role: Role,
        profile_image_url: Optional[str] = None,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO users(country_code, mobile_number, password_hash, full_name, role, profile_image_url)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (country_code, mobile_number, password_hash, full_name, role.value, profile_image_url),
            )
            return int(cur.lastrowid)

    def touch_last_login(self, user_id: int, *, at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE users SET last_login_at=%s WHERE user_id=%s", (at, int(user_id)))
            return cur.rowcount > 0

    def list_by_role(self, role: Role) -> Sequence[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM users WHERE role=%s ORDER BY full_name ASC", (role.value,))
            return [_to_user(r) for r in fetchall(cur)]
