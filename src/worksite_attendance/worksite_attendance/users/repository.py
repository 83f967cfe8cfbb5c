from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Protocol, Sequence

from ..core.enums import Role
from .model import User


class UserRepository(Protocol):
    """Repository interface for User.

    Services depend on this protocol, never on a concrete DB.
    """

    def get_by_id(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def get_many(self, user_ids: Iterable[int]) -> Sequence[User]:
        raise NotImplementedError

    def get_by_mobile(self, country_code: str, mobile_number: str) -> Optional[User]:
        raise NotImplementedError

    def get_first_by_mobile(self, mobile_number: str) -> Optional[User]:
        """Lookup ignoring the country code (login without one)."""

        raise NotImplementedError

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
        raise NotImplementedError

    def touch_last_login(self, user_id: int, *, at: datetime) -> bool:
        raise NotImplementedError

    def list_by_role(self, role: Role) -> Sequence[User]:
        """Users holding ``role``, ordered by full name."""

        raise NotImplementedError
