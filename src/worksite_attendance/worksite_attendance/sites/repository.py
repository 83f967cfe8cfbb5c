from __future__ import annotations

from typing import Iterable, Optional, Protocol, Sequence

from ..core.enums import AssignedRole
from .model import Site, SiteAssignment


class SiteRepository(Protocol):
    def get_by_id(self, site_id: int) -> Optional[Site]:
        raise NotImplementedError

    def get_by_code(self, code: str) -> Optional[Site]:
        raise NotImplementedError

    def get_many(self, site_ids: Iterable[int]) -> Sequence[Site]:
        raise NotImplementedError

    def list_all(self) -> Sequence[Site]:
        raise NotImplementedError

    def create_site(
        self,
        *,
        code: Optional[str],
        name: str,
        address: Optional[str],
        latitude: Optional[float],
        longitude: Optional[float],
    ) -> int:
        """Insert a site; raises DuplicateKeyError when the code is taken."""

        raise NotImplementedError


class AssignmentRepository(Protocol):
    def find(self, *, site_id: int, user_id: int) -> Optional[SiteAssignment]:
        raise NotImplementedError

    def create(self, *, site_id: int, user_id: int, assigned_role: AssignedRole) -> int:
        """Insert an assignment; raises DuplicateKeyError for an existing (site, user) pair."""

        raise NotImplementedError

    def delete(self, assignment_id: int) -> bool:
        raise NotImplementedError

    def list_for_user(self, user_id: int) -> Sequence[SiteAssignment]:
        """Assignments of a user, oldest first."""

        raise NotImplementedError

    def list_for_site(self, site_id: int) -> Sequence[SiteAssignment]:
        raise NotImplementedError

    def assigned_user_ids(self) -> set[int]:
        raise NotImplementedError

    def site_ids_with_role(self, assigned_role: AssignedRole) -> set[int]:
        raise NotImplementedError
