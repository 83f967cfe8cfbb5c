from __future__ import annotations

import logging
from typing import Optional, Sequence

from ..common.validators import parse_float, require_non_empty
from ..core.enums import AssignedRole
from ..core.exceptions import ConflictError, DuplicateKeyError, NotFoundError, ValidationError
from ..users.repository import UserRepository
from .model import Site, SiteAssignment
from .repository import AssignmentRepository, SiteRepository

logger = logging.getLogger(__name__)


class SiteService:
    """Use cases: sites and their worker/coordinator assignments (admin)."""

    def __init__(self, sites: SiteRepository, assignments: AssignmentRepository, users: UserRepository):
        self._sites = sites
        self._assignments = assignments
        self._users = users

    def list_sites_for_user(self, user_id: int) -> Sequence[Site]:
        site_ids = [a.site_id for a in self._assignments.list_for_user(user_id)]
        return self._sites.get_many(site_ids)

    def list_all_sites(self) -> Sequence[Site]:
        return self._sites.list_all()

    def create_site(
        self,
        *,
        name: Optional[str],
        code: Optional[str] = None,
        address: Optional[str] = None,
        latitude=None,
        longitude=None,
    ) -> Site:
        name = require_non_empty(name, "name")
        code = (code or "").strip() or None
        address = (address or "").strip() or None

        lat = parse_float(latitude)
        lng = parse_float(longitude)
        errors = {}
        if lat is not None and not -90 <= lat <= 90:
            errors["latitude"] = "Latitude must be between -90 and 90"
        if lng is not None and not -180 <= lng <= 180:
            errors["longitude"] = "Longitude must be between -180 and 180"
        if errors:
            raise ValidationError("Invalid coordinates", errors)

        if code and self._sites.get_by_code(code):
            raise ConflictError("Site code already exists")

        try:
            site_id = self._sites.create_site(code=code, name=name, address=address, latitude=lat, longitude=lng)
        except DuplicateKeyError:
            raise ConflictError("Site code already exists")

        logger.info("Site %s created (code=%s)", site_id, code)
        return self._sites.get_by_id(site_id)

    def assign_worker(self, site_id: int, worker_id: int) -> SiteAssignment:
        return self._assign(site_id, worker_id, AssignedRole.WORKER, "Worker")

    def assign_coordinator(self, site_id: int, coordinator_id: int) -> SiteAssignment:
        return self._assign(site_id, coordinator_id, AssignedRole.SITE_COORDINATOR, "Coordinator")

    def _assign(self, site_id: int, user_id: int, role: AssignedRole, label: str) -> SiteAssignment:
        if not self._sites.get_by_id(site_id):
            raise NotFoundError("Site not found")
        if not self._users.get_by_id(user_id):
            raise NotFoundError(f"{label} not found")

        duplicate = ConflictError(f"{label} is already assigned to this site")
        if self._assignments.find(site_id=site_id, user_id=user_id):
            raise duplicate

        try:
            self._assignments.create(site_id=site_id, user_id=user_id, assigned_role=role)
        except DuplicateKeyError:
            raise duplicate

        logger.info("Assigned user_id=%s to site_id=%s as %s", user_id, site_id, role.value)
        return self._assignments.find(site_id=site_id, user_id=user_id)

    def remove_worker(self, site_id: int, worker_id: int) -> None:
        assignment = self._assignments.find(site_id=site_id, user_id=worker_id)
        if not assignment:
            raise NotFoundError("Worker is not assigned to this site")

        self._assignments.delete(assignment.assignment_id)
        logger.info("Removed user_id=%s from site_id=%s", worker_id, site_id)

    def list_sites_without_coordinator(self) -> Sequence[Site]:
        covered = self._assignments.site_ids_with_role(AssignedRole.SITE_COORDINATOR)
        return [s for s in self._sites.list_all() if s.site_id not in covered]
