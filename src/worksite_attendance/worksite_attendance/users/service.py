from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from werkzeug.security import check_password_hash, generate_password_hash

from ..common.auth import TokenService
from ..common.datetime_utils import isoformat_or_none, now_local
from ..common.validators import require_min_length, require_mobile_number, require_non_empty
from ..core.constants import MIN_PASSWORD_LENGTH
from ..core.enums import Role
from ..core.exceptions import AuthenticationError, ConflictError, DuplicateKeyError
from ..sites.repository import AssignmentRepository, SiteRepository
from .model import User
from .otp_store import OtpResult, OtpStore
from .repository import UserRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoginResult:
    token: str
    user: User


class AuthService:
    """Use cases: register and log in with mobile number + password."""

    def __init__(self, users: UserRepository, tokens: TokenService):
        self._users = users
        self._tokens = tokens

    def register(
        self,
        *,
        full_name: Optional[str],
        country_code: str,
        mobile_number: str,
        password: str,
        role: Optional[str] = None,
        profile_image_url: Optional[str] = None,
    ) -> User:
        country_code = require_non_empty(country_code, "country_code")
        mobile_number = require_mobile_number(require_non_empty(mobile_number, "mobile_number"))
        require_min_length(password, "password", MIN_PASSWORD_LENGTH)
        parsed_role = Role.parse(role)

        if self._users.get_by_mobile(country_code, mobile_number):
            raise ConflictError("User with this mobile number already exists")

        try:
            user_id = self._users.create_user(
                country_code=country_code,
                mobile_number=mobile_number,
                password_hash=generate_password_hash(password),
                full_name=(full_name or "").strip() or None,
                role=parsed_role,
                profile_image_url=profile_image_url,
            )
        except DuplicateKeyError:
            raise ConflictError("User with this mobile number already exists")

        logger.info("Registered user_id=%s role=%s", user_id, parsed_role.value)
        return self._users.get_by_id(user_id)

    def login(self, mobile_number: str, password: str, country_code: Optional[str] = None) -> LoginResult:
        user = None
        if country_code:
            user = self._users.get_by_mobile(country_code, mobile_number)
        if not user:
            user = self._users.get_first_by_mobile(mobile_number)

        if not user:
            raise AuthenticationError("Invalid mobile number or password")
        if not user.password_hash:
            raise AuthenticationError("Password not set. Please contact administrator.")

        try:
            ok = isinstance(password, str) and check_password_hash(user.password_hash, password)
        except ValueError:
            # e.g. placeholder hashes or corrupted values
            ok = False

        if not ok:
            logger.info("Failed login for mobile=%s", mobile_number)
            raise AuthenticationError("Invalid mobile number or password")

        self._users.touch_last_login(user.user_id, at=now_local())
        user = self._users.get_by_id(user.user_id)
        return LoginResult(token=self._tokens.issue(user), user=user)

    def resolve_user(self, token: str) -> User:
        """Bearer token -> still-existing user (the auth collaborator contract)."""

        claims = self._tokens.verify(token)
        user = self._users.get_by_id(claims.user_id)
        if not user:
            raise AuthenticationError("User not found")
        return user


class UserDirectoryService:
    """Read models over users and their site assignments."""

    def __init__(self, users: UserRepository, sites: SiteRepository, assignments: AssignmentRepository):
        self._users = users
        self._sites = sites
        self._assignments = assignments

    def list_users_by_site(self, site_id: int) -> Sequence[User]:
        user_ids = [a.user_id for a in self._assignments.list_for_site(site_id)]
        by_id = {u.user_id: u for u in self._users.get_many(user_ids)}
        return [by_id[i] for i in user_ids if i in by_id]

    def list_unassigned_workers(self) -> Sequence[User]:
        assigned = self._assignments.assigned_user_ids()
        return [u for u in self._users.list_by_role(Role.WORKER) if u.user_id not in assigned]

    def list_site_coordinators(self) -> Sequence[User]:
        return self._users.list_by_role(Role.SITE_COORDINATOR)

    def get_current_site_assignment(self, user_id: int) -> Optional[dict]:
        """The user's earliest assignment with site details, or None."""

        assignments = self._assignments.list_for_user(user_id)
        if not assignments:
            return None

        first = assignments[0]
        site = self._sites.get_by_id(first.site_id)
        return {
            "id": first.assignment_id,
            "site_id": first.site_id,
            "site_name": site.name if site else None,
            "site_code": site.code if site else None,
            "assigned_role": first.assigned_role.value,
            "assigned_at": isoformat_or_none(first.assigned_at),
        }


class OtpService:
    """Use cases: request and verify a one-time code for a mobile number.

    Delivery (SMS) is outside this system; the code is only returned to callers
    that explicitly ask for it (development settings).
    """

    def __init__(self, store: OtpStore):
        self._store = store

    def request_otp(self, country_code: str, mobile_number: str) -> str:
        country_code = require_non_empty(country_code, "country_code")
        mobile_number = require_mobile_number(require_non_empty(mobile_number, "mobile_number"))
        code = self._store.issue(country_code, mobile_number)
        logger.info("OTP issued for %s%s", country_code, mobile_number[-4:].rjust(len(mobile_number), "*"))
        return code

    def verify_otp(self, country_code: str, mobile_number: str, code: str) -> OtpResult:
        country_code = require_non_empty(country_code, "country_code")
        mobile_number = require_non_empty(mobile_number, "mobile_number")
        code = require_non_empty(code, "otp")
        return self._store.verify(country_code, mobile_number, code)
