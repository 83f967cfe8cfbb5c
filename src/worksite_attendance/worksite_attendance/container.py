from __future__ import annotations

from dataclasses import dataclass

from .announcements.mysql_announcement_repository import MySQLAnnouncementRepository
from .announcements.service import AnnouncementService
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.service import AttendanceService
from .common.auth import TokenService
from .common.uploads import LocalFileStorage
from .core.constants import (
    DEFAULT_MAX_UPLOAD_BYTES,
    DEFAULT_OTP_MAX_ATTEMPTS,
    DEFAULT_OTP_SWEEP_SECONDS,
    DEFAULT_OTP_TTL_SECONDS,
    DEFAULT_TOKEN_HOURS,
)
from .database.connection import DBConfig, DatabaseConnection
from .sites.mysql_site_repository import MySQLAssignmentRepository, MySQLSiteRepository
from .sites.service import SiteService
from .users.mysql_user_repository import MySQLUserRepository
from .users.otp_store import OtpStore
from .users.service import AuthService, OtpService, UserDirectoryService


@dataclass(frozen=True)
class Container:
    auth_service: AuthService
    otp_service: OtpService
    user_directory_service: UserDirectoryService
    site_service: SiteService
    attendance_service: AttendanceService
    announcement_service: AnnouncementService

    otp_store: OtpStore
    file_storage: LocalFileStorage


def build_container(*, db_config: dict, settings) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    users_repo = MySQLUserRepository(conn)
    sites_repo = MySQLSiteRepository(conn)
    assignments_repo = MySQLAssignmentRepository(conn)
    attendance_repo = MySQLAttendanceRepository(conn)
    announcements_repo = MySQLAnnouncementRepository(conn)

    tokens = TokenService(
        getattr(settings, "JWT_SECRET", None) or getattr(settings, "SECRET_KEY"),
        expires_hours=int(getattr(settings, "JWT_EXPIRES_HOURS", DEFAULT_TOKEN_HOURS)),
    )
    otp_store = OtpStore(
        ttl_seconds=float(getattr(settings, "OTP_TTL_SECONDS", DEFAULT_OTP_TTL_SECONDS)),
        max_attempts=int(getattr(settings, "OTP_MAX_ATTEMPTS", DEFAULT_OTP_MAX_ATTEMPTS)),
        sweep_seconds=float(getattr(settings, "OTP_SWEEP_SECONDS", DEFAULT_OTP_SWEEP_SECONDS)),
    )
    file_storage = LocalFileStorage(
        getattr(settings, "UPLOAD_DIR", "uploads"),
        max_bytes=int(getattr(settings, "MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES)),
    )

    return Container(
        auth_service=AuthService(users_repo, tokens),
        otp_service=OtpService(otp_store),
        user_directory_service=UserDirectoryService(users_repo, sites_repo, assignments_repo),
        site_service=SiteService(sites_repo, assignments_repo, users_repo),
        attendance_service=AttendanceService(attendance_repo, sites_repo, assignments_repo),
        announcement_service=AnnouncementService(announcements_repo, assignments_repo, sites_repo),
        otp_store=otp_store,
        file_storage=file_storage,
    )
