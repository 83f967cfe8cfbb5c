from __future__ import annotations

from flask import Flask, g, request

from ..common.auth import build_guards
from ..common.responses import send_domain_error, send_error, send_internal_error, send_success
from ..container import Container
from ..core.enums import Role
from ..core.exceptions import DomainError


def register(app: Flask, container: Container) -> None:
    login_required, roles_required = build_guards(container.auth_service.resolve_user)

    @app.route("/announcements/my-sites", methods=["GET"], endpoint="announcements_my_sites")
    @login_required
    def my_sites_announcements():
        user = g.current_user
        try:
            rows = container.announcement_service.get_announcements_for_user(user.user_id, user.role)
            return send_success(
                {"announcements": [a.to_dict() for a in rows]},
                "Announcements retrieved successfully",
            )
        except Exception:
            return send_internal_error("my_sites_announcements", "Failed to fetch announcements")

    @app.route("/announcements/create", methods=["POST"], endpoint="announcements_create")
    @roles_required(Role.SITE_COORDINATOR, Role.ADMIN)
    def create_announcement():
        data = request.get_json(silent=True) or request.form
        site_id = data.get("siteId")
        title = data.get("title")
        message = data.get("message")
        priority = data.get("priority")

        if not site_id or not title or not message or not priority:
            return send_error("Missing required fields: siteId, title, message, priority", 400)

        try:
            announcement = container.announcement_service.create_announcement(
                site_id=site_id,
                title=title,
                message=message,
                priority=priority,
                expiry_date=data.get("expiryDate"),
                created_by=g.current_user.user_id,
            )
            return send_success(
                {"announcement": announcement.to_dict()},
                "Announcement created successfully",
                201,
            )
        except DomainError as e:
            return send_domain_error(e)
        except Exception:
            return send_internal_error("create_announcement", "Failed to create announcement")

    @app.route("/announcements/my", methods=["GET"], endpoint="announcements_my")
    @roles_required(Role.SITE_COORDINATOR, Role.ADMIN)
    def my_announcements():
        try:
            rows = container.announcement_service.get_my_announcements(
                g.current_user.user_id,
                request.args.get("siteId"),
            )
            return send_success({"announcements": rows}, "Announcements retrieved successfully")
        except DomainError as e:
            return send_domain_error(e)
        except Exception:
            return send_internal_error("my_announcements", "Failed to fetch announcements")

    @app.route(
        "/announcements/<int:announcement_id>/deactivate",
        methods=["PATCH"],
        endpoint="announcements_deactivate",
    )
    @login_required
    def deactivate_announcement(announcement_id: int):
        try:
            announcement = container.announcement_service.deactivate_announcement(
                announcement_id,
                g.current_user.user_id,
            )
            return send_success(
                {"announcement": announcement.to_dict()},
                "Announcement deactivated successfully",
            )
        except DomainError as e:
            return send_domain_error(e)
        except Exception:
            return send_internal_error("deactivate_announcement", "Failed to deactivate announcement")
