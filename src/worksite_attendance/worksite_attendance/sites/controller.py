from __future__ import annotations

from flask import Flask, g, request

from ..common.auth import build_guards
from ..common.responses import send_domain_error, send_error, send_internal_error, send_success
from ..container import Container
from ..core.enums import Role
from ..core.exceptions import DomainError


def _json_body() -> dict:
    return request.get_json(silent=True) or request.form.to_dict()


def _int_field(data: dict, key: str):
    try:
        return int(data.get(key))
    except (TypeError, ValueError):
        return None


def register(app: Flask, container: Container) -> None:
    login_required, roles_required = build_guards(container.auth_service.resolve_user)

    @app.route("/sites/my", methods=["GET"], endpoint="sites_my")
    @login_required
    def my_sites():
        try:
            sites = container.site_service.list_sites_for_user(g.current_user.user_id)
            return send_success({"sites": [s.to_summary_dict() for s in sites]}, "Sites retrieved successfully")
        except Exception:
            return send_internal_error("my_sites", "Failed to fetch sites")

    @app.route("/sites/all", methods=["GET"], endpoint="sites_all")
    @roles_required(Role.ADMIN)
    def all_sites():
        try:
            sites = container.site_service.list_all_sites()
            return send_success(
                {"sites": [s.to_summary_dict() for s in sites]},
                "All sites retrieved successfully",
            )
        except Exception:
            return send_internal_error("all_sites", "Failed to fetch all sites")

    @app.route("/sites/create", methods=["POST"], endpoint="sites_create")
    @roles_required(Role.ADMIN)
    def create_site():
        data = _json_body()
        if not data.get("name"):
            return send_error("Site name is required", 400)

        try:
            site = container.site_service.create_site(
                name=data.get("name"),
                code=data.get("code"),
                address=data.get("address"),
                latitude=data.get("latitude"),
                longitude=data.get("longitude"),
            )
            return send_success({"site": site.to_dict()}, "Site created successfully", 201)
        except DomainError as e:
            return send_domain_error(e)
        except Exception:
            return send_internal_error("create_site", "Failed to create site")

    @app.route("/sites/without-coordinator", methods=["GET"], endpoint="sites_without_coordinator")
    @roles_required(Role.ADMIN)
    def sites_without_coordinator():
        try:
            sites = container.site_service.list_sites_without_coordinator()
            return send_success(
                {"sites": [s.to_summary_dict() for s in sites]},
                "Sites without coordinator retrieved successfully",
            )
        except Exception:
            return send_internal_error("sites_without_coordinator", "Failed to fetch sites without coordinator")

    @app.route("/sites/<int:site_id>/workers", methods=["GET"], endpoint="sites_workers")
    @login_required
    def site_workers(site_id: int):
        try:
            users = container.user_directory_service.list_users_by_site(site_id)
            return send_success({"workers": [u.to_summary_dict() for u in users]}, "Workers retrieved successfully")
        except Exception:
            return send_internal_error("site_workers", "Failed to fetch workers")

    def _assignment_payload(assignment) -> dict:
        return {
            "id": assignment.assignment_id,
            "site_id": assignment.site_id,
            "user_id": assignment.user_id,
            "assigned_role": assignment.assigned_role.value,
            "assigned_at": assignment.assigned_at.isoformat() if assignment.assigned_at else None,
        }

    @app.route("/sites/<int:site_id>/assign-worker", methods=["POST"], endpoint="sites_assign_worker")
    @roles_required(Role.ADMIN)
    def assign_worker(site_id: int):
        worker_id = _int_field(_json_body(), "workerId")
        if worker_id is None:
            return send_error("Worker ID is required", 400)

        try:
            assignment = container.site_service.assign_worker(site_id, worker_id)
            return send_success({"assignment": _assignment_payload(assignment)}, "Worker assigned to site successfully")
        except DomainError as e:
            return send_domain_error(e)
        except Exception:
            return send_internal_error("assign_worker", "Failed to assign worker to site")

    @app.route("/sites/<int:site_id>/assign-coordinator", methods=["POST"], endpoint="sites_assign_coordinator")
    @roles_required(Role.ADMIN)
    def assign_coordinator(site_id: int):
        coordinator_id = _int_field(_json_body(), "coordinatorId")
        if coordinator_id is None:
            return send_error("Coordinator ID is required", 400)

        try:
            assignment = container.site_service.assign_coordinator(site_id, coordinator_id)
            return send_success(
                {"assignment": _assignment_payload(assignment)},
                "Coordinator assigned to site successfully",
            )
        except DomainError as e:
            return send_domain_error(e)
        except Exception:
            return send_internal_error("assign_coordinator", "Failed to assign coordinator to site")

    @app.route(
        "/sites/<int:site_id>/workers/<int:worker_id>",
        methods=["DELETE"],
        endpoint="sites_remove_worker",
    )
    @roles_required(Role.ADMIN)
    def remove_worker(site_id: int, worker_id: int):
        try:
            container.site_service.remove_worker(site_id, worker_id)
            return send_success(message="Worker removed from site successfully")
        except DomainError as e:
            return send_domain_error(e)
        except Exception:
            return send_internal_error("remove_worker", "Failed to remove worker from site")
