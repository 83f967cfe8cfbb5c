from __future__ import annotations

from datetime import date
from typing import Optional

from flask import Flask, g, request

from ..common.auth import build_guards
from ..common.datetime_utils import current_month_range, now_local, parse_iso_date
from ..common.responses import (
    send_domain_error,
    send_error,
    send_internal_error,
    send_success,
    send_validation_error,
)
from ..common.validators import coordinate_errors, parse_float
from ..container import Container
from ..core.enums import Role
from ..core.exceptions import DomainError, ValidationError
from .service import parse_worker_selector


def _parse_int(value) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def register(app: Flask, container: Container) -> None:
    login_required, roles_required = build_guards(container.auth_service.resolve_user)

    def _punch_form(*, require_site: bool) -> tuple[dict, dict]:
        """Validate the multipart punch form; returns (values, field_errors)."""

        form = request.form
        errors: dict[str, str] = {}
        values: dict = {}

        if not form.get("user_id"):
            errors["user_id"] = "User ID is required"

        site_raw = form.get("site_id")
        if site_raw:
            values["site_id"] = _parse_int(site_raw)
            if values["site_id"] is None:
                errors["site_id"] = "Site ID must be a number"
        else:
            values["site_id"] = None
            if require_site:
                errors["site_id"] = "Site ID is required"

        for field, label in (("lat", "Latitude"), ("lng", "Longitude")):
            raw = form.get(field)
            if not raw:
                errors[field] = f"{label} is required"
            elif parse_float(raw) is None:
                errors[field] = f"{label} must be a valid number"
            values[field] = parse_float(raw)

        if "photo" not in request.files or not request.files["photo"].filename:
            errors["photo"] = "Selfie photo is required"

        if not errors:
            errors.update(coordinate_errors(values["lat"], values["lng"]))
        return values, errors

    def _check_self(action: str):
        if request.form.get("user_id") and _parse_int(request.form.get("user_id")) != g.current_user.user_id:
            return send_error(f"You can only {action} for your own account", 403)
        return None

    @app.route("/attendance/punch-in", methods=["POST"], endpoint="attendance_punch_in")
    @roles_required(Role.WORKER, Role.ADMIN)
    def punch_in():
        user = g.current_user
        try:
            denied = _check_self("punch in")
            if denied:
                return denied

            values, errors = _punch_form(require_site=user.role != Role.ADMIN)
            if errors:
                return send_validation_error(errors)

            selfie_url = container.file_storage.save(request.files.get("photo"))
            try:
                attendance = container.attendance_service.punch_in(
                    user.user_id,
                    values["site_id"],
                    values["lat"],
                    values["lng"],
                    selfie_url,
                )
            except DomainError:
                container.file_storage.delete(selfie_url)
                raise
            return send_success({"attendance": attendance.to_dict()}, "Punch in successful")
        except DomainError as e:
            return send_domain_error(e)
        except Exception:
            return send_internal_error("punch_in")

    @app.route("/attendance/punch-out", methods=["POST"], endpoint="attendance_punch_out")
    @roles_required(Role.WORKER, Role.ADMIN)
    def punch_out():
        user = g.current_user
        try:
            denied = _check_self("punch out")
            if denied:
                return denied

            values, errors = _punch_form(require_site=False)
            if errors:
                return send_validation_error(errors)

            selfie_url = container.file_storage.save(request.files.get("photo"))
            try:
                attendance = container.attendance_service.punch_out(
                    user.user_id,
                    values["lat"],
                    values["lng"],
                    selfie_url,
                )
            except DomainError:
                container.file_storage.delete(selfie_url)
                raise
            return send_success({"attendance": attendance.to_dict()}, "Punch out successful")
        except DomainError as e:
            return send_domain_error(e)
        except Exception:
            return send_internal_error("punch_out")

    @app.route("/attendance/status/today", methods=["GET"], endpoint="attendance_today_status")
    @login_required
    def today_status():
        try:
            status = container.attendance_service.get_today_status(g.current_user.user_id)
            return send_success(status.to_dict(), "Today's attendance status retrieved")
        except Exception:
            return send_internal_error("today_status")

    def _parse_range(start_key: str, end_key: str) -> tuple[date, date]:
        errors = {}
        dates = {}
        for key in (start_key, end_key):
            try:
                dates[key] = parse_iso_date(request.args.get(key, ""))
            except ValueError:
                errors[key] = f"Invalid {key} format. Use YYYY-MM-DD"
        if errors:
            raise ValidationError("Invalid date range", errors)
        return dates[start_key], dates[end_key]

    @app.route("/attendance/me", methods=["GET"], endpoint="attendance_me")
    @login_required
    def my_attendance():
        try:
            if request.args.get("start") and request.args.get("end"):
                start, end = _parse_range("start", "end")
            else:
                start, end = current_month_range(now_local().date())

            records = container.attendance_service.get_attendance_records(g.current_user.user_id, start, end)
            return send_success(
                {
                    "records": [r.to_dict() for r in records],
                    "count": len(records),
                    "start_date": start.isoformat(),
                    "end_date": end.isoformat(),
                },
                "Attendance records retrieved successfully",
            )
        except DomainError as e:
            return send_domain_error(e)
        except Exception:
            return send_internal_error("my_attendance")

    @app.route("/attendance/filter", methods=["GET"], endpoint="attendance_filter")
    @login_required
    def filtered_attendance():
        try:
            site_id = _parse_int(request.args.get("siteId"))
            if site_id is None:
                return send_validation_error({"siteId": "Site ID is required"})
            if not request.args.get("workerId"):
                return send_validation_error({"workerId": "Worker ID is required"})
            if not request.args.get("startDate") or not request.args.get("endDate"):
                return send_validation_error({"date": "Start date and end date are required"})

            selector = parse_worker_selector(request.args.getlist("workerId"))
            start, end = _parse_range("startDate", "endDate")

            rows = container.attendance_service.get_filtered_attendance(
                site_id,
                selector,
                start,
                end,
                g.current_user.user_id,
            )
            return send_success(
                {
                    "records": [r.to_dict() for r in rows],
                    "count": len(rows),
                    "start_date": start.isoformat(),
                    "end_date": end.isoformat(),
                },
                "Filtered attendance records retrieved successfully",
            )
        except DomainError as e:
            return send_domain_error(e)
        except Exception:
            return send_internal_error("filtered_attendance")
