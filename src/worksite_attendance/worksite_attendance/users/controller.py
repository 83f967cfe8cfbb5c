from __future__ import annotations

from flask import Flask, current_app, g, request

from ..common.auth import build_guards
from ..common.responses import send_domain_error, send_error, send_internal_error, send_success, send_validation_error
from ..core.constants import MIN_PASSWORD_LENGTH
from ..container import Container
from ..core.enums import Role
from ..core.exceptions import DomainError


def _payload() -> dict:
    return request.get_json(silent=True) or request.form.to_dict()


def register(app: Flask, container: Container) -> None:
    login_required, roles_required = build_guards(container.auth_service.resolve_user)

    @app.route("/auth/register", methods=["POST"], endpoint="auth_register")
    def register_user():
        data = _payload()

        errors = {}
        if not data.get("country_code"):
            errors["country_code"] = "Country code is required"
        if not data.get("mobile_number"):
            errors["mobile_number"] = "Mobile number is required"
        password = data.get("password") or ""
        if not password:
            errors["password"] = "Password is required"
        elif not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
            errors["password"] = f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        if errors:
            return send_validation_error(errors)

        try:
            profile_image_url = None
            image = request.files.get("profile_image")
            if image is not None and image.filename:
                profile_image_url = container.file_storage.save(image, prefix="profile", field="profile_image")

            user = container.auth_service.register(
                full_name=data.get("full_name"),
                country_code=data.get("country_code"),
                mobile_number=data.get("mobile_number"),
                password=password,
                role=data.get("role"),
                profile_image_url=profile_image_url,
            )
            return send_success({"user": user.to_public_dict()}, "User registered successfully", 201)
        except DomainError as e:
            return send_domain_error(e)
        except Exception:
            return send_internal_error("register_user")

    @app.route("/auth/login", methods=["POST"], endpoint="auth_login")
    def login():
        data = _payload()

        errors = {}
        if not data.get("mobile_number"):
            errors["mobile_number"] = "Mobile number is required"
        if not data.get("password"):
            errors["password"] = "Password is required"
        if errors:
            return send_validation_error(errors)

        try:
            result = container.auth_service.login(
                data["mobile_number"],
                data["password"],
                data.get("country_code"),
            )
            return send_success(
                {"token": result.token, "user": result.user.to_public_dict()},
                "Login successful",
            )
        except DomainError as e:
            return send_domain_error(e)
        except Exception:
            return send_internal_error("login")

    @app.route("/auth/me", methods=["GET"], endpoint="auth_me")
    @login_required
    def me():
        return send_success({"user": g.current_user.to_public_dict()}, "User retrieved successfully")

    @app.route("/auth/otp/request", methods=["POST"], endpoint="auth_otp_request")
    def request_otp():
        data = _payload()
        try:
            code = container.otp_service.request_otp(data.get("country_code"), data.get("mobile_number"))
            body = {"otp": code} if current_app.config.get("EXPOSE_OTP") else None
            return send_success(body, "OTP sent successfully")
        except DomainError as e:
            return send_domain_error(e)
        except Exception:
            return send_internal_error("request_otp")

    @app.route("/auth/otp/verify", methods=["POST"], endpoint="auth_otp_verify")
    def verify_otp():
        data = _payload()
        try:
            result = container.otp_service.verify_otp(
                data.get("country_code"),
                data.get("mobile_number"),
                data.get("otp"),
            )
            if not result.valid:
                return send_error(result.message, 400)
            return send_success(message=result.message)
        except DomainError as e:
            return send_domain_error(e)
        except Exception:
            return send_internal_error("verify_otp")

    @app.route("/users/unassigned", methods=["GET"], endpoint="users_unassigned")
    @roles_required(Role.ADMIN)
    def unassigned_workers():
        try:
            workers = container.user_directory_service.list_unassigned_workers()
            return send_success(
                {"workers": [w.to_summary_dict() for w in workers]},
                "Unassigned workers retrieved successfully",
            )
        except Exception:
            return send_internal_error("unassigned_workers", "Failed to fetch unassigned workers")

    @app.route("/users/site-coordinators", methods=["GET"], endpoint="users_site_coordinators")
    @roles_required(Role.ADMIN)
    def site_coordinators():
        try:
            coordinators = container.user_directory_service.list_site_coordinators()
            return send_success(
                {"coordinators": [c.to_summary_dict() for c in coordinators]},
                "Site coordinators retrieved successfully",
            )
        except Exception:
            return send_internal_error("site_coordinators", "Failed to fetch site coordinators")

    @app.route("/users/my-site-assignment", methods=["GET"], endpoint="users_my_site_assignment")
    @login_required
    def my_site_assignment():
        try:
            assignment = container.user_directory_service.get_current_site_assignment(g.current_user.user_id)
            message = "Site assignment retrieved successfully" if assignment else "No site assignment found"
            return send_success({"assignment": assignment}, message)
        except Exception:
            return send_internal_error("my_site_assignment", "Failed to fetch site assignment")
