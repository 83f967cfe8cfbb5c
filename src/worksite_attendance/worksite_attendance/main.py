from __future__ import annotations

import importlib
import logging
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask, send_from_directory
from flask_cors import CORS

from config import get_settings_module

from .database.bootstrap import apply_schema, apply_seed_sql, ensure_demo_users, list_tables

from .container import Container, build_container
from .common.responses import send_error, send_success
from .announcements.controller import register as register_announcements
from .attendance.controller import register as register_attendance
from .sites.controller import register as register_sites
from .users.controller import register as register_users

logger = logging.getLogger(__name__)

DATABASE_DIR = Path(__file__).resolve().parents[3] / "database"


def create_app(container: Container | None = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)
    CORS(app)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.config["EXPOSE_OTP"] = bool(getattr(settings, "EXPOSE_OTP", False))

    logging.basicConfig(
        level=getattr(settings, "LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if container is None:
        logger.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )

        if getattr(settings, "AUTO_INIT_DB", False):
            apply_schema(db_config, schema_path=DATABASE_DIR / "schema.sql")
            logger.info("Schema ready (tables=%d)", len(list_tables(db_config)))
        if getattr(settings, "AUTO_SEED_DB", False):
            apply_seed_sql(db_config, seed_path=DATABASE_DIR / "seed.sql")
            ensure_demo_users(db_config)
            logger.info("Demo seed ready")

        container = build_container(db_config=db_config, settings=settings)

    # Request bodies carry at most one selfie or profile image.
    app.config["MAX_CONTENT_LENGTH"] = container.file_storage.max_bytes + 64 * 1024

    @app.route("/health", methods=["GET"], endpoint="health")
    def health():
        return send_success({"status": "ok"}, "Service is healthy")

    @app.route("/uploads/<path:filename>", methods=["GET"], endpoint="uploads")
    def uploaded_file(filename):
        return send_from_directory(container.file_storage.directory, filename)

    @app.errorhandler(404)
    def route_not_found(_error):
        return send_error("Route not found", 404)

    @app.errorhandler(405)
    def method_not_allowed(_error):
        return send_error("Method not allowed", 405)

    @app.errorhandler(413)
    def payload_too_large(_error):
        return send_error("Uploaded file is too large", 413)

    @app.errorhandler(500)
    def internal_error(error):
        logger.error("Unhandled error: %s", getattr(error, "original_exception", error))
        return send_error("Internal server error", 500)

    register_users(app, container)
    register_sites(app, container)
    register_attendance(app, container)
    register_announcements(app, container)

    if not app.config["TESTING"]:
        container.otp_store.start()

    return app
