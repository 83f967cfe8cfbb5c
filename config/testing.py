import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "worksite_attendance_test"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

JWT_SECRET = "test-jwt-secret"
JWT_EXPIRES_HOURS = 1

UPLOAD_DIR = os.getenv("UPLOAD_DIR", "/tmp/worksite-attendance-uploads")
MAX_UPLOAD_BYTES = 1024 * 1024

OTP_TTL_SECONDS = 300
OTP_MAX_ATTEMPTS = 3
OTP_SWEEP_SECONDS = 600
EXPOSE_OTP = True

AUTO_INIT_DB = False
AUTO_SEED_DB = False
