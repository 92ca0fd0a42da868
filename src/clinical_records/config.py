from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


@dataclass
class Settings:
    """Centralized application settings.

    This keeps environment-variable handling in one place so other modules can
    depend on strongly-typed attributes instead of calling os.getenv
    directly.
    """

    # Reported by the /health endpoint.
    app_version: str = os.getenv("APP_VERSION", "2.0.0")
    environment: str = os.getenv("ENVIRONMENT", "development")

    # Optional database configuration for SQL-backed repositories.
    database_url: Optional[str] = os.getenv("DATABASE_URL")
    use_sql_repos: bool = os.getenv("USE_SQL_REPOS", "false").lower() == "true"

    # Token signing. The default secret is only acceptable for local development.
    jwt_secret: str = os.getenv("JWT_SECRET", "change-this-secret-before-deploying-anywhere")
    jwt_algorithm: str = os.getenv("JWT_ALGORITHM", "HS256")
    jwt_expires_hours: int = int(os.getenv("JWT_EXPIRES_HOURS", "8"))

    # Password hashing cost and account lockout policy.
    bcrypt_rounds: int = int(os.getenv("BCRYPT_ROUNDS", "12"))
    max_failed_logins: int = int(os.getenv("MAX_FAILED_LOGINS", "5"))
    lockout_minutes: int = int(os.getenv("LOCKOUT_MINUTES", "15"))

    # Fixed-window rate limits, per client address.
    rate_limit_window_seconds: int = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", str(15 * 60)))
    rate_limit_max_requests: int = int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "100"))
    auth_rate_limit_max_requests: int = int(os.getenv("AUTH_RATE_LIMIT_MAX_REQUESTS", "5"))
    # Honour X-Forwarded-For only when a trusted reverse proxy sets it.
    trust_proxy_headers: bool = os.getenv("TRUST_PROXY_HEADERS", "false").lower() == "true"

    # CORS configuration: comma-separated origins.
    cors_allow_origins: str = os.getenv("CORS_ALLOW_ORIGINS", "http://localhost:3000,http://localhost:8080")

    # Administrator account created at startup when none exists.
    admin_username: str = os.getenv("ADMIN_USERNAME", "admin")
    admin_password: str = os.getenv("ADMIN_PASSWORD", "admin123")
    admin_email: str = os.getenv("ADMIN_EMAIL", "admin@clinical-records.com")

    # Local records snapshot (the single-user store).
    state_file_path: Path = Path(os.getenv("STATE_FILE_PATH", "clinical_records_state.json"))
    state_storage_key: str = os.getenv("STATE_STORAGE_KEY", "clinicalRecordsState")

    # Header printed on generated prescriptions.
    clinic_title: str = os.getenv("CLINIC_TITLE", "Medical Prescription")
    clinic_doctor_name: str = os.getenv("CLINIC_DOCTOR_NAME", "Dr. Virtual Assistant")
    clinic_speciality: str = os.getenv("CLINIC_SPECIALITY", "General Medicine")

    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_json: bool = os.getenv("LOG_JSON", "false").lower() == "true"


settings = Settings()


class JsonLogFormatter(logging.Formatter):
    """Render log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def configure_logging(level: Optional[str] = None, use_json: Optional[bool] = None) -> None:
    """Configure the root logger from settings.

    Safe to call more than once; existing root handlers are replaced.
    """

    level_name = (level or settings.log_level).upper()
    as_json = settings.log_json if use_json is None else use_json

    handler = logging.StreamHandler()
    if as_json:
        handler.setFormatter(JsonLogFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(getattr(logging, level_name, logging.INFO))
