# cmms_app/config.py
import os

from dotenv import load_dotenv

# values from a local .env never override the real environment
load_dotenv()

ALGORITHM = "HS256"
UPCOMING_WINDOW_DAYS = 3

MAX_UPLOAD_BYTES = 10 * 1024 * 1024  # 10MB
ALLOWED_UPLOAD_TYPES = {
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "image/jpeg",
    "image/png",
}
DOCUMENTS_URL_PREFIX = "/documentos"

DEFAULT_USER_PASSWORD = "defaultPassword123"

DEFAULT_SETTINGS = {
    "company_name": "Acme Manufacturing",
    "system_name": "Maintenance Management System",
    "date_format": "MM/DD/YYYY",
    "time_format": "12h",
    "default_language": "en",
    "timezone": "UTC-5",
    "email_notifications": True,
    "maintenance_due_reminders": True,
    "equipment_status_changes": True,
    "system_updates": False,
    "daily_digest": True,
    "reminder_days": 3,
}


# Read at call time so a test (or a restart with new env) picks up changes
def get_db_path():
    return os.getenv("CMMS_DB_PATH", "cmms.db")


def get_secret_key():
    return os.getenv("SECRET_KEY", "dev-secret-change-me")


def get_token_expire_minutes():
    return int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))


def get_upload_dir():
    return os.getenv("CMMS_UPLOAD_DIR", "documentos")


def get_cors_origins():
    raw = os.getenv("CMMS_CORS_ORIGINS", "*")
    return [origin.strip() for origin in raw.split(",") if origin.strip()]
