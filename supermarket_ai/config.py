# supermarket_ai/config.py
import os
from dotenv import load_dotenv

BASE_DIR = os.path.abspath(os.path.dirname(__file__))
load_dotenv(os.path.join(BASE_DIR, ".env"))

INSTANCE_DIR = os.path.join(BASE_DIR, "instance")


def _env(key: str, default=None):
    v = os.getenv(key)
    return v if v not in (None, "", "None") else default


def _env_bool(key: str, default: bool = False) -> bool:
    v = os.getenv(key)
    if v in (None, "", "None"):
        return default
    return str(v).strip().lower() in ("1", "true", "t", "yes", "y", "on")


def _env_list(key: str, default: str = "") -> list[str]:
    raw = _env(key, default) or ""
    return [part.strip() for part in raw.split(",") if part.strip()]


def _resolve_sqlite_uri(db_url: str | None) -> str:
    if not db_url:
        os.makedirs(INSTANCE_DIR, exist_ok=True)
        db_path = os.path.join(INSTANCE_DIR, "supermarket.db")
        return "sqlite:///" + db_path.replace("\\", "/")

    if db_url.startswith("sqlite:///"):
        raw_path = db_url.replace("sqlite:///", "", 1)
        if raw_path in ("", ":memory:"):
            return db_url
        if not os.path.isabs(raw_path):
            raw_path = os.path.join(BASE_DIR, raw_path)
        db_path = os.path.normpath(raw_path)
        os.makedirs(os.path.dirname(db_path), exist_ok=True)
        return "sqlite:///" + db_path.replace("\\", "/")

    # Hosted Postgres URLs are often handed out with the legacy scheme
    if db_url.startswith("postgres://"):
        return "postgresql://" + db_url[len("postgres://"):]

    return db_url


class Config:
    SECRET_KEY = _env("SECRET_KEY", "dev-please-change-me")

    SQLALCHEMY_DATABASE_URI = _resolve_sqlite_uri(_env("DATABASE_URL"))
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JSON_AS_ASCII = False

    # Product images
    UPLOAD_FOLDER = _env("UPLOAD_FOLDER", os.path.join(BASE_DIR, "static", "uploads"))
    PUBLIC_UPLOAD_URL = _env("PUBLIC_UPLOAD_URL", "/static/uploads")
    MAX_IMAGE_BYTES = int(_env("MAX_IMAGE_BYTES", 5 * 1024 * 1024))
    # Leave headroom for multipart framing on top of the image limit
    MAX_CONTENT_LENGTH = MAX_IMAGE_BYTES + 1024 * 1024

    CORS_ORIGINS = _env_list("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173")

    # Generative AI
    GEMINI_API_KEY = _env("GEMINI_API_KEY")
    GEMINI_MODEL = _env("GEMINI_MODEL", "gemini-1.5-flash")
    GEMINI_API_URL = _env("GEMINI_API_URL", "https://generativelanguage.googleapis.com/v1beta")
    ASSISTANT_TIMEOUT = int(_env("ASSISTANT_TIMEOUT", 30))
    ASSISTANT_MAX_CHATS = int(_env("ASSISTANT_MAX_CHATS", 500))

    NOTIFICATION_LIMIT = int(_env("NOTIFICATION_LIMIT", 100))
    AUTO_CREATE_TABLES = _env_bool("AUTO_CREATE_TABLES", False)

    MAIL_SERVER = _env("MAIL_SERVER", "smtp.gmail.com")
    MAIL_PORT = int(_env("MAIL_PORT", 465))
    MAIL_USE_SSL = _env_bool("MAIL_USE_SSL", True)
    MAIL_USE_TLS = _env_bool("MAIL_USE_TLS", False)
    MAIL_USERNAME = _env("MAIL_USERNAME")
    MAIL_PASSWORD = _env("MAIL_PASSWORD")
    MAIL_DEFAULT_SENDER = _env("MAIL_DEFAULT_SENDER", _env("MAIL_USERNAME"))
    MAIL_SUPPRESS_SEND = _env_bool("MAIL_SUPPRESS_SEND", False)
    MAIL_DEBUG = _env_bool("MAIL_DEBUG", False)

    SALES_REPORT_EMAIL = _env("SALES_REPORT_EMAIL")


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    BCRYPT_LOG_ROUNDS = 4
    MAIL_SUPPRESS_SEND = True
    MAIL_DEFAULT_SENDER = "store@example.com"
    GEMINI_API_KEY = "test-key"
    NOTIFICATION_LIMIT = 20
