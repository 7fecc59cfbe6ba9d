import os
from dotenv import load_dotenv

load_dotenv()


def _flag(name, default="false"):
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", SECRET_KEY)
    ADMIN_REQUIRE_JWT = _flag("ADMIN_REQUIRE_JWT")

    PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:5000")
    PUBLISH_FOLDER = os.getenv("PUBLISH_FOLDER", "published")

    # Notifications
    SENDGRID_API_KEY = os.getenv("SENDGRID_API_KEY")
    MAIL_SENDER = os.getenv("MAIL_SENDER", "hello@oatcode.com")
    MAIL_SENDER_NAME = os.getenv("MAIL_SENDER_NAME", "OatCode")
    NOTIFICATION_EMAIL = os.getenv("NOTIFICATION_EMAIL", "admin@localhost")
    NOTIFICATION_TIMEOUT_SECONDS = int(os.getenv("NOTIFICATION_TIMEOUT_SECONDS", "10"))

    # Website renderer
    RENDERER = os.getenv("RENDERER", "openai")
    OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
    OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    RENDERER_TIMEOUT_SECONDS = int(os.getenv("RENDERER_TIMEOUT_SECONDS", "180"))
    RENDERER_MAX_RETRIES = int(os.getenv("RENDERER_MAX_RETRIES", "2"))

    # Revision workflow
    REVISION_COOLDOWN_SECONDS = int(os.getenv("REVISION_COOLDOWN_SECONDS", "3600"))

    # Must exceed RENDERER_TIMEOUT_SECONDS * (RENDERER_MAX_RETRIES + 1) or live jobs get reclaimed
    JOB_HEARTBEAT_TIMEOUT_SECONDS = int(os.getenv("JOB_HEARTBEAT_TIMEOUT_SECONDS", "900"))
    JOB_MAX_ATTEMPTS = int(os.getenv("JOB_MAX_ATTEMPTS", "3"))
    JOB_RETRY_DELAY_SECONDS = int(os.getenv("JOB_RETRY_DELAY_SECONDS", "60"))
    WORKER_POLL_INTERVAL_SECONDS = float(os.getenv("WORKER_POLL_INTERVAL_SECONDS", "5"))


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.getenv("DEV_DATABASE_URI", "sqlite:///sitegate-dev.db")
    RENDERER = os.getenv("RENDERER", "template")


class TestingConfig(BaseConfig):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    RENDERER = "template"
    SENDGRID_API_KEY = None
    ADMIN_REQUIRE_JWT = False
    JWT_SECRET_KEY = "testing-secret-key-long-enough-for-hs256"
    NOTIFICATION_EMAIL = "ops@oatcode.test"
    PUBLIC_BASE_URL = "http://sitegate.test"


class ProductionConfig(BaseConfig):
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URI")


config_by_name = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}
