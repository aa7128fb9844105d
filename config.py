# config.py
import os
from datetime import timedelta


def _env_flag(name, default="true"):
    return os.environ.get(name, default).strip().lower() not in ("0", "false", "no", "off")


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")
    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", "dev-jwt-secret-change-me")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "mysql+pymysql://root:@localhost/fittrack"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # JWT config
    JWT_TOKEN_LOCATION = ["headers"]
    JWT_HEADER_NAME = "Authorization"
    JWT_HEADER_TYPE = "Bearer"
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(days=7)

    # Outgoing mail (verification codes, password reset links)
    SMTP_SERVER = os.environ.get("SMTP_SERVER", "smtp.gmail.com")
    SMTP_PORT = int(os.environ.get("SMTP_PORT", "587"))
    SMTP_USERNAME = os.environ.get("SMTP_USERNAME")
    SMTP_PASSWORD = os.environ.get("SMTP_PASSWORD")
    MAIL_FROM = os.environ.get("MAIL_FROM", SMTP_USERNAME or "noreply@fittrack.local")
    EMAIL_VERIFICATION_ENABLED = _env_flag("EMAIL_VERIFICATION_ENABLED")
    PASSWORD_RESET_URL = os.environ.get(
        "PASSWORD_RESET_URL", "http://localhost:3000/reset-password.html"
    )

    VERIFICATION_CODE_TTL_MINUTES = 10
    RESET_TOKEN_TTL_MINUTES = 60

    # Login lockout
    MAX_FAILED_LOGINS = int(os.environ.get("MAX_FAILED_LOGINS", "5"))
    LOCKOUT_MINUTES = int(os.environ.get("LOCKOUT_MINUTES", "15"))

    # Accept user_id / user_email / X-User-* without a bearer token
    ALLOW_UNAUTHENTICATED_OWNER = _env_flag("ALLOW_UNAUTHENTICATED_OWNER")
