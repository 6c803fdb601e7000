import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to app.py as rentverse.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "rentverse.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Session tokens (bearer JWT carrying {id, role})
    JWT_SECRET = os.getenv("JWT_SECRET", "dev-only-change-me")
    JWT_ALGORITHM = "HS256"
    JWT_EXPIRES_SECONDS = int(os.getenv("JWT_EXPIRES_SECONDS", str(24 * 60 * 60)))

    BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))
    PASSWORD_MIN_LEN = 8

    # Email OTP (post-password step)
    OTP_LENGTH = int(os.getenv("OTP_LENGTH", "6"))
    OTP_TTL_SECONDS = int(os.getenv("OTP_TTL_SECONDS", "600"))  # 10 minutes
    OTP_MAX_ATTEMPTS = int(os.getenv("OTP_MAX_ATTEMPTS", "5"))
    OTP_RESEND_COOLDOWN_SECONDS = int(os.getenv("OTP_RESEND_COOLDOWN_SECONDS", "60"))

    # Failed-login anomaly detection (per source address)
    FAILED_LOGIN_THRESHOLD = int(os.getenv("FAILED_LOGIN_THRESHOLD", "10"))
    FAILED_LOGIN_CRITICAL_THRESHOLD = int(os.getenv("FAILED_LOGIN_CRITICAL_THRESHOLD", "20"))
    FAILED_LOGIN_WINDOW_MINUTES = int(os.getenv("FAILED_LOGIN_WINDOW_MINUTES", "15"))
    SECURITY_ALERT_COOLDOWN_MINUTES = int(os.getenv("SECURITY_ALERT_COOLDOWN_MINUTES", "30"))
    FAILED_LOGIN_RETENTION_HOURS = int(os.getenv("FAILED_LOGIN_RETENTION_HOURS", "24"))

    # Background sweeps
    BACKGROUND_SWEEPS_ENABLED = _env_bool("BACKGROUND_SWEEPS_ENABLED", "true")
    ANOMALY_SWEEP_INTERVAL_SECONDS = int(os.getenv("ANOMALY_SWEEP_INTERVAL_SECONDS", "3600"))
    LOG_RETENTION_DAYS = int(os.getenv("LOG_RETENTION_DAYS", "30"))
    LOG_RETENTION_SWEEP_INTERVAL_SECONDS = int(os.getenv("LOG_RETENTION_SWEEP_INTERVAL_SECONDS", "86400"))

    # Email: Resend first, SMTP second
    RESEND_API_KEY = os.getenv("RESEND_API_KEY")
    RESEND_FROM_EMAIL = os.getenv("RESEND_FROM_EMAIL", "Rentverse Security <onboarding@resend.dev>")

    SMTP_HOST = os.getenv("SMTP_HOST", "smtp.gmail.com")
    SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USERNAME = os.getenv("SMTP_USERNAME")
    SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
    SMTP_FROM_EMAIL = os.getenv("SMTP_FROM_EMAIL")
    SMTP_USE_TLS = _env_bool("SMTP_USE_TLS", "true")

    # Prints messages to the log instead of sending them (development only)
    EMAIL_CONSOLE_FALLBACK = _env_bool("EMAIL_CONSOLE_FALLBACK", "false")

    # Operator mailbox for security alerts
    SECURITY_ALERT_EMAIL = os.getenv("SECURITY_ALERT_EMAIL", "admin@rentverse.com")

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT = os.getenv("LOG_FORMAT", "console")  # "json" in production

    # Number of reverse proxies in front of the app whose X-Forwarded-For
    # entries are trusted; 0 means the socket address is the client address
    TRUSTED_PROXY_COUNT = int(os.getenv("TRUSTED_PROXY_COUNT", "0"))

    # Basic app settings
    DEBUG = False
