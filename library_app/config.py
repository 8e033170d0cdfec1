import os
from datetime import timedelta


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "super-secret-key")

    SQLALCHEMY_DATABASE_URI = os.getenv("SQLALCHEMY_DATABASE_URI", "sqlite:///library.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}

    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "jwt-super-secret-key-change-me-in-production")
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=int(os.getenv("JWT_ACCESS_TOKEN_HOURS", "8")))

    # Circulation rules
    LOAN_PERIOD_DAYS = int(os.getenv("LOAN_PERIOD_DAYS", "14"))
    FINE_PER_DAY = int(os.getenv("FINE_PER_DAY", "2"))
    ISSUE_RETRY_ATTEMPTS = int(os.getenv("ISSUE_RETRY_ATTEMPTS", "3"))
    SEARCH_LIMIT = int(os.getenv("SEARCH_LIMIT", "20"))

    MAIL_SERVER = os.getenv("MAIL_SERVER", "smtp.gmail.com")
    MAIL_PORT = int(os.getenv("MAIL_PORT", "587"))
    MAIL_USE_TLS = True
    MAIL_USERNAME = os.getenv("MAIL_USERNAME", "")
    MAIL_PASSWORD = os.getenv("MAIL_PASSWORD", "")
    MAIL_DEFAULT_SENDER = os.getenv("MAIL_DEFAULT_SENDER", "noreply@library.local")

    SCHEDULER_ENABLED = os.getenv("SCHEDULER_ENABLED", "1") == "1"
    OVERDUE_CHECK_MINUTES = int(os.getenv("OVERDUE_CHECK_MINUTES", "10"))
    # failed reminder attempts per loan before the sweep gives up
    REMINDER_MAX_ATTEMPTS = int(os.getenv("REMINDER_MAX_ATTEMPTS", "3"))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    JWT_SECRET_KEY = "test-jwt-secret-key-with-enough-length-for-hs256"
    MAIL_SUPPRESS_SEND = True
    SCHEDULER_ENABLED = False
    LOG_LEVEL = "DEBUG"
