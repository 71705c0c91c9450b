import os
from pathlib import Path


BASE_DIR = Path(__file__).resolve().parent.parent


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "default-secret-key")
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", f"sqlite:///{BASE_DIR / 'linkdeck.db'}"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
    SCHEDULER_ENABLED = os.environ.get("SCHEDULER_ENABLED", "1") == "1"
    INTEGRITY_SWEEP_INTERVAL_MINUTES = int(
        os.environ.get("INTEGRITY_SWEEP_INTERVAL_MINUTES", "360")
    )
    DEFAULT_CATEGORY_NAME = os.environ.get("DEFAULT_CATEGORY_NAME", "Favorites")
    DEFAULT_CATEGORY_ICON = os.environ.get("DEFAULT_CATEGORY_ICON", "⭐")
    UNCATEGORIZED_CATEGORY_NAME = os.environ.get(
        "UNCATEGORIZED_CATEGORY_NAME", "Uncategorized"
    )
    UNCATEGORIZED_CATEGORY_ICON = os.environ.get("UNCATEGORIZED_CATEGORY_ICON", "📌")
    IMPORT_FOLDER_ICON = os.environ.get("IMPORT_FOLDER_ICON", "📁")
    DEFAULT_ADMIN_USERNAME = os.environ.get("DEFAULT_ADMIN_USERNAME", "admin")
    DEFAULT_ADMIN_PASSWORD = os.environ.get("DEFAULT_ADMIN_PASSWORD", "admin123")
    DEFAULT_LOGIN_PATH = os.environ.get("DEFAULT_LOGIN_PATH", "admin")
    API_TOKEN_MAX_AGE_SECONDS = int(os.environ.get("API_TOKEN_MAX_AGE_SECONDS", "86400"))
    MAX_IMPORT_BYTES = int(os.environ.get("MAX_IMPORT_BYTES", "10000000"))


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SCHEDULER_ENABLED = False
    LOG_LEVEL = "DEBUG"
