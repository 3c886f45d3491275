from __future__ import annotations
import os
from pathlib import Path

# Absolute project dir
BASE_DIR = Path(__file__).resolve().parent
# Absolute instance dir (defaults to <project>/instance)
INSTANCE_DIR = Path(os.getenv("INSTANCE_DIR", BASE_DIR / "instance")).resolve()


def _env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes", "on"}


class BaseConfig:
    # Database (absolute sqlite path; forward slashes are fine on Windows)
    DEFAULT_SQLITE = f"sqlite:///{(INSTANCE_DIR / 'database.db').as_posix()}"
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", DEFAULT_SQLITE)
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = _env_flag("SQLALCHEMY_ECHO")

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
    LOG_TO_FILE = _env_flag("LOG_TO_FILE", "1")

    # Deck analysis pass
    DECK_ANALYSIS_MODE = os.getenv("DECK_ANALYSIS_MODE", "fresh").lower()
    DECK_ANALYSIS_WORKERS = int(os.getenv("DECK_ANALYSIS_WORKERS", 1))
    # Seconds one statement may block; unset means no limit
    DECK_ANALYSIS_STATEMENT_TIMEOUT = float(os.getenv("DECK_ANALYSIS_STATEMENT_TIMEOUT", 0)) or None


class DevelopmentConfig(BaseConfig):
    DEBUG = True


class TestingConfig(BaseConfig):
    TESTING = True
    LOG_TO_FILE = False


class ProductionConfig(BaseConfig):
    DEBUG = False


def _select_config():
    env = os.getenv("FLASK_ENV")
    if env == "development":
        return DevelopmentConfig
    if env == "testing":
        return TestingConfig
    if not os.getenv("DATABASE_URL"):
        raise RuntimeError("DATABASE_URL must be set explicitly in production.")
    return ProductionConfig


# Choose config
Config = _select_config()
