import os
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name, default):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Base configuration class with common settings."""
    # CORS configuration
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Logging
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_FILE = os.environ.get("LOG_FILE")  # None logs to stdout only

    # Working calendar the session starts with
    PLAN_WEEKENDS_EXCLUDED = _env_flag("PLAN_WEEKENDS_EXCLUDED", True)
    PLAN_HOLIDAYS = os.environ.get("PLAN_HOLIDAYS", "")  # Comma-separated YYYY-MM-DD

    # Bound on calendar days scanned per working-day step
    MAX_CALENDAR_SCAN_DAYS = int(os.environ.get("MAX_CALENDAR_SCAN_DAYS", "3660"))

    # Export
    EXPORT_FILENAME = os.environ.get("EXPORT_FILENAME", "production_schedule")


class LocalConfig(Config):
    """Configuration for local development."""
    ENV = "local"
    DEBUG = True


class SandboxConfig(Config):
    """Configuration for sandbox/staging environment."""
    ENV = "sandbox"
    DEBUG = False


class ProductionConfig(Config):
    """Configuration for production environment."""
    ENV = "production"
    DEBUG = False


class TestingConfig(Config):
    """Configuration for the test suite: fixed calendar, stdout logging."""
    ENV = "testing"
    DEBUG = False
    TESTING = True
    LOG_FILE = None
    PLAN_WEEKENDS_EXCLUDED = True
    PLAN_HOLIDAYS = ""


def get_config():
    """Get the appropriate configuration class based on environment variable.

    Environment is determined by FLASK_ENV or ENVIRONMENT variable:
    - 'local' or 'development' -> LocalConfig
    - 'sandbox' or 'staging' -> SandboxConfig
    - 'production' or 'prod' -> ProductionConfig
    - 'testing' or 'test' -> TestingConfig

    Defaults to LocalConfig if not set.
    """
    env = (os.environ.get("FLASK_ENV") or os.environ.get("ENVIRONMENT", "local")).lower()

    if env in ["local", "development", "dev"]:
        return LocalConfig
    elif env in ["sandbox", "staging", "stage"]:
        return SandboxConfig
    elif env in ["production", "prod"]:
        return ProductionConfig
    elif env in ["testing", "test"]:
        return TestingConfig
    else:
        # Default to local for safety
        return LocalConfig
