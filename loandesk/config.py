import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev")
    JWT_SECRET = os.environ.get("JWT_SECRET", os.environ.get("SECRET_KEY", "dev"))
    JWT_EXPIRES_MINUTES = int(os.environ.get("JWT_EXPIRES_MINUTES", 60 * 24))
    SUPABASE_URL = os.environ.get("SUPABASE_URL")
    SUPABASE_KEY = os.environ.get("SUPABASE_KEY")
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Seed values for the settings row when none exists yet
    DEFAULT_LOAN_MIN = float(os.environ.get("DEFAULT_LOAN_MIN", 5000))
    DEFAULT_LOAN_MAX = float(os.environ.get("DEFAULT_LOAN_MAX", 100000))
    DEFAULT_INTEREST_RATE = float(os.environ.get("DEFAULT_INTEREST_RATE", 0.03))
    DEFAULT_PAYMENT_NUMBER = os.environ.get("DEFAULT_PAYMENT_NUMBER", "01XXXXXXXXX")

    STRICT_STATUS_TRANSITIONS = _env_bool("STRICT_STATUS_TRANSITIONS")


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = "test"
    JWT_SECRET = "test-secret-key-with-at-least-32-bytes"
    JWT_EXPIRES_MINUTES = 30
    LOG_LEVEL = "DEBUG"
    DEFAULT_LOAN_MIN = 5000
    DEFAULT_LOAN_MAX = 100000
    DEFAULT_INTEREST_RATE = 0.03
    STRICT_STATUS_TRANSITIONS = False
