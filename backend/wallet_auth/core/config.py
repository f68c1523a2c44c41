"""Application settings with environment-based simple classes."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from datetime import timedelta
from typing import Final

from dotenv import load_dotenv

# Public selector env var (keep neutral name to avoid collisions)
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'

DEFAULT_JWT_SECRET: Final[str] = "CHANGE_ME_JWT"
MIN_RECOMMENDED_SECRET_LENGTH: Final[int] = 32

# log2 of the scrypt work factor accepted for local secrets
HASH_COST_MIN: Final[int] = 12
HASH_COST_MAX: Final[int] = 16
HASH_COST_DEFAULT: Final[int] = 15

log = logging.getLogger(__name__)

# Load .env in development (no-op when absent)
load_dotenv()


def env_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean flag from an environment variable.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: bool, optional
        Value returned when the variable is unset. Defaults to ``False``.

    Returns
    -------
    bool
        ``True`` if the value resembles ``{"1", "true", "yes", "y", "on"}``
        ignoring case; otherwise ``False`` or ``default`` when missing.
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


def env_int(name: str, default: int) -> int:
    """Parse an integer from the environment, falling back on bad input."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        log.warning("%s is invalid. Falling back to %s.", name, default)
        return default


def clamp_hash_cost(value: int) -> int:
    """Bound the password hashing cost to the supported range.

    :param value: Requested log2 work factor.
    :returns: Value clamped to ``[HASH_COST_MIN, HASH_COST_MAX]``.
    """
    if value < HASH_COST_MIN:
        log.warning("PASSWORD_HASH_COST is too low. Using minimum of %s.", HASH_COST_MIN)
        return HASH_COST_MIN
    if value > HASH_COST_MAX:
        log.warning("PASSWORD_HASH_COST is too high. Using maximum of %s.", HASH_COST_MAX)
        return HASH_COST_MAX
    return value


def refresh_ttl_days(value: int) -> int:
    """Return a usable refresh-token TTL in days (defaults to 30)."""
    if value < 1:
        log.warning("REFRESH_TOKEN_TTL_DAYS is invalid. Falling back to 30.")
        return 30
    return value


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    API_BASE_PREFIX: str
        Root path for registering API blueprints.
    SECRET_KEY: str
        Flask secret used for session signing.
    JWT_SECRET_KEY: str
        Key used by ``flask-jwt-extended`` for signing access tokens. A warning
        is logged at startup when it is the default or shorter than 32 chars.
    JWT_ACCESS_TOKEN_EXPIRES: timedelta
        Access token lifetime (``ACCESS_TOKEN_TTL_MINUTES``, default 15).
    JWT_ENCODE_ISSUER / JWT_DECODE_ISSUER: str | None
        Optional ``iss`` claim (``JWT_ISSUER``).
    JWT_ENCODE_AUDIENCE / JWT_DECODE_AUDIENCE: str | None
        Optional ``aud`` claim (``JWT_AUDIENCE``).
    REFRESH_TOKEN_TTL_DAYS: int
        Refresh credential lifetime in days (default 30).
    REFRESH_TOKEN_BACKEND: str
        ``"sql"`` (default) or ``"redis"``; the latter needs ``REDIS_URL``.
    REFRESH_TOKEN_IN_BODY: bool
        Echo the refresh secret in JSON bodies in addition to the cookie.
    PASSWORD_MIN_LENGTH: int
        Minimum length for locally-set secrets.
    PASSWORD_HASH_COST: int
        log2 of the scrypt work factor, bounded to ``[12, 16]``.
    LEGACY_PROVIDER_JWKS_URL: str
        Key set used to verify legacy identity tokens.
    LEGACY_PROVIDER_ISSUER / LEGACY_PROVIDER_AUDIENCE: str | None
        Expected ``iss``/``aud`` of legacy identity tokens.
    LEGACY_PROFILE_URL: str | None
        URL template (``{subject_id}``) returning the legacy profile record.
    LEGACY_PROVIDER_TIMEOUT_SECONDS: float
        Upper bound for every call to the legacy provider.
    LEGACY_AUTO_PROVISION: bool
        Allow the legacy-login path to create accounts.
    SQLALCHEMY_DATABASE_URI: str
        Database connection string consumed by SQLAlchemy.
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).
    CORS_ORIGINS: str
        Comma-separated list of allowed origins for CORS.

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes.
    """

    API_BASE_PREFIX = "/api"

    # Secrets / security
    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", DEFAULT_JWT_SECRET)
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(minutes=env_int("ACCESS_TOKEN_TTL_MINUTES", 15))
    JWT_ENCODE_ISSUER = os.getenv("JWT_ISSUER") or None
    JWT_DECODE_ISSUER = JWT_ENCODE_ISSUER
    JWT_ENCODE_AUDIENCE = os.getenv("JWT_AUDIENCE") or None
    JWT_DECODE_AUDIENCE = JWT_ENCODE_AUDIENCE
    JWT_TOKEN_LOCATION = ["headers"]

    # Refresh credentials
    REFRESH_TOKEN_TTL_DAYS = refresh_ttl_days(env_int("REFRESH_TOKEN_TTL_DAYS", 30))
    REFRESH_TOKEN_BACKEND = os.getenv("REFRESH_TOKEN_BACKEND", "sql").strip().lower()
    REFRESH_TOKEN_IN_BODY = env_bool("REFRESH_TOKEN_IN_BODY", False)
    REFRESH_COOKIE_NAME = os.getenv("REFRESH_COOKIE_NAME", "refresh_token")
    REFRESH_COOKIE_PATH = "/api/v1/auth"
    REFRESH_COOKIE_SECURE = False
    REDIS_URL = os.getenv("REDIS_URL") or None
    REDIS_TIMEOUT_SECONDS = float(os.getenv("REDIS_TIMEOUT_SECONDS", "2"))

    # Local secrets
    PASSWORD_MIN_LENGTH = env_int("PASSWORD_MIN_LENGTH", 8)
    PASSWORD_HASH_COST = clamp_hash_cost(env_int("PASSWORD_HASH_COST", HASH_COST_DEFAULT))

    # Legacy identity provider
    LEGACY_PROVIDER_JWKS_URL = os.getenv(
        "LEGACY_PROVIDER_JWKS_URL",
        "https://www.googleapis.com/service_accounts/v1/jwk/securetoken@system.gserviceaccount.com",
    )
    LEGACY_PROVIDER_ISSUER = os.getenv("LEGACY_PROVIDER_ISSUER") or None
    LEGACY_PROVIDER_AUDIENCE = os.getenv("LEGACY_PROVIDER_AUDIENCE") or None
    LEGACY_PROFILE_URL = os.getenv("LEGACY_PROFILE_URL") or None
    LEGACY_PROVIDER_TIMEOUT_SECONDS = float(os.getenv("LEGACY_PROVIDER_TIMEOUT_SECONDS", "5"))
    LEGACY_AUTO_PROVISION = env_bool("LEGACY_AUTO_PROVISION", True)

    # DB
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./dev.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)

    # Flask & JSON
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    # Logging & CORS
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:5173")

    # Deployment
    USE_PROXYFIX = env_bool("USE_PROXYFIX", True)
    PROXY_HOPS = env_int("PROXY_HOPS", 1)
    APP_VERSION = os.getenv("APP_VERSION", "dev")

    # Flask built-ins
    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development."""

    DEBUG = env_bool("FLASK_DEBUG", True)
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    CORS_MAX_AGE = 600  # 10 minutes


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Forces ``TESTING`` mode and disables debug logs.
    - Uses an in-memory SQLite database unless ``TEST_DATABASE_URL`` is set.
    - Uses the cheapest allowed hashing cost to keep the suite fast.
    """

    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    PROPAGATE_EXCEPTIONS = True
    JWT_SECRET_KEY = "testing-secret-key-with-at-least-32-characters"
    PASSWORD_HASH_COST = HASH_COST_MIN
    REFRESH_TOKEN_BACKEND = "sql"


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments."""

    DEBUG = False
    SQLALCHEMY_ECHO = False
    PROPAGATE_EXCEPTIONS = False
    REFRESH_COOKIE_SECURE = True


# Map names -> classes (simple, explicit)
CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Return the configuration class inferred from ``APP_ENV``.

    Falls back to :class:`DevelopmentConfig` when ``APP_ENV`` is unset or
    unknown.
    """
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)
