"""Environment-driven configuration.

``FLASK_ENV`` picks one of the config classes below. Malformed values never
crash the import: ``EnvReader`` records a warning, falls back to the default,
and ``create_app`` logs the warnings once the app exists.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Callable, Mapping, TypeVar

T = TypeVar("T")

_ENV_KEY = "FLASK_ENV"
_DEFAULT_ENV = "development"
_VALID_ENVS = ("development", "testing", "staging", "production")
# Older deployments used these; refuse them so a stale variable cannot pick the wrong database.
_RETIRED_ENV_KEYS = ("APP_ENV", "BOMTRACK_ENV", "ENVIRONMENT")
_BOOLEANS = {"1": True, "true": True, "yes": True, "on": True, "0": False, "false": False, "no": False, "off": False}


@dataclass(frozen=True)
class EnvironmentInfo:
    name: str
    source: str
    raw_value: str


class EnvReader:
    def __init__(self, data: Mapping[str, str] | None = None):
        self._data = dict(os.environ if data is None else data)
        self.warnings: list[str] = []

    def raw(self, key: str) -> str | None:
        return self._data.get(key)

    def _clean(self, key: str) -> str | None:
        value = (self._data.get(key) or "").strip()
        return value or None

    def _typed(self, key: str, default: T, parse: Callable[[str], T], label: str) -> T:
        value = self._clean(key)
        if value is None:
            return default
        try:
            return parse(value)
        except (TypeError, ValueError):
            self.warnings.append(f"{key} expected {label} but received {value!r}; falling back to {default}.")
            return default

    def str(self, key: str, default: str | None = None) -> str | None:
        value = self._clean(key)
        return default if value is None else value

    def int(self, key: str, default: int = 0) -> int:
        return self._typed(key, default, int, "integer")

    def float(self, key: str, default: float = 0.0) -> float:
        return self._typed(key, default, float, "float")

    def bool(self, key: str, default: bool = False) -> bool:
        return self._typed(key, default, _parse_bool, "boolean")


def _parse_bool(value: str) -> bool:
    try:
        return _BOOLEANS[value.lower()]
    except KeyError:
        raise ValueError(value) from None


def _normalize_db_url(url: str | None) -> str | None:
    if not url:
        return None
    if url.startswith("postgres://"):
        return "postgresql://" + url[len("postgres://"):]
    return url


def _resolve_environment(reader: EnvReader) -> EnvironmentInfo:
    for key in _RETIRED_ENV_KEYS:
        if reader.raw(key):
            raise RuntimeError(f"{key} is no longer supported. Set {_ENV_KEY} to one of {list(_VALID_ENVS)} instead.")
    raw_value = reader.str(_ENV_KEY, _DEFAULT_ENV)
    name = raw_value.strip().lower()
    if name not in _VALID_ENVS:
        raise RuntimeError(f"Invalid {_ENV_KEY}={raw_value!r}. Expected one of {list(_VALID_ENVS)}.")
    return EnvironmentInfo(name=name, source=_ENV_KEY, raw_value=raw_value)


def _resolve_critical_ratio(reader: EnvReader) -> float:
    """Fraction of reorder_point at or below which stock is critical rather than low."""
    ratio = reader.float("STOCK_ALERT_CRITICAL_RATIO", 0.5)
    if 0.0 < ratio < 1.0:
        return ratio
    reader.warnings.append(f"STOCK_ALERT_CRITICAL_RATIO must be between 0 and 1 (exclusive); got {ratio!r}, using 0.5.")
    return 0.5


def _sqlite_instance_url(filename: str) -> str:
    instance_path = os.path.join(os.path.abspath(os.path.dirname(__file__)), "..", "instance")
    os.makedirs(instance_path, exist_ok=True)
    return "sqlite:///" + os.path.join(instance_path, filename)


env = EnvReader()
ENV_INFO = _resolve_environment(env)


class BomSettings:
    STOCK_ALERT_CRITICAL_RATIO = _resolve_critical_ratio(env)
    STOCK_ALERT_NOTIFY_ON_CREATE = env.bool("STOCK_ALERT_NOTIFY_ON_CREATE", True)
    STOCK_ALERT_NOTIFY_ON_ESCALATION = env.bool("STOCK_ALERT_NOTIFY_ON_ESCALATION", True)
    PREDICTIVE_ALERT_DAYS = env.int("PREDICTIVE_ALERT_DAYS", 7)
    CONSUMPTION_LOOKBACK_DAYS = env.int("CONSUMPTION_LOOKBACK_DAYS", 30)
    FORECAST_MAX_HORIZON_DAYS = env.int("FORECAST_MAX_HORIZON_DAYS", 365)


class BaseConfig(BomSettings):
    FLASK_ENV = ENV_INFO.name
    SECRET_KEY = env.str("FLASK_SECRET_KEY", "devkey-please-change-in-production")
    SQLALCHEMY_DATABASE_URI = _normalize_db_url(env.str("DATABASE_URL"))
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_size": env.int("SQLALCHEMY_POOL_SIZE", 20),
        "max_overflow": env.int("SQLALCHEMY_MAX_OVERFLOW", 10),
        "pool_pre_ping": True,
        "pool_recycle": env.int("SQLALCHEMY_POOL_RECYCLE", 1800),
        "pool_timeout": env.int("SQLALCHEMY_POOL_TIMEOUT", 30),
    }

    CACHE_TYPE = env.str("CACHE_TYPE", "SimpleCache")
    CACHE_REDIS_URL = env.str("CACHE_REDIS_URL") or env.str("REDIS_URL")
    CACHE_DEFAULT_TIMEOUT = env.int("CACHE_DEFAULT_TIMEOUT", 120)

    LOG_LEVEL = env.str("LOG_LEVEL", "WARNING")
    LOG_REDACT_PII = env.bool("LOG_REDACT_PII", True)


class DevelopmentConfig(BaseConfig):
    ENV = "development"
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = BaseConfig.SQLALCHEMY_DATABASE_URI or _sqlite_instance_url("bomtrack.db")
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True, "pool_recycle": 3600}
    LOG_LEVEL = env.str("LOG_LEVEL", "DEBUG")


class TestingConfig(BaseConfig):
    ENV = "testing"
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}
    CACHE_TYPE = "SimpleCache"


class StagingConfig(BaseConfig):
    ENV = "staging"
    DEBUG = False


class ProductionConfig(BaseConfig):
    ENV = "production"
    DEBUG = False
    LOG_LEVEL = env.str("LOG_LEVEL", "INFO")


config_map = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "staging": StagingConfig,
    "production": ProductionConfig,
}

Config = config_map[ENV_INFO.name]
ENV_DIAGNOSTICS = {
    "active": ENV_INFO.name,
    "source": ENV_INFO.source,
    "variables": {ENV_INFO.source: ENV_INFO.raw_value},
    "warnings": tuple(env.warnings),
}
