"""bomtrack: multi-tenant bill-of-materials engine.

``create_app`` wires configuration, the database session, the cost cache,
logging and the scheduled-job CLI. There are no HTTP routes; callers use the
service layer in ``bomtrack.services.bom_operations``.
"""

import logging
import os
from typing import Any, Mapping, Optional

from flask import Flask
from sqlalchemy.pool import StaticPool

from .config import ENV_DIAGNOSTICS
from .extensions import cache, db, migrate
from .logging_config import configure_logging

logger = logging.getLogger(__name__)

_SQLITE_REJECTED_POOL_ARGS = ("pool_size", "max_overflow", "pool_timeout")
_POOL_ENV_OVERRIDES = {"SQLALCHEMY_POOL_SIZE": "pool_size", "SQLALCHEMY_MAX_OVERFLOW": "max_overflow"}
_TRUTHY = {"1", "true", "yes", "on"}


def create_app(config: Optional[Mapping[str, Any]] = None) -> Flask:
    app = Flask(__name__)
    os.makedirs(app.instance_path, exist_ok=True)

    _load_config(app, config)
    app.config["SQLALCHEMY_ENGINE_OPTIONS"] = engine_options(
        app.config.get("SQLALCHEMY_DATABASE_URI") or "",
        _pool_env_overrides(app.config.get("SQLALCHEMY_ENGINE_OPTIONS")),
        testing=bool(app.config.get("TESTING")),
    )

    db.init_app(app)
    migrate.init_app(app, db)
    cache.init_app(app, config=cache_config(app.config))

    from . import models  # noqa: F401  # register mappers and cache events

    configure_logging(app)
    _rollback_failed_contexts(app)

    from .management import register_commands

    register_commands(app)
    if (os.environ.get("SQLALCHEMY_CREATE_ALL") or "").strip().lower() in _TRUTHY:
        _create_tables(app)

    logger.info("bomtrack app ready (env=%s, cache=%s)", ENV_DIAGNOSTICS["active"], app.config.get("CACHE_TYPE"))
    return app


def _load_config(app: Flask, overrides: Optional[Mapping[str, Any]]) -> None:
    app.config.from_object("bomtrack.config.Config")
    app.config["ENV_DIAGNOSTICS"] = ENV_DIAGNOSTICS
    if overrides:
        app.config.update(overrides)
        if overrides.get("DATABASE_URL"):
            app.config["SQLALCHEMY_DATABASE_URI"] = overrides["DATABASE_URL"]
    for warning in ENV_DIAGNOSTICS.get("warnings", ()):
        logger.warning("Environment configuration warning: %s", warning)


def _pool_env_overrides(options: Optional[Mapping[str, Any]]) -> dict:
    resolved = dict(options or {})
    for env_key, option in _POOL_ENV_OVERRIDES.items():
        raw = os.environ.get(env_key)
        if not raw:
            continue
        try:
            resolved[option] = int(raw)
        except ValueError:
            logger.warning("Ignoring non-integer %s=%r", env_key, raw)
    return resolved


def engine_options(uri: str, options: Mapping[str, Any], *, testing: bool = False) -> dict:
    """Engine kwargs for ``uri``; SQLite gets no pool sizing and in-memory DBs share one connection."""
    resolved = dict(options)
    if not (testing or uri.startswith("sqlite")):
        return resolved
    for key in _SQLITE_REJECTED_POOL_ARGS:
        resolved.pop(key, None)
    if uri == "sqlite:///:memory:":
        resolved["poolclass"] = StaticPool
        resolved["connect_args"] = {"check_same_thread": False}
    return resolved


def cache_config(config: Mapping[str, Any]) -> dict:
    settings = {
        "CACHE_TYPE": config.get("CACHE_TYPE") or "SimpleCache",
        "CACHE_DEFAULT_TIMEOUT": config.get("CACHE_DEFAULT_TIMEOUT", 120),
    }
    if settings["CACHE_TYPE"] == "RedisCache":
        redis_url = config.get("CACHE_REDIS_URL")
        if redis_url:
            settings["CACHE_REDIS_URL"] = redis_url
        else:
            logger.warning("CACHE_TYPE=RedisCache without CACHE_REDIS_URL; using SimpleCache")
            settings["CACHE_TYPE"] = "SimpleCache"
    return settings


def _rollback_failed_contexts(app: Flask) -> None:
    @app.teardown_appcontext
    def _rollback(exc):
        if exc is None:
            return
        try:
            db.session.rollback()
        except Exception:
            logger.warning("Rollback after failed app context raised", exc_info=True)


def _create_tables(app: Flask) -> None:
    # local convenience only; Alembic owns the schema everywhere else
    logger.info("SQLALCHEMY_CREATE_ALL set: creating tables with db.create_all()")
    with app.app_context():
        db.create_all()
