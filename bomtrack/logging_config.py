"""Logging setup for the engine and its scheduled commands.

Service modules log through ``logging.getLogger(__name__)``; everything lands
under the ``bomtrack`` logger. Alert payloads and audit notes can carry
supplier contact details, so handlers get a redaction filter unless
``LOG_REDACT_PII`` is off.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable

from flask import Flask

PACKAGE_LOGGER = "bomtrack"
DEV_FORMAT = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d: %(message)s"
PROD_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
QUIET_LOGGERS = ("sqlalchemy.engine", "alembic.runtime.migration", "flask_caching")

_REDACTIONS = (
    (re.compile(r"[A-Za-z0-9_.+-]+@[A-Za-z0-9-]+\.[A-Za-z0-9-.]+"), "[REDACTED_EMAIL]"),
    (re.compile(r"Bearer\s+[A-Za-z0-9\-_.=:+/]+", re.IGNORECASE), "Bearer [REDACTED]"),
)
_SECRET_PATTERN = re.compile(
    r"(token|api[_-]?key|secret|password|passwd|authorization)\s*[:=]\s*([^\s,;]+)", re.IGNORECASE
)


@dataclass(frozen=True)
class LoggingSettings:
    level: int
    production: bool
    redact_pii: bool

    @classmethod
    def from_app(cls, app: Flask) -> "LoggingSettings":
        return cls(
            level=_coerce_level(app.config.get("LOG_LEVEL", "DEBUG" if app.debug else "INFO")),
            production=app.config.get("ENV") == "production" and not app.debug,
            redact_pii=bool(app.config.get("LOG_REDACT_PII", True)),
        )


class PiiRedactionFilter(logging.Filter):
    """Masks emails, bearer tokens and ``key=secret`` pairs in the rendered message."""

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            msg = record.getMessage()
        except (TypeError, ValueError):
            # leave malformed records for the handler to report
            return True
        for pattern, replacement in _REDACTIONS:
            msg = pattern.sub(replacement, msg)
        record.msg = _SECRET_PATTERN.sub(lambda m: f"{m.group(1)}=[REDACTED]", msg)
        record.args = ()
        return True


def configure_logging(app: Flask) -> LoggingSettings:
    settings = LoggingSettings.from_app(app)
    root = logging.getLogger()
    root.setLevel(settings.level)
    app.logger.setLevel(settings.level)

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(settings.level)
    if not root.handlers and not package_logger.handlers:
        # CLI runs outside a server have no handlers; give scan output somewhere to go
        package_logger.addHandler(logging.StreamHandler())

    if settings.level > logging.DEBUG:
        for noisy in QUIET_LOGGERS:
            logging.getLogger(noisy).setLevel(logging.WARNING)

    formatter = logging.Formatter(PROD_FORMAT if settings.production else DEV_FORMAT)
    for handlers in (root.handlers, app.logger.handlers, package_logger.handlers):
        _apply_formatter(handlers, formatter, settings.redact_pii)
    return settings


def _apply_formatter(handlers: Iterable[logging.Handler], formatter: logging.Formatter, redact_pii: bool) -> None:
    for handler in handlers:
        handler.setFormatter(formatter)
        if redact_pii and not any(isinstance(f, PiiRedactionFilter) for f in handler.filters):
            handler.addFilter(PiiRedactionFilter())


def _coerce_level(raw_level) -> int:
    if isinstance(raw_level, int):
        return raw_level
    if isinstance(raw_level, str):
        level = logging.getLevelName(raw_level.strip().upper())
        return level if isinstance(level, int) else logging.INFO
    return logging.INFO
