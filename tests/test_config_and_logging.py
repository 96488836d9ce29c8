import logging

import pytest

from bomtrack import create_app
from bomtrack.config import EnvReader, _normalize_db_url, _resolve_critical_ratio, _resolve_environment
from bomtrack.logging_config import PiiRedactionFilter, _coerce_level


class TestEnvReader:
    def test_typed_values(self):
        reader = EnvReader({"A": " 12 ", "B": "0.25", "C": "yes", "D": "  "})

        assert reader.int("A") == 12
        assert reader.float("B") == 0.25
        assert reader.bool("C") is True
        assert reader.str("D", "fallback") == "fallback"
        assert reader.warnings == []

    def test_bad_values_fall_back_with_warning(self):
        reader = EnvReader({"A": "many", "C": "perhaps"})

        assert reader.int("A", 7) == 7
        assert reader.bool("C", False) is False
        assert len(reader.warnings) == 2


@pytest.mark.parametrize(
    "raw, expected, warned",
    [
        (None, 0.5, False),
        ("0.3", 0.3, False),
        ("0", 0.5, True),
        ("1.5", 0.5, True),
        ("half", 0.5, True),
    ],
)
def test_critical_ratio_bounds(raw, expected, warned):
    reader = EnvReader({} if raw is None else {"STOCK_ALERT_CRITICAL_RATIO": raw})

    assert _resolve_critical_ratio(reader) == expected
    assert bool(reader.warnings) is warned


def test_environment_resolution():
    assert _resolve_environment(EnvReader({})).name == "development"
    assert _resolve_environment(EnvReader({"FLASK_ENV": " Production "})).name == "production"
    with pytest.raises(RuntimeError):
        _resolve_environment(EnvReader({"FLASK_ENV": "qa"}))
    with pytest.raises(RuntimeError):
        _resolve_environment(EnvReader({"APP_ENV": "production"}))


def test_postgres_scheme_is_normalized():
    assert _normalize_db_url("postgres://u@h/db") == "postgresql://u@h/db"
    assert _normalize_db_url("sqlite:///x.db") == "sqlite:///x.db"
    assert _normalize_db_url("") is None


def test_create_app_uses_static_pool_for_memory_sqlite():
    app = create_app({"TESTING": True, "DATABASE_URL": "sqlite:///:memory:"})

    opts = app.config["SQLALCHEMY_ENGINE_OPTIONS"]
    assert "pool_size" not in opts
    assert opts["poolclass"].__name__ == "StaticPool"
    assert {"scan-low-stock", "reorder-report", "forecast-capacity"} <= set(app.cli.commands)


def _record(msg, *args):
    return logging.LogRecord("bomtrack", logging.INFO, __file__, 1, msg, args, None)


def test_pii_filter_redacts_emails_and_secrets():
    record = _record("notify %s with token=%s", "baker@example.com", "abc123")

    assert PiiRedactionFilter().filter(record) is True
    assert record.getMessage() == "notify [REDACTED_EMAIL] with token=[REDACTED]"


@pytest.mark.parametrize("raw, expected", [("debug", logging.DEBUG), (" WARNING ", logging.WARNING), (5, 5), ("nope", logging.INFO), (None, logging.INFO)])
def test_coerce_level(raw, expected):
    assert _coerce_level(raw) == expected
