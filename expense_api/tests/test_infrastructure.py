from __future__ import annotations

import json
import logging

import pytest
from pydantic import ValidationError
from sqlalchemy import create_engine
from sqlalchemy.pool import QueuePool

from expense_api.cli import build_parser, check_connection
from expense_api.config import Settings
from expense_api.database import ConnectionPool
from expense_api.exceptions import PoolTimeout
from expense_api.logging import JsonAuditFormatter, setup_logger
from expense_api.middleware import RateLimitMiddleware


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


def test_pool_bounds_are_validated():
    with pytest.raises(ValidationError):
        _settings(DB_POOL_MIN=5, DB_POOL_MAX=2)


def test_allowed_origins_are_split():
    settings = _settings(ALLOWED_ORIGINS="https://a.example, https://b.example,")
    assert settings.allowed_origins_list == ["https://a.example", "https://b.example"]


def test_pool_from_settings_uses_bounds(tmp_path):
    settings = _settings(DATABASE_URL=f"sqlite:///{tmp_path / 'pool.db'}", DB_POOL_MIN=2, DB_POOL_MAX=5)
    pool = ConnectionPool.from_settings(settings)
    try:
        assert isinstance(pool.engine.pool, QueuePool)
        assert pool.engine.pool.size() == 2
        assert pool.engine.pool._max_overflow == 3
        assert pool.acquire_timeout == settings.DB_ACQUIRE_TIMEOUT
    finally:
        pool.shutdown()


def test_exhausted_pool_raises_pool_timeout(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'busy.db'}",
        poolclass=QueuePool,
        pool_size=1,
        max_overflow=0,
        pool_timeout=0.1,
    )
    pool = ConnectionPool(engine, acquire_timeout=0.1, shutdown_grace=0.0)
    try:
        with pool.session():
            with pytest.raises(PoolTimeout):
                with pool.session():
                    pass
        assert pool.checked_out() == 0
    finally:
        pool.shutdown()


def test_shutdown_closes_pool(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'closed.db'}")
    pool = ConnectionPool(engine, shutdown_grace=0.0)
    pool.shutdown()
    with pytest.raises(RuntimeError):
        with pool.session():
            pass


def test_json_formatter_emits_request_fields():
    record = logging.LogRecord("expense_api.access", logging.INFO, __file__, 1, "GET %s", ("/health",), None)
    record.method = "GET"
    record.status_code = 200
    record.process_time_ms = "1.5"

    payload = json.loads(JsonAuditFormatter().format(record))

    assert payload["message"] == "GET /health"
    assert payload["level"] == "INFO"
    assert payload["method"] == "GET"
    assert payload["status_code"] == 200
    assert payload["process_time_ms"] == 1.5
    assert payload["pool_event"] is False
    assert "report_header_id" not in payload


def test_setup_logger_is_idempotent(tmp_path):
    logger = setup_logger("expense_api.test_idempotent", json_format=True, level="DEBUG", log_dir=tmp_path)
    setup_logger("expense_api.test_idempotent", json_format=True, level="WARNING", log_dir=tmp_path)

    assert len(logger.handlers) == 2
    assert logger.level == logging.WARNING
    assert (tmp_path / "combined.log").exists()
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def test_check_connection_reports_success(tmp_path, capsys):
    assert check_connection(_settings(DATABASE_URL=f"sqlite:///{tmp_path / 'check.db'}"))
    assert "CONNECTION SUCCESSFUL" in capsys.readouterr().out


def test_check_connection_reports_failure(tmp_path, capsys):
    missing = tmp_path / "missing" / "dir" / "check.db"
    assert not check_connection(_settings(DATABASE_URL=f"sqlite:///{missing}"))
    assert "CONNECTION FAILED" in capsys.readouterr().out


def test_parser_requires_a_command():
    parser = build_parser()
    assert parser.parse_args(["serve", "--port", "8080"]).port == 8080
    with pytest.raises(SystemExit):
        parser.parse_args([])


def test_rate_limiter_forgets_expired_clients():
    now = [0.0]
    limiter = RateLimitMiddleware(lambda scope, receive, send: None, max_requests=5, window_seconds=10, clock=lambda: now[0])

    for index in range(1000):
        limiter._hit(f"10.0.{index // 256}.{index % 256}")
    assert len(limiter._windows) == 1000

    now[0] = 10_000.0
    window = limiter._hit("192.0.2.1")

    assert list(limiter._windows) == ["192.0.2.1"]
    assert window.hits == 1


def test_rate_limiter_keeps_live_windows_during_sweep():
    now = [0.0]
    limiter = RateLimitMiddleware(lambda scope, receive, send: None, max_requests=5, window_seconds=10, clock=lambda: now[0])
    limiter._hit("old")
    now[0] = 6.0
    limiter._hit("recent")
    limiter._hit("recent")

    now[0] = 11.0
    limiter._hit("new")

    assert set(limiter._windows) == {"recent", "new"}
    assert limiter._windows["recent"].hits == 2
