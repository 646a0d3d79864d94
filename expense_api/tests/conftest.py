from __future__ import annotations

import pathlib
import sys
from decimal import Decimal
from typing import Any, Callable

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import expense_api.models  # noqa: F401  # Ensure models are registered with metadata
from expense_api import schemas
from expense_api.config import Settings
from expense_api.database import Base, ConnectionPool, enable_sqlite_foreign_keys
from expense_api.server import create_app


@pytest.fixture()
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    enable_sqlite_foreign_keys(test_engine)
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture()
def pool(engine):
    return ConnectionPool(engine, acquire_timeout=1.0, shutdown_grace=0.0)


@pytest.fixture()
def settings():
    return Settings(
        _env_file=None,
        ENVIRONMENT="test",
        DATABASE_URL="sqlite://",
        RATE_LIMIT_MAX=1000,
    )


@pytest.fixture()
def client(settings, pool):
    app = create_app(settings, pool)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def report_payload() -> Callable[..., dict[str, Any]]:
    """Build a JSON-shaped create payload; keyword overrides land in the header."""

    def build(report_header_id: int = 1001, lines: list[dict[str, Any]] | None = None, **header: Any) -> dict[str, Any]:
        base_header: dict[str, Any] = {
            "report_header_id": report_header_id,
            "employee_id": 501,
            "week_end_date": "2024-03-08",
            "created_by": 7,
            "last_updated_by": 7,
            "voucher_number": 90001,
            "total": "150.75",
            "set_of_books_id": 2021,
            "default_currency_code": "BDT",
            "description": "Client visit",
        }
        base_header.update(header)
        if lines is None:
            lines = [
                {"item_description": "Taxi", "set_of_books_id": 2021, "amount": "50.25"},
                {"item_description": "Hotel", "set_of_books_id": 2021, "amount": "100.50"},
            ]
        return {"header": base_header, "lines": lines}

    return build


@pytest.fixture()
def make_report(report_payload) -> Callable[..., schemas.ExpenseReportCreate]:
    def build(*args: Any, **kwargs: Any) -> schemas.ExpenseReportCreate:
        return schemas.ExpenseReportCreate.model_validate(report_payload(*args, **kwargs))

    return build


@pytest.fixture()
def line_in() -> Callable[..., schemas.ExpenseLineIn]:
    def build(description: str = "Meal", amount: str = "12.00", **extra: Any) -> schemas.ExpenseLineIn:
        payload: dict[str, Any] = {
            "item_description": description,
            "set_of_books_id": 2021,
            "amount": Decimal(amount),
        }
        payload.update(extra)
        return schemas.ExpenseLineIn.model_validate(payload)

    return build
