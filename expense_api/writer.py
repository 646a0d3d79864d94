"""Atomic write path for expense reports (header plus line set)."""
from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Final

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import models, schemas
from .database import ConnectionPool
from .defaults import resolve_header, resolve_line, utcnow
from .exceptions import NotFound, WriteFailure

logger = logging.getLogger(__name__)

# Every header column except the identity and the server-assigned timestamps.
UPDATABLE_HEADER_FIELDS: Final[tuple[str, ...]] = (
    "employee_id",
    "week_end_date",
    "created_by",
    "last_updated_by",
    "voucher_number",
    "total",
    "vendor_id",
    "vendor_site_id",
    "expense_check_address_flag",
    "reference_1",
    "reference_2",
    "invoice_num",
    "expense_report_id",
    "set_of_books_id",
    "source",
    "purgeable_flag",
    "description",
    "default_currency_code",
)


def header_assignments(
    changes: schemas.ExpenseHeaderUpdate | None,
    now: datetime,
) -> dict[str, Any]:
    """Return the column assignments for a partial header update.

    Only fields present in the payload are emitted; ``last_update_date``
    is always stamped.
    """
    assignments: dict[str, Any] = {}
    if changes is not None:
        for field in UPDATABLE_HEADER_FIELDS:
            if field in changes.model_fields_set:
                assignments[field] = getattr(changes, field)
    assignments["last_update_date"] = now
    return assignments


def _header_snapshot(header: models.ExpenseReportHeader) -> dict[str, Any]:
    return {field: getattr(header, field) for field in ("report_header_id", *UPDATABLE_HEADER_FIELDS)}


def _db_detail(exc: SQLAlchemyError) -> str:
    return str(getattr(exc, "orig", None) or exc)


class ExpenseReportWriter:
    """Creates, replaces and removes expense reports in single transactions."""

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def _insert_lines(
        self,
        session: Session,
        report_header_id: int,
        lines: list[schemas.ExpenseLineIn],
        header_source: Mapping[str, Any],
        now: datetime,
    ) -> None:
        # One statement per line, in input order, inside the caller's transaction.
        for line_in in lines:
            values = resolve_line(line_in.model_dump(), header_source, now)
            session.add(
                models.ExpenseReportLine(
                    report_header_id=report_header_id,
                    creation_date=now,
                    last_update_date=now,
                    **values,
                )
            )
            session.flush()

    def create(self, report: schemas.ExpenseReportCreate) -> int:
        header_in = report.header.model_dump()
        report_header_id = header_in["report_header_id"]
        try:
            with self._pool.transaction() as session:
                now = utcnow()
                header_values = resolve_header(header_in, now)
                session.add(
                    models.ExpenseReportHeader(
                        creation_date=now,
                        last_update_date=now,
                        **header_values,
                    )
                )
                session.flush()
                self._insert_lines(session, report_header_id, report.lines, header_values, now)
        except SQLAlchemyError as exc:
            logger.error(
                "Error creating expense report %s: %s",
                report_header_id,
                _db_detail(exc),
                exc_info=True,
                extra={"report_header_id": report_header_id},
            )
            raise WriteFailure("Error creating expense report", detail=_db_detail(exc)) from exc
        logger.info(
            "Expense report created with ID: %s (%d line(s))",
            report_header_id,
            len(report.lines),
            extra={"report_header_id": report_header_id},
        )
        return report_header_id

    def update(self, report_header_id: int, changes: schemas.ExpenseReportUpdate) -> int:
        """Apply a partial header update and, when lines are given, replace the line set.

        An absent or empty ``lines`` list leaves the stored lines untouched.
        """
        try:
            with self._pool.transaction() as session:
                header = session.get(models.ExpenseReportHeader, report_header_id)
                if header is None:
                    raise NotFound("Expense report not found", {"report_header_id": report_header_id})
                now = utcnow()
                for column, value in header_assignments(changes.header, now).items():
                    setattr(header, column, value)
                session.flush()
                if changes.lines:
                    session.execute(
                        delete(models.ExpenseReportLine).where(
                            models.ExpenseReportLine.report_header_id == report_header_id
                        )
                    )
                    self._insert_lines(
                        session,
                        report_header_id,
                        changes.lines,
                        _header_snapshot(header),
                        now,
                    )
        except SQLAlchemyError as exc:
            logger.error(
                "Error updating expense report %s: %s",
                report_header_id,
                _db_detail(exc),
                exc_info=True,
                extra={"report_header_id": report_header_id},
            )
            raise WriteFailure("Error updating expense report", detail=_db_detail(exc)) from exc
        logger.info(
            "Expense report updated with ID: %s",
            report_header_id,
            extra={"report_header_id": report_header_id},
        )
        return report_header_id

    def delete(self, report_header_id: int) -> None:
        try:
            with self._pool.transaction() as session:
                # Lines first: they reference the header.
                session.execute(
                    delete(models.ExpenseReportLine).where(
                        models.ExpenseReportLine.report_header_id == report_header_id
                    )
                )
                result = session.execute(
                    delete(models.ExpenseReportHeader).where(
                        models.ExpenseReportHeader.report_header_id == report_header_id
                    )
                )
                if result.rowcount == 0:
                    raise NotFound("Expense report not found", {"report_header_id": report_header_id})
        except SQLAlchemyError as exc:
            logger.error(
                "Error deleting expense report %s: %s",
                report_header_id,
                _db_detail(exc),
                exc_info=True,
                extra={"report_header_id": report_header_id},
            )
            raise WriteFailure("Error deleting expense report", detail=_db_detail(exc)) from exc
        logger.info(
            "Expense report deleted with ID: %s",
            report_header_id,
            extra={"report_header_id": report_header_id},
        )
