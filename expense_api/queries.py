"""Read-only access to expense reports."""
from __future__ import annotations

import math
from typing import Any

from sqlalchemy import func, select

from . import models, schemas
from .database import ConnectionPool
from .exceptions import NotFound

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10


def parse_positive_int(value: Any, default: int) -> int:
    """Return ``value`` as a positive integer, or ``default`` when it is not one."""
    if value is None:
        return default
    try:
        number = int(str(value).strip())
    except ValueError:
        return default
    return number if 1 <= number <= schemas.SQL_INT_MAX else default


class ExpenseReportQueries:
    """Paginated listing and lookup by id.

    Both operations issue independent reads without a surrounding
    transaction, so a listing's count and page may disagree under
    concurrent writes.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def list(self, page: Any = None, limit: Any = None) -> schemas.ExpenseReportPage:
        page = parse_positive_int(page, DEFAULT_PAGE)
        limit = parse_positive_int(limit, DEFAULT_LIMIT)
        offset = (page - 1) * limit
        with self._pool.session() as session:
            total = session.scalar(select(func.count()).select_from(models.ExpenseReportHeader)) or 0
            rows = []
            # Offsets past the integer column range cannot match any row.
            if offset <= schemas.SQL_INT_MAX:
                stmt = (
                    select(models.ExpenseReportHeader)
                    .order_by(models.ExpenseReportHeader.report_header_id.desc())
                    .offset(offset)
                    .limit(limit)
                )
                rows = [schemas.ExpenseHeaderSummary.model_validate(row) for row in session.scalars(stmt)]
        return schemas.ExpenseReportPage(
            rows=rows,
            total=total,
            pagination=schemas.Pagination(page=page, limit=limit, totalPages=math.ceil(total / limit)),
        )

    def get_by_id(self, report_header_id: int) -> schemas.ExpenseReportDetail:
        with self._pool.session() as session:
            header = session.get(models.ExpenseReportHeader, report_header_id)
            if header is None:
                raise NotFound("Expense report not found", {"report_header_id": report_header_id})
            stmt = (
                select(models.ExpenseReportLine)
                .where(models.ExpenseReportLine.report_header_id == report_header_id)
                .order_by(models.ExpenseReportLine.report_line_id)
            )
            lines = [schemas.ExpenseLineRead.model_validate(line) for line in session.scalars(stmt)]
            return schemas.ExpenseReportDetail(
                header=schemas.ExpenseHeaderRead.model_validate(header),
                lines=lines,
            )
