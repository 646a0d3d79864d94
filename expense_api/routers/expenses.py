"""Expense report endpoints."""
from __future__ import annotations

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Path, status

from .. import schemas
from ..database import ConnectionPool, get_pool
from ..queries import ExpenseReportQueries
from ..writer import ExpenseReportWriter

router = APIRouter()

ReportId = Annotated[int, Path(ge=1, le=schemas.SQL_INT_MAX)]


@router.post(
    "",
    response_model=schemas.ReportWriteResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_expense_report(
    report_in: schemas.ExpenseReportCreate,
    pool: ConnectionPool = Depends(get_pool),
) -> schemas.ReportWriteResponse:
    report_header_id = ExpenseReportWriter(pool).create(report_in)
    return schemas.ReportWriteResponse(
        message="Expense report created successfully",
        data=schemas.ReportIdentity(report_header_id=report_header_id),
    )


@router.get("", response_model=schemas.ReportListResponse)
def list_expense_reports(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    pool: ConnectionPool = Depends(get_pool),
) -> schemas.ReportListResponse:
    result = ExpenseReportQueries(pool).list(page, limit)
    return schemas.ReportListResponse(
        count=result.total,
        data=result.rows,
        pagination=result.pagination,
    )


@router.get("/{report_header_id}", response_model=schemas.ReportDetailResponse)
def get_expense_report(
    report_header_id: ReportId,
    pool: ConnectionPool = Depends(get_pool),
) -> schemas.ReportDetailResponse:
    return schemas.ReportDetailResponse(data=ExpenseReportQueries(pool).get_by_id(report_header_id))


@router.put("/{report_header_id}", response_model=schemas.ReportWriteResponse)
def update_expense_report(
    report_header_id: ReportId,
    changes: schemas.ExpenseReportUpdate,
    pool: ConnectionPool = Depends(get_pool),
) -> schemas.ReportWriteResponse:
    ExpenseReportWriter(pool).update(report_header_id, changes)
    return schemas.ReportWriteResponse(
        message="Expense report updated successfully",
        data=schemas.ReportIdentity(report_header_id=report_header_id),
    )


@router.delete("/{report_header_id}", response_model=schemas.MessageResponse)
def delete_expense_report(
    report_header_id: ReportId,
    pool: ConnectionPool = Depends(get_pool),
) -> schemas.MessageResponse:
    ExpenseReportWriter(pool).delete(report_header_id)
    return schemas.MessageResponse(message="Expense report deleted successfully")
