"""SQLAlchemy models for the expense report service."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from .database import Base


class ExpenseReportHeader(Base):
    __tablename__ = "xxssgil_ap_expense_report_h"

    # Caller supplied, never generated.
    report_header_id: int = Column(Integer, primary_key=True, autoincrement=False)
    employee_id: Optional[int] = Column(Integer, nullable=True)
    week_end_date: date = Column(Date, nullable=False)
    creation_date: datetime = Column(DateTime, nullable=False)
    created_by: int = Column(Integer, nullable=False)
    last_update_date: datetime = Column(DateTime, nullable=False)
    last_updated_by: int = Column(Integer, nullable=False)
    voucher_number: int = Column("vouchno", Integer, nullable=False)
    total: Decimal = Column(Numeric(15, 2), nullable=False)
    vendor_id: Optional[int] = Column(Integer, nullable=True)
    vendor_site_id: Optional[int] = Column(Integer, nullable=True)
    expense_check_address_flag: Optional[str] = Column(String(1), nullable=True)
    reference_1: Optional[str] = Column(String(240), nullable=True)
    reference_2: Optional[str] = Column(String(240), nullable=True)
    invoice_num: str = Column(String(50), nullable=False)
    expense_report_id: Optional[int] = Column(Integer, nullable=True)
    set_of_books_id: Optional[int] = Column(Integer, nullable=True)
    source: str = Column(String(25), nullable=False)
    purgeable_flag: str = Column(String(1), nullable=False)
    description: Optional[str] = Column(String(240), nullable=True)
    default_currency_code: str = Column(String(15), nullable=False)

    lines = relationship(
        "ExpenseReportLine",
        back_populates="header",
        order_by="ExpenseReportLine.report_line_id",
        passive_deletes=True,
    )


class ExpenseReportLine(Base):
    __tablename__ = "xxssgil_ap_expense_report_l"

    report_line_id: int = Column(Integer, primary_key=True, autoincrement=True)
    report_header_id: int = Column(
        Integer,
        ForeignKey("xxssgil_ap_expense_report_h.report_header_id"),
        nullable=False,
        index=True,
    )
    last_update_date: datetime = Column(DateTime, nullable=False)
    last_updated_by: Optional[int] = Column(Integer, nullable=True)
    code_combination_id: Optional[int] = Column(Integer, nullable=True)
    item_description: str = Column(String(240), nullable=False)
    set_of_books_id: int = Column(Integer, nullable=False)
    amount: Decimal = Column(Numeric(15, 2), nullable=False)
    currency_code: str = Column(String(15), nullable=False)
    line_type_lookup_code: str = Column(String(25), nullable=False)
    creation_date: datetime = Column(DateTime, nullable=False)
    created_by: Optional[int] = Column(Integer, nullable=True)
    distribution_line_number: Optional[int] = Column(Integer, nullable=True)
    start_expense_date: datetime = Column(DateTime, nullable=False)

    header = relationship("ExpenseReportHeader", back_populates="lines")


class User(Base):
    __tablename__ = "users"

    id: int = Column(Integer, primary_key=True, index=True)
    name: str = Column(String(100), nullable=False)
    email: str = Column(String(100), unique=True, nullable=False, index=True)
    age: Optional[int] = Column(Integer, nullable=True)
    created_at: datetime = Column(DateTime, nullable=False)
    updated_at: datetime = Column(DateTime, nullable=False)
