"""Pydantic schemas for validating and serialising expense report data."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Any, List, Optional

from pydantic import (
    AfterValidator,
    AliasChoices,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    StringConstraints,
    TypeAdapter,
    ValidationError,
    model_validator,
)

from .validation import escape_text, escaped_max_length

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

# Range of a signed 64-bit INTEGER column.
SQL_INT_MIN = -(2**63)
SQL_INT_MAX = 2**63 - 1

# Lengths are checked on the escaped text, which is what gets stored.
FreeText = Annotated[
    str,
    StringConstraints(strip_whitespace=True),
    AfterValidator(escape_text),
    AfterValidator(escaped_max_length(240)),
]
ItemDescription = Annotated[
    str,
    StringConstraints(strip_whitespace=True, min_length=1),
    AfterValidator(escape_text),
    AfterValidator(escaped_max_length(240)),
]
PersonName = Annotated[
    str,
    StringConstraints(strip_whitespace=True, min_length=2),
    AfterValidator(escape_text),
    AfterValidator(escaped_max_length(100)),
]
Email = Annotated[
    str,
    StringConstraints(strip_whitespace=True, to_lower=True, max_length=100, pattern=EMAIL_PATTERN),
]
Money = Annotated[Decimal, Field(max_digits=15, decimal_places=2)]
SqlInt = Annotated[int, Field(ge=SQL_INT_MIN, le=SQL_INT_MAX)]
RecordId = Annotated[int, Field(ge=1, le=SQL_INT_MAX)]

_DATETIME = TypeAdapter(datetime)


def _date_part(value: Any) -> Any:
    """Reduce a datetime (or ISO datetime string) to its calendar date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and len(value) > 10:
        try:
            return _DATETIME.validate_python(value).date()
        except ValidationError:
            return value
    return value


WeekEndDate = Annotated[date, BeforeValidator(_date_part)]


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class RequestModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# ---------------------------------------------------------------------------
# Expense report requests
# ---------------------------------------------------------------------------


class ExpenseLineIn(RequestModel):
    item_description: ItemDescription
    set_of_books_id: SqlInt
    amount: Money
    code_combination_id: Optional[SqlInt] = None
    currency_code: Optional[str] = Field(None, max_length=15)
    line_type_lookup_code: Optional[str] = Field(None, max_length=25)
    distribution_line_number: Optional[int] = Field(None, ge=1, le=SQL_INT_MAX)
    start_expense_date: Optional[datetime] = None
    created_by: Optional[SqlInt] = None
    last_updated_by: Optional[SqlInt] = None


class ExpenseHeaderFields(RequestModel):
    """Optional header attributes shared by create and update payloads."""

    employee_id: Optional[SqlInt] = None
    vendor_id: Optional[SqlInt] = None
    vendor_site_id: Optional[SqlInt] = None
    expense_check_address_flag: Optional[str] = Field(None, max_length=1)
    reference_1: Optional[FreeText] = None
    reference_2: Optional[FreeText] = None
    invoice_num: Optional[str] = Field(None, max_length=50)
    expense_report_id: Optional[SqlInt] = None
    set_of_books_id: Optional[SqlInt] = None
    source: Optional[str] = Field(None, max_length=25)
    purgeable_flag: Optional[str] = Field(None, max_length=1)
    description: Optional[FreeText] = None


class ExpenseHeaderCreate(ExpenseHeaderFields):
    report_header_id: RecordId
    week_end_date: WeekEndDate
    created_by: SqlInt
    last_updated_by: SqlInt
    voucher_number: SqlInt = Field(..., validation_alias=AliasChoices("voucher_number", "vouchno"))
    total: Money
    default_currency_code: str = Field(..., min_length=1, max_length=15)


class ExpenseHeaderUpdate(ExpenseHeaderFields):
    """Partial header; only the fields present in the payload are written."""

    week_end_date: Optional[WeekEndDate] = None
    created_by: Optional[SqlInt] = None
    last_updated_by: Optional[SqlInt] = None
    voucher_number: Optional[SqlInt] = Field(None, validation_alias=AliasChoices("voucher_number", "vouchno"))
    total: Optional[Money] = None
    default_currency_code: Optional[str] = Field(None, min_length=1, max_length=15)

    @model_validator(mode="after")
    def _reject_null_required_columns(self) -> "ExpenseHeaderUpdate":
        nulled = [
            name
            for name in NON_NULLABLE_HEADER_FIELDS
            if name in self.model_fields_set and getattr(self, name) is None
        ]
        if nulled:
            raise ValueError(f"Fields cannot be null: {', '.join(nulled)}")
        return self


NON_NULLABLE_HEADER_FIELDS = (
    "week_end_date",
    "created_by",
    "last_updated_by",
    "voucher_number",
    "total",
    "default_currency_code",
    "invoice_num",
    "source",
    "purgeable_flag",
)


class ExpenseReportCreate(RequestModel):
    header: ExpenseHeaderCreate
    lines: List[ExpenseLineIn] = Field(default_factory=list)


class ExpenseReportUpdate(RequestModel):
    header: Optional[ExpenseHeaderUpdate] = None
    lines: Optional[List[ExpenseLineIn]] = None


# ---------------------------------------------------------------------------
# Expense report responses
# ---------------------------------------------------------------------------


class ExpenseHeaderSummary(ORMModel):
    report_header_id: int
    employee_id: Optional[int] = None
    week_end_date: date
    creation_date: datetime
    last_update_date: datetime
    voucher_number: int
    total: Decimal
    invoice_num: str
    description: Optional[str] = None
    default_currency_code: str


class ExpenseHeaderRead(ExpenseHeaderSummary):
    created_by: int
    last_updated_by: int
    vendor_id: Optional[int] = None
    vendor_site_id: Optional[int] = None
    expense_check_address_flag: Optional[str] = None
    reference_1: Optional[str] = None
    reference_2: Optional[str] = None
    expense_report_id: Optional[int] = None
    set_of_books_id: Optional[int] = None
    source: str
    purgeable_flag: str


class ExpenseLineRead(ORMModel):
    report_line_id: int
    report_header_id: int
    code_combination_id: Optional[int] = None
    item_description: str
    set_of_books_id: int
    amount: Decimal
    currency_code: str
    line_type_lookup_code: str
    distribution_line_number: Optional[int] = None
    start_expense_date: datetime
    created_by: Optional[int] = None
    last_updated_by: Optional[int] = None
    creation_date: datetime
    last_update_date: datetime


class ExpenseReportDetail(BaseModel):
    header: ExpenseHeaderRead
    lines: List[ExpenseLineRead]


class ReportIdentity(BaseModel):
    report_header_id: int


class Pagination(BaseModel):
    page: int
    limit: int
    totalPages: int


class ExpenseReportPage(BaseModel):
    rows: List[ExpenseHeaderSummary]
    total: int
    pagination: Pagination


class ReportWriteResponse(BaseModel):
    success: bool = True
    message: str
    data: ReportIdentity


class ReportDetailResponse(BaseModel):
    success: bool = True
    data: ExpenseReportDetail


class ReportListResponse(BaseModel):
    success: bool = True
    count: int
    data: List[ExpenseHeaderSummary]
    pagination: Pagination


class MessageResponse(BaseModel):
    success: bool = True
    message: str


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class UserIn(RequestModel):
    name: PersonName
    email: Email
    age: Optional[int] = Field(None, ge=0, le=120)


class UserRead(ORMModel):
    id: int
    name: str
    email: str
    age: Optional[int] = None
    created_at: datetime
    updated_at: datetime


class UserResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    data: UserRead


class UserListResponse(BaseModel):
    success: bool = True
    data: List[UserRead]
