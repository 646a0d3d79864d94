"""Default-value resolution for expense report headers and lines.

Defaults are resolved once, at write time, by walking an ordered chain of
sources for each field. A chain step either reads a field from the line
being written, reads a field from the header it belongs to, or produces
a constant. The first step yielding a present value wins; ``None`` and
the empty string count as absent.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Final, Union

DEFAULT_CURRENCY: Final[str] = "BDT"
DEFAULT_SOURCE: Final[str] = "XpenseXpress"
DEFAULT_PURGEABLE_FLAG: Final[str] = "N"
DEFAULT_LINE_TYPE: Final[str] = "ITEM"


def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in the timestamp columns."""

    return datetime.now(tz=UTC).replace(tzinfo=None)


@dataclass(frozen=True)
class FromLine:
    field: str


@dataclass(frozen=True)
class FromHeader:
    field: str


@dataclass(frozen=True)
class Constant:
    value: Any


@dataclass(frozen=True)
class Computed:
    """Value derived from the header, e.g. the invoice number."""

    func: Callable[[Mapping[str, Any]], Any]


@dataclass(frozen=True)
class Now:
    pass


Step = Union[FromLine, FromHeader, Constant, Computed, Now]


HEADER_FALLBACKS: Final[Mapping[str, tuple[Step, ...]]] = {
    "invoice_num": (
        FromHeader("invoice_num"),
        Computed(lambda header: f"{header['report_header_id']}/"),
    ),
    "source": (FromHeader("source"), Constant(DEFAULT_SOURCE)),
    "purgeable_flag": (FromHeader("purgeable_flag"), Constant(DEFAULT_PURGEABLE_FLAG)),
    "default_currency_code": (FromHeader("default_currency_code"), Constant(DEFAULT_CURRENCY)),
}

LINE_FALLBACKS: Final[Mapping[str, tuple[Step, ...]]] = {
    "currency_code": (
        FromLine("currency_code"),
        FromHeader("default_currency_code"),
        Constant(DEFAULT_CURRENCY),
    ),
    "line_type_lookup_code": (FromLine("line_type_lookup_code"), Constant(DEFAULT_LINE_TYPE)),
    "set_of_books_id": (FromLine("set_of_books_id"), FromHeader("set_of_books_id")),
    "created_by": (FromLine("created_by"), FromHeader("created_by")),
    "last_updated_by": (FromLine("last_updated_by"), FromHeader("last_updated_by")),
    "start_expense_date": (FromLine("start_expense_date"), Now()),
}


def is_missing(value: Any) -> bool:
    return value is None or value == ""


def _evaluate(
    step: Step,
    line: Mapping[str, Any],
    header: Mapping[str, Any],
    now: datetime,
) -> Any:
    if isinstance(step, FromLine):
        return line.get(step.field)
    if isinstance(step, FromHeader):
        return header.get(step.field)
    if isinstance(step, Constant):
        return step.value
    if isinstance(step, Computed):
        return step.func(header)
    if isinstance(step, Now):
        return now
    raise TypeError(f"Unknown fallback step: {step!r}")


def resolve(
    chain: tuple[Step, ...],
    *,
    line: Mapping[str, Any] | None = None,
    header: Mapping[str, Any] | None = None,
    now: datetime | None = None,
) -> Any:
    """Return the first present value produced by ``chain`` (``None`` if none is)."""

    line = line or {}
    header = header or {}
    moment = now or utcnow()
    for step in chain:
        value = _evaluate(step, line, header, moment)
        if not is_missing(value):
            return value
    return None


def resolve_header(header: Mapping[str, Any], now: datetime | None = None) -> dict[str, Any]:
    """Return a copy of ``header`` with every header default applied."""

    resolved = dict(header)
    for field, chain in HEADER_FALLBACKS.items():
        resolved[field] = resolve(chain, header=header, now=now)
    return resolved


def resolve_line(
    line: Mapping[str, Any],
    header: Mapping[str, Any],
    now: datetime | None = None,
) -> dict[str, Any]:
    """Return a copy of ``line`` with defaults taken from ``header`` or constants."""

    moment = now or utcnow()
    resolved = dict(line)
    for field, chain in LINE_FALLBACKS.items():
        resolved[field] = resolve(chain, line=line, header=header, now=moment)
    return resolved


__all__ = [
    "DEFAULT_CURRENCY",
    "DEFAULT_LINE_TYPE",
    "DEFAULT_PURGEABLE_FLAG",
    "DEFAULT_SOURCE",
    "HEADER_FALLBACKS",
    "LINE_FALLBACKS",
    "resolve",
    "resolve_header",
    "resolve_line",
    "utcnow",
]
