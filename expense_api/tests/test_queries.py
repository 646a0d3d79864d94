from __future__ import annotations

import pytest

from expense_api.exceptions import NotFound
from expense_api.queries import ExpenseReportQueries, parse_positive_int
from expense_api.writer import ExpenseReportWriter


@pytest.fixture()
def seeded(pool, make_report):
    writer = ExpenseReportWriter(pool)
    for report_header_id in range(1, 26):
        writer.create(make_report(report_header_id, lines=[]))
    return ExpenseReportQueries(pool)


def test_last_page_holds_the_remainder(seeded):
    page = seeded.list(page=3, limit=10)

    assert len(page.rows) == 5
    assert page.total == 25
    assert page.pagination.totalPages == 3
    assert [row.report_header_id for row in page.rows] == [5, 4, 3, 2, 1]


def test_first_page_is_ordered_by_id_descending(seeded):
    page = seeded.list()

    assert page.pagination.page == 1
    assert page.pagination.limit == 10
    assert [row.report_header_id for row in page.rows] == list(range(25, 15, -1))


def test_page_past_the_end_is_empty(seeded):
    page = seeded.list(page="9", limit="10")
    assert page.rows == []
    assert page.total == 25


def test_empty_table_has_zero_pages(pool):
    page = ExpenseReportQueries(pool).list()
    assert page.total == 0
    assert page.pagination.totalPages == 0


def test_get_by_id_missing_raises_not_found(pool):
    with pytest.raises(NotFound):
        ExpenseReportQueries(pool).get_by_id(12345)


def test_get_by_id_returns_lines_in_insertion_order(pool, make_report):
    ExpenseReportWriter(pool).create(make_report(8))
    detail = ExpenseReportQueries(pool).get_by_id(8)
    assert [line.item_description for line in detail.lines] == ["Taxi", "Hotel"]


@pytest.mark.parametrize(
    ("value", "expected"),
    [(None, 10), ("", 10), ("abc", 10), ("0", 10), ("-3", 10), ("7", 7), (" 4 ", 4), (5, 5)],
)
def test_parse_positive_int(value, expected):
    assert parse_positive_int(value, 10) == expected
