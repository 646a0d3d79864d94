from __future__ import annotations

from datetime import datetime

from expense_api import defaults
from expense_api.defaults import Constant, FromHeader, FromLine, resolve, resolve_header, resolve_line

NOW = datetime(2024, 3, 8, 12, 30)


def test_line_currency_falls_back_to_header_default():
    resolved = resolve_line({"amount": 10}, {"default_currency_code": "EUR"}, NOW)
    assert resolved["currency_code"] == "EUR"


def test_line_currency_falls_back_to_constant_without_header_value():
    resolved = resolve_line({"amount": 10}, {}, NOW)
    assert resolved["currency_code"] == "BDT"


def test_line_value_wins_over_header():
    resolved = resolve_line({"currency_code": "USD"}, {"default_currency_code": "EUR"}, NOW)
    assert resolved["currency_code"] == "USD"


def test_empty_string_counts_as_missing():
    resolved = resolve_line({"currency_code": "", "line_type_lookup_code": ""}, {}, NOW)
    assert resolved["currency_code"] == "BDT"
    assert resolved["line_type_lookup_code"] == "ITEM"


def test_line_inherits_audit_columns_and_start_date():
    header = {"created_by": 7, "last_updated_by": 9, "set_of_books_id": 2021}
    resolved = resolve_line({"item_description": "Taxi"}, header, NOW)
    assert resolved["created_by"] == 7
    assert resolved["last_updated_by"] == 9
    assert resolved["set_of_books_id"] == 2021
    assert resolved["start_expense_date"] == NOW
    assert resolved["item_description"] == "Taxi"


def test_explicit_start_date_is_kept():
    start = datetime(2024, 3, 1, 9, 0)
    assert resolve_line({"start_expense_date": start}, {}, NOW)["start_expense_date"] == start


def test_header_defaults():
    resolved = resolve_header({"report_header_id": 42, "default_currency_code": None}, NOW)
    assert resolved["invoice_num"] == "42/"
    assert resolved["source"] == "XpenseXpress"
    assert resolved["purgeable_flag"] == "N"
    assert resolved["default_currency_code"] == "BDT"


def test_header_values_are_preserved():
    header = {
        "report_header_id": 42,
        "invoice_num": "INV-1",
        "source": "Manual",
        "purgeable_flag": "Y",
        "default_currency_code": "USD",
    }
    assert resolve_header(header, NOW) == header


def test_resolve_returns_none_when_chain_is_exhausted():
    assert resolve((FromLine("x"), FromHeader("y")), line={}, header={}) is None


def test_resolve_stops_at_first_present_value():
    chain = (FromLine("a"), Constant("fallback"))
    assert resolve(chain, line={"a": 0}) == 0


def test_every_line_chain_starts_with_the_line_itself():
    for field, chain in defaults.LINE_FALLBACKS.items():
        assert chain[0] == FromLine(field)
