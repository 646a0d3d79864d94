"""Expense report service: REST API over header/line expense reports and users."""

__all__ = [
    "config",
    "crud",
    "database",
    "defaults",
    "models",
    "queries",
    "schemas",
    "server",
    "validation",
    "writer",
]
