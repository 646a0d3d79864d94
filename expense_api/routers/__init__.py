"""HTTP routers exposed by the expense report service."""

from . import expenses, health, users

__all__ = ["expenses", "health", "users"]
