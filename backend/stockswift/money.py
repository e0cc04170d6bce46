# Overview: Exact decimal money column for SQLite.

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import String
from sqlalchemy.types import TypeDecorator


class Money(TypeDecorator):
    """
    Decimal amount stored as its canonical text.

    SQLite has no decimal type: NUMERIC columns pass through a double and
    lose digits. Text keeps every digit, so a value reads back exactly as
    it was written.
    """
    impl = String(64)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return str(Decimal(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(value)
