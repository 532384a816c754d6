"""
Store operation outcomes.

Every failure leaving the store is one of these kinds. NotFound covers both
"does not exist" and "not yours": owner-scoped lookups cannot tell the two
apart, and callers must not be able to either.
"""

from __future__ import annotations

import sqlite3

# ── Driver codes for a uniqueness violation ─────────────────
PG_UNIQUE_VIOLATION = "23505"
SQLITE_CONSTRAINT_UNIQUE = 2067
SQLITE_CONSTRAINT_PRIMARYKEY = 1555
MYSQL_DUPLICATE_ENTRY = 1062


class StoreError(Exception):
    """Base class for classified store failures."""

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class NotFound(StoreError):
    """Referenced user/project/file/read-only entry is missing or not the caller's."""


class AlreadyExists(StoreError):
    """A name or generated identifier collided with a uniqueness constraint."""


class QuotaExceeded(StoreError):
    """Creation would go past the per-user ceiling."""


class ConsistencyError(StoreError):
    """A write touched an unexpected number of rows."""


class UnknownStoreError(StoreError):
    """Any other storage failure."""


def is_unique_violation(exc: BaseException) -> bool:
    """
    True when a driver error (or a SQLAlchemy wrapper around one) reports
    a uniqueness violation.

    Checks, in order: PostgreSQL SQLSTATE, SQLite extended result code,
    MySQL error number. Wrapped driver errors are unwrapped via .orig and
    __cause__.
    """
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))

        sqlstate = getattr(current, "sqlstate", None) or getattr(current, "pgcode", None)
        if sqlstate == PG_UNIQUE_VIOLATION:
            return True

        if isinstance(current, sqlite3.IntegrityError):
            code = getattr(current, "sqlite_errorcode", None)
            if code is not None:
                return code in (SQLITE_CONSTRAINT_UNIQUE, SQLITE_CONSTRAINT_PRIMARYKEY)
            return "UNIQUE constraint failed" in str(current)

        args = getattr(current, "args", ())
        if args and args[0] == MYSQL_DUPLICATE_ENTRY:
            return True

        current = getattr(current, "orig", None) or current.__cause__
    return False
