# portal/db_errors.py
"""
Classifies storage faults raised through the Django ORM.

Models use the label to tell a lost insert race (`unique`) from other failures;
the SQL migration runner uses the one-line description in its error messages.
Works with psycopg 3, psycopg2 and SQLite.
"""

from typing import Optional

# psycopg 3, else psycopg2, else no driver error classes
try:
    from psycopg import errors as _pg_errors
except ImportError:
    try:
        from psycopg2 import errors as _pg_errors
    except ImportError:
        _pg_errors = None

# SQLite reports constraint failures only through the message text
_SQLITE_PREFIXES = {
    "UNIQUE constraint failed": "unique",
    "FOREIGN KEY constraint failed": "fk",
    "NOT NULL constraint failed": "not_null",
    "CHECK constraint failed": "check",
}


def _get_sqlstate(exc: Exception) -> Optional[str]:
    """SQLSTATE of the error or its driver cause (`sqlstate` on psycopg 3, `pgcode` on psycopg2)."""
    for obj in (exc, getattr(exc, "__cause__", None), getattr(exc, "__context__", None)):
        if obj is None:
            continue
        code = getattr(obj, "sqlstate", None) or getattr(obj, "pgcode", None)
        if code:
            return str(code)
    return None


def map_db_error(exc: Exception) -> str:
    """
    Label a storage fault:
      'unique'   -> unique violation (23505)
      'fk'       -> foreign key violation (23503)
      'not_null' -> NOT NULL (23502)
      'check'    -> check constraint (23514)
      'other'    -> anything else
    """
    # Driver error classes first
    cause = getattr(exc, "__cause__", None)
    if _pg_errors and cause is not None:
        if isinstance(cause, getattr(_pg_errors, "UniqueViolation", tuple())):
            return "unique"
        if isinstance(cause, getattr(_pg_errors, "ForeignKeyViolation", tuple())):
            return "fk"
        if isinstance(cause, getattr(_pg_errors, "NotNullViolation", tuple())):
            return "not_null"
        if isinstance(cause, getattr(_pg_errors, "CheckViolation", tuple())):
            return "check"

    sqlstate = _get_sqlstate(exc)
    if sqlstate == "23505":
        return "unique"
    if sqlstate == "23503":
        return "fk"
    if sqlstate == "23502":
        return "not_null"
    if sqlstate == "23514":
        return "check"

    # SQLite has no SQLSTATE
    message = str(exc)
    for prefix, label in _SQLITE_PREFIXES.items():
        if message.startswith(prefix):
            return label

    return "other"


def describe_db_error(exc: Exception) -> str:
    """The engine's last error as a single line, e.g. for log records."""
    sqlstate = _get_sqlstate(exc)
    message = " ".join(str(exc).split()) or exc.__class__.__name__
    if sqlstate:
        return f"[{sqlstate}] {message}"
    return message
