# portal/sql_migrations.py
"""
Plain SQL migrations recorded in the `migration` table.

Files named `mYYMMDD_HHMMSS_<name>.sql` are applied in name order, each inside its
own transaction. Statements end with `;`, and lines starting with `--` are comments.
Multi-line /* */ comments are not supported.
"""
import logging
import re
import time
from datetime import datetime
from pathlib import Path

from django.db import DatabaseError, connection, transaction

from .db_errors import describe_db_error
from .models import Migration

logger = logging.getLogger(__name__)

FILENAME_PATTERN = re.compile(r"^m\d{6}_\d{6}_\w+\.sql$")
NAME_PATTERN = re.compile(r"^\w+$")

# Statements handled outside the migration (or by its transaction)
SKIP_PATTERNS = [
    re.compile(r"^CREATE\s+DATABASE", re.IGNORECASE),
    re.compile(r"^USE\s", re.IGNORECASE),
    re.compile(r"^START\s+TRANSACTION", re.IGNORECASE),
]


class MigrationError(Exception):
    def __init__(self, name, line, statement, cause):
        self.name = name
        self.line = line
        self.statement = statement
        self.cause = cause
        super().__init__(f"Migration '{name}' failed at line {line}: {describe_db_error(cause)}")


def split_statements(text):
    """Yield (line_number, statement) pairs; line numbers are 1-based and point at the statement start."""
    buf = []
    start = None
    for number, line in enumerate(text.splitlines(), start=1):
        stripped = line.strip()
        if stripped.startswith("--") or (not stripped and not buf):
            continue
        if start is None:
            start = number
        buf.append(line)
        if stripped.endswith(";"):
            statement = "\n".join(buf).strip().rstrip(";").strip()
            if statement:
                yield start, statement
            buf, start = [], None
    statement = "\n".join(buf).strip().rstrip(";").strip()
    if statement:
        yield start, statement


def is_skipped(statement):
    return any(p.match(statement) for p in SKIP_PATTERNS)


def discover(directory):
    """All migration files in the directory, sorted by name."""
    directory = Path(directory)
    if not directory.is_dir():
        return []
    return sorted(
        (p for p in directory.iterdir() if p.is_file() and FILENAME_PATTERN.match(p.name)),
        key=lambda p: p.name,
    )


def pending(directory):
    files = discover(directory)
    applied = set(
        Migration.objects.filter(name__in=[p.stem for p in files]).values_list("name", flat=True)
    )
    return [p for p in files if p.stem not in applied]


def apply_file(path, verbosity=1, stdout=None):
    """
    Run one migration file and record it. Everything is rolled back on the first failing statement.
    """
    path = Path(path)
    name = path.stem
    text = path.read_text(encoding="utf-8")
    with transaction.atomic():
        with connection.cursor() as cursor:
            for line, statement in split_statements(text):
                if is_skipped(statement):
                    logger.info("%s: statement at line %d skipped", name, line)
                    continue
                if verbosity > 2 and stdout is not None:
                    stdout.write(f"--- {name}:{line}\n{statement}\n")
                try:
                    cursor.execute(statement)
                except DatabaseError as exc:
                    raise MigrationError(name, line, statement, exc) from exc
        record = Migration(name=name, applied=int(time.time()))
        if not record.save_validated(force_insert=True):
            raise MigrationError(name, 0, "", DatabaseError(record.last_error))
    logger.info("Migration %s applied", name)
    return record


def create_migration(directory, name, now=None):
    """Create an empty, timestamped migration file and return its path."""
    if not name or not NAME_PATTERN.match(name):
        raise ValueError(f"Invalid migration name '{name}'; use letters, digits and underscores")
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    stamp = (now or datetime.now()).strftime("%y%m%d_%H%M%S")
    path = directory / f"m{stamp}_{name}.sql"
    if path.exists():
        raise FileExistsError(path)
    path.write_text(f"-- Migration {path.stem}\n", encoding="utf-8")
    return path
