from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterator

from .connection import DatabaseConnection

logger = logging.getLogger(__name__)

_STATEMENT_END = re.compile(r";\s*$", re.MULTILINE)


def _strip_comments(sql: str) -> str:
    return "\n".join(line for line in sql.splitlines() if not line.lstrip().startswith("--"))


def iter_sql_statements(sql: str) -> Iterator[str]:
    """Split a schema file on statement-terminating semicolons.

    Only a ``;`` at the end of a line ends a statement, so the schema must not
    put one at a line end inside a string literal.
    """
    body = _strip_comments(sql)
    start = 0
    for match in _STATEMENT_END.finditer(body):
        stmt = body[start:match.start()].strip()
        start = match.end()
        if stmt:
            yield stmt
    tail = body[start:].strip()
    if tail:
        yield tail


def ensure_database_exists(conn_factory: DatabaseConnection) -> None:
    database = conn_factory.config.database
    conn = conn_factory.connect(with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(conn_factory: DatabaseConnection, *, schema_path: str | Path) -> int:
    """Apply ``schema.sql`` (idempotent: CREATE TABLE IF NOT EXISTS). Returns statement count."""
    ensure_database_exists(conn_factory)
    sql = Path(schema_path).read_text(encoding="utf-8")

    conn = conn_factory.connect()
    count = 0
    try:
        cur = conn.cursor()
        for stmt in iter_sql_statements(sql):
            cur.execute(stmt)
            count += 1
        conn.commit()
    finally:
        conn.close()

    logger.info("Applied %d schema statements from %s", count, schema_path)
    return count


def list_tables(conn_factory: DatabaseConnection) -> list[str]:
    conn = conn_factory.connect()
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()
