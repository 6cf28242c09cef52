"""Row snapshot acquisition.

Two strategies:
- explicit read: SELECT the rows a statement will touch before it runs,
  inside the same transaction (before-state of UPDATE);
- returning: have the mutating statement itself report full rows through
  `RETURNING *` (after-state of INSERT/UPDATE, removed rows of DELETE).
"""

import re
from typing import Any

import asyncpg

from changetrail.audit.errors import ConfigurationError
from changetrail.audit.models import Predicate
from changetrail.config.models.audit import IDENTIFIER
from changetrail.db.errors import StorageError
from changetrail.observability.logging import get_logger

logger = get_logger(__name__)

QUALIFIED_NAME_PATTERN = re.compile(rf"^(?:{IDENTIFIER}\.)?{IDENTIFIER}$")
DOLLAR_QUOTE_PATTERN = re.compile(rf"\$(?:{IDENTIFIER})?\$")
WORD_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_$]*")


def quote_table_name(table_name: str) -> str:
    """Validate and double-quote a (optionally schema-qualified) table name.

    Raises:
        ConfigurationError: If the name is not a plain identifier
    """
    if not QUALIFIED_NAME_PATTERN.match(table_name):
        raise ConfigurationError(f"Invalid table name: {table_name}")
    return ".".join(f'"{part}"' for part in table_name.split("."))


def _skip_quoted(sql: str, start: int, quote: str, backslash_escapes: bool) -> int:
    """Return the index just past the quoted run opened at `start`."""
    i = start + 1
    while i < len(sql):
        char = sql[i]
        if backslash_escapes and char == "\\":
            i += 2
            continue
        if char == quote:
            # Doubled quote is an escaped quote
            if i + 1 < len(sql) and sql[i + 1] == quote:
                i += 2
                continue
            return i + 1
        i += 1
    return len(sql)


def find_returning_clause(sql: str) -> int | None:
    """Locate the statement's own RETURNING keyword.

    Only keywords outside string literals, quoted identifiers, comments
    and parentheses count, so RETURNING clauses of data-modifying CTEs
    and the word inside literals are ignored.

    Returns:
        Index of the keyword, or None if the statement has no clause
    """
    depth = 0
    found: int | None = None
    i = 0
    while i < len(sql):
        char = sql[i]
        if char == "'":
            escapes = i > 0 and sql[i - 1] in "eE" and (
                i < 2 or not (sql[i - 2].isalnum() or sql[i - 2] == "_")
            )
            i = _skip_quoted(sql, i, "'", escapes)
        elif char == '"':
            i = _skip_quoted(sql, i, '"', False)
        elif sql.startswith("--", i):
            newline = sql.find("\n", i)
            i = len(sql) if newline == -1 else newline + 1
        elif sql.startswith("/*", i):
            end = sql.find("*/", i + 2)
            i = len(sql) if end == -1 else end + 2
        elif char == "$" and (dollar := DOLLAR_QUOTE_PATTERN.match(sql, i)):
            end = sql.find(dollar.group(), dollar.end())
            i = len(sql) if end == -1 else end + len(dollar.group())
        elif char == "(":
            depth += 1
            i += 1
        elif char == ")":
            depth -= 1
            i += 1
        elif (word := WORD_PATTERN.match(sql, i)):
            if depth == 0 and word.group().upper() == "RETURNING":
                found = i
            i = word.end()
        else:
            i += 1
    return found


def ensure_returning(statement: str) -> str:
    """Rewrite a mutating statement so it reports complete rows.

    A missing RETURNING clause is added; a narrower one (e.g.
    `RETURNING id`) is replaced, so reported rows are never partial.
    """
    body = statement.strip().rstrip(";").rstrip()
    clause = find_returning_clause(body)
    if clause is not None:
        body = body[:clause].rstrip()
    return f"{body} RETURNING *"


async def execute_returning(
    conn: asyncpg.Connection,
    statement: str,
    *args: Any,
) -> list[dict[str, Any]]:
    """Execute a mutating statement and return the full affected rows.

    Raises:
        StorageError: If the statement fails
    """
    try:
        rows = await conn.fetch(ensure_returning(statement), *args)
    except Exception as e:
        logger.error("mutation_execute_error", error=str(e))
        raise StorageError(f"Failed to execute mutation: {e}", cause=e) from e
    return [dict(row) for row in rows]


async def execute_statement(
    conn: asyncpg.Connection,
    statement: str,
    *args: Any,
) -> list[dict[str, Any]]:
    """Execute a statement as written.

    Returns the rows of the statement's own RETURNING clause, if any.

    Raises:
        StorageError: If the statement fails
    """
    try:
        rows = await conn.fetch(statement, *args)
    except Exception as e:
        logger.error("statement_execute_error", error=str(e))
        raise StorageError(f"Failed to execute statement: {e}", cause=e) from e
    return [dict(row) for row in rows]


async def fetch_before(
    conn: asyncpg.Connection,
    table_name: str,
    predicate: Predicate,
) -> list[dict[str, Any]]:
    """Read the rows a statement is about to modify.

    Must run on the mutation's connection inside its transaction so the
    snapshot matches the row versions the statement will affect.

    Returns:
        Matching rows; empty when the predicate matches nothing

    Raises:
        StorageError: If the read fails
    """
    query = f"SELECT * FROM {quote_table_name(table_name)} WHERE {predicate.where}"  # noqa: S608
    try:
        rows = await conn.fetch(query, *predicate.params)
    except Exception as e:
        logger.error("snapshot_fetch_error", table_name=table_name, error=str(e))
        raise StorageError(
            f"Failed to read before-state of {table_name}: {e}", cause=e
        ) from e
    logger.debug("snapshot_fetched", table_name=table_name, rows=len(rows))
    return [dict(row) for row in rows]
