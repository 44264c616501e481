"""
Raw SQL entry point shared by SQLite (local) and PostgreSQL (production).

Call sites write one dialect: positional ``?`` placeholders, optional
``RETURNING *`` on INSERT/UPDATE and PostgreSQL JSON aggregation. ``query``
absorbs the differences and always answers ``{"rows": [...]}`` so inserts,
updates and selects are consumed the same way.
"""
import json
import logging
import re
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from flask import g
from sqlalchemy import Boolean, DateTime, JSON, text
from sqlalchemy.exc import SQLAlchemyError

from smartdrishti.db import db
from smartdrishti.services.progress import progress_fields
from smartdrishti.utils.errors import QueryError
from smartdrishti.utils.timeutils import iso_text

logger = logging.getLogger(__name__)

_INSERT_TABLE = re.compile(r"^\s*INSERT\s+INTO\s+[\"`]?(\w+)[\"`]?", re.IGNORECASE)
_UPDATE_TABLE = re.compile(r"^\s*UPDATE\s+[\"`]?(\w+)[\"`]?", re.IGNORECASE)
_FROM_TABLE = re.compile(r"\bFROM\s+[\"`]?(\w+)", re.IGNORECASE)
_RETURNING = re.compile(r"\s+RETURNING\s+[^;]*;?\s*$", re.IGNORECASE)
_WHERE_ID = re.compile(r"\bWHERE\s+id\s*=\s*\?(?=\s|;|$)", re.IGNORECASE)
_JSON_AGGREGATE = re.compile(r"\bjson_(agg|build_object)\s*\(", re.IGNORECASE)
_FILTER_CLAUSE = re.compile(r"\s*FILTER\s*\(", re.IGNORECASE)
_JOINS_STEPS = re.compile(r"\bLEFT\s+JOIN\s+steps\b", re.IGNORECASE)
_SQLITE_NOW = re.compile(r"datetime\(\s*'now'\s*\)", re.IGNORECASE)
_SQLITE_NOW_OFFSET = re.compile(
    r"datetime\(\s*'now'\s*,\s*'([+-])\s*(\d+)\s+(\w+)'\s*\)", re.IGNORECASE
)
_BARE_COLON = re.compile(r"(?<![:\\]):(?=\w)")

_TX_BEGIN = {"BEGIN", "BEGIN TRANSACTION", "START TRANSACTION"}
_TX_COMMIT = {"COMMIT", "END", "END TRANSACTION"}
_TX_ROLLBACK = {"ROLLBACK"}

_TX_DEPTH = "sql_compat_tx_depth"


# -------------------------
# Transactions
# -------------------------
def in_transaction() -> bool:
    return g.get(_TX_DEPTH, 0) > 0


@contextmanager
def transaction():
    """Commit on success, roll back on any exception. Nested blocks join the outer one."""
    depth = g.get(_TX_DEPTH, 0)
    setattr(g, _TX_DEPTH, depth + 1)
    try:
        yield
    except Exception:
        setattr(g, _TX_DEPTH, depth)
        if depth == 0:
            db.session.rollback()
        raise
    setattr(g, _TX_DEPTH, depth)
    if depth == 0:
        db.session.commit()


def commit_unless_in_transaction():
    if in_transaction():
        db.session.flush()
    else:
        db.session.commit()


# -------------------------
# SQL text helpers
# -------------------------
def _placeholder_positions(sql: str) -> List[int]:
    """Offsets of ``?`` placeholders outside quoted literals."""
    positions = []
    quote = None
    for index, char in enumerate(sql):
        if quote:
            if char == quote:
                quote = None
        elif char in ("'", '"'):
            quote = char
        elif char == "?":
            positions.append(index)
    return positions


def _matching_paren(sql: str, open_index: int) -> int:
    depth = 0
    quote = None
    for index in range(open_index, len(sql)):
        char = sql[index]
        if quote:
            if char == quote:
                quote = None
            continue
        if char in ("'", '"'):
            quote = char
        elif char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return index
    raise QueryError("unbalanced parentheses in statement")


def strip_json_aggregates(sql: str) -> str:
    """Replaces json_agg(...) [FILTER (...)] and json_build_object(...) with empty literals."""
    while True:
        match = _JSON_AGGREGATE.search(sql)
        if not match:
            return sql
        end = _matching_paren(sql, match.end() - 1)
        filter_match = _FILTER_CLAUSE.match(sql, end + 1)
        if filter_match:
            end = _matching_paren(sql, filter_match.end() - 1)
        literal = "'[]'" if match.group(1).lower() == "agg" else "'{}'"
        sql = sql[:match.start()] + literal + sql[end + 1:]


def translate_dialect(sql: str, dialect_name: str) -> str:
    """Rewrites SQLite date functions for PostgreSQL; SQLite statements pass unchanged."""
    if dialect_name == "sqlite":
        return sql

    def _offset(match):
        sign, amount, unit = match.groups()
        return f"(CURRENT_TIMESTAMP {sign} INTERVAL '{amount} {unit}')"

    sql = _SQLITE_NOW_OFFSET.sub(_offset, sql)
    return _SQLITE_NOW.sub("CURRENT_TIMESTAMP", sql)


def bind_positional(sql: str, params: Sequence[Any]):
    """Turns ``?`` placeholders into SQLAlchemy named binds (p0, p1, ...)."""
    params = list(params or [])
    positions = _placeholder_positions(sql)
    if len(positions) != len(params):
        raise QueryError(
            f"statement has {len(positions)} placeholders but {len(params)} parameters were given"
        )

    pieces = []
    bound = {}
    last = 0
    for index, position in enumerate(positions):
        pieces.append(_BARE_COLON.sub(r"\\:", sql[last:position]))
        name = f"p{index}"
        pieces.append(f":{name}")
        bound[name] = params[index]
        last = position + 1
    pieces.append(_BARE_COLON.sub(r"\\:", sql[last:]))
    return "".join(pieces), bound


# -------------------------
# Row decoding
# -------------------------
def _known_table(name: Optional[str]) -> Optional[str]:
    if name and name.lower() in db.metadata.tables:
        return name.lower()
    return None


def decode_row(table: Optional[str], row: Dict[str, Any]) -> Dict[str, Any]:
    """Decodes JSON, boolean and datetime columns that raw statements hand back as text/ints."""
    table_obj = db.metadata.tables.get(table) if table else None
    if table_obj is None:
        return row
    for column in table_obj.columns:
        if column.name not in row:
            continue
        value = row[column.name]
        if isinstance(column.type, JSON) and isinstance(value, str):
            try:
                row[column.name] = json.loads(value)
            except ValueError:
                raise QueryError(f"{table}.{column.name} holds invalid JSON")
        elif isinstance(column.type, Boolean) and isinstance(value, int):
            row[column.name] = bool(value)
        elif isinstance(column.type, DateTime) and isinstance(value, str):
            try:
                row[column.name] = iso_text(value)
            except ValueError:
                raise QueryError(f"{table}.{column.name} holds an invalid timestamp")
    return row


def _plain(row) -> Dict[str, Any]:
    # PostgreSQL hands back datetime objects, SQLite hands back text
    return {
        key: value.isoformat() if isinstance(value, datetime) else value
        for key, value in dict(row).items()
    }


def _sqlite_value(value):
    # same text layout SQLAlchemy's DateTime type writes on SQLite
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M:%S.%f")
    return value


# -------------------------
# Execution
# -------------------------
def _dialect_name() -> str:
    return db.session.get_bind().dialect.name


def _execute(sql: str, params: Sequence[Any] = ()):
    bound_sql, bound = bind_positional(sql, params)
    if _dialect_name() == "sqlite":
        bound = {key: _sqlite_value(value) for key, value in bound.items()}
    return db.session.execute(text(bound_sql), bound)


def _fetch(sql: str, params: Sequence[Any] = (), table: Optional[str] = None) -> List[Dict[str, Any]]:
    result = _execute(sql, params)
    return [decode_row(table, _plain(row)) for row in result.mappings().all()]


def _select_by_id(table: str, row_id) -> List[Dict[str, Any]]:
    return _fetch(f"SELECT * FROM {table} WHERE id = ?", [row_id], table)


def _nest_steps(projects: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Emulates json_agg over steps/step_media with one fetch per parent."""
    for project in projects:
        steps = _fetch(
            "SELECT * FROM steps WHERE project_id = ? ORDER BY created_at ASC, id ASC",
            [project["id"]],
            "steps",
        )
        for step in steps:
            step["media"] = _fetch(
                "SELECT * FROM step_media WHERE step_id = ? ORDER BY id ASC", [step["id"]], "step_media"
            )
        project["steps"] = steps
        project.update(progress_fields(step["status"] for step in steps))
    return projects


def _select(sql: str, params) -> Dict[str, Any]:
    if not _JSON_AGGREGATE.search(sql):
        source = _FROM_TABLE.search(sql)
        return {"rows": _fetch(sql, params, _known_table(source.group(1) if source else None))}

    rows = _fetch(strip_json_aggregates(sql), params, "projects" if _JOINS_STEPS.search(sql) else None)
    if _JOINS_STEPS.search(sql):
        rows = _nest_steps(rows)
    return {"rows": rows}


def _insert(sql: str, params) -> Dict[str, Any]:
    match = _INSERT_TABLE.match(sql)
    table = _known_table(match.group(1) if match else None)

    if _dialect_name() != "sqlite":
        if not _RETURNING.search(sql):
            sql = sql.rstrip().rstrip(";") + " RETURNING *"
        rows = _fetch(sql, params, table)
        return {"rows": rows, "lastrowid": rows[0].get("id") if rows else None}

    result = _execute(_RETURNING.sub("", sql), params)
    inserted_id = result.lastrowid
    if table is None:
        return {"rows": [{"id": inserted_id}], "lastrowid": inserted_id}
    return {"rows": _select_by_id(table, inserted_id), "lastrowid": inserted_id}


def _update(sql: str, params) -> Dict[str, Any]:
    match = _UPDATE_TABLE.match(sql)
    table = _known_table(match.group(1) if match else None)

    if _dialect_name() != "sqlite" and _RETURNING.search(sql):
        return {"rows": _fetch(sql, params, table)}

    bare_sql = _RETURNING.sub("", sql)
    result = _execute(bare_sql, params)

    where = _WHERE_ID.search(bare_sql)
    if where is None or table is None:
        logger.warning("UPDATE shape not supported for row re-select, returning no rows: %s", bare_sql.strip())
        return {"rows": [], "rowcount": result.rowcount}

    # the id is whichever parameter sits in the WHERE id = ? slot
    id_index = _placeholder_positions(bare_sql).index(where.end() - 1)
    return {"rows": _select_by_id(table, list(params)[id_index]), "rowcount": result.rowcount}


def _transaction_control(keyword: str) -> Dict[str, Any]:
    depth = g.get(_TX_DEPTH, 0)
    if keyword in _TX_BEGIN:
        setattr(g, _TX_DEPTH, depth + 1)
    elif keyword in _TX_COMMIT:
        setattr(g, _TX_DEPTH, max(depth - 1, 0))
        if depth <= 1:
            db.session.commit()
    else:
        setattr(g, _TX_DEPTH, 0)
        db.session.rollback()
    return {"rows": []}


def query(sql: str, params: Optional[Sequence[Any]] = None) -> Dict[str, Any]:
    """Runs ``sql`` with positional ``params``; always returns ``{"rows": [...]}``."""
    params = list(params or [])
    sql = translate_dialect(sql, _dialect_name())
    keyword = " ".join(sql.strip().rstrip(";").upper().split())

    if keyword in _TX_BEGIN or keyword in _TX_COMMIT or keyword in _TX_ROLLBACK:
        return _transaction_control(keyword)

    statement = keyword.split(" ", 1)[0]
    try:
        if statement in ("SELECT", "WITH"):
            return _select(sql, params)
        if statement == "INSERT":
            result = _insert(sql, params)
        elif statement == "UPDATE":
            result = _update(sql, params)
        else:
            cursor = _execute(sql, params)
            rows = [_plain(row) for row in cursor.mappings().all()] if cursor.returns_rows else []
            result = {"rows": rows, "rowcount": cursor.rowcount}
    except SQLAlchemyError:
        logger.exception("Database query error: %s", sql.strip())
        if not in_transaction():
            db.session.rollback()
        raise

    commit_unless_in_transaction()
    return result
