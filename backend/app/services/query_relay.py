"""
Generic CRUD relay: turns an action descriptor into one parameterized statement.

Values are always bound parameters. Table and column names cannot be bound,
so they are checked against a strict identifier pattern (and the optional
table allow-list) and double-quoted before they reach the SQL text.
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..exceptions import InvalidRelayRequestError, QueryExecutionError
from ..logger import logger
from ..schemas import RelayRequest

ACTIONS = ("select", "insert", "update", "delete")

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass
class Statement:
    sql: str
    params: Dict[str, Any] = field(default_factory=dict)
    returns_rows: bool = True
    single_row: bool = False
    commit: bool = False


class _Params:
    """Collects bound values and hands out :p1, :p2, ... placeholders."""

    def __init__(self) -> None:
        self.values: Dict[str, Any] = {}

    def add(self, value: Any) -> str:
        name = f"p{len(self.values) + 1}"
        # Objects go to json/jsonb columns as JSON text; lists stay lists (arrays)
        if isinstance(value, dict):
            value = json.dumps(value)
        self.values[name] = value
        return f":{name}"


def quote_identifier(name: Any, allowed: Optional[Sequence[str]] = None) -> str:
    if not isinstance(name, str) or not _IDENTIFIER_RE.match(name):
        raise InvalidRelayRequestError(f"Invalid identifier: {name!r}")
    if allowed and name not in allowed:
        raise InvalidRelayRequestError(f"Table not allowed: {name}")
    return f'"{name}"'


def _equality_clause(where: Dict[str, Any], params: _Params) -> str:
    return " AND ".join(f"{quote_identifier(k)} = {params.add(v)}" for k, v in where.items())


def _order_clause(order) -> str:
    if order is None or not order.column:
        return ""
    direction = "DESC" if (order.dir or "").upper() == "DESC" else "ASC"
    return f"ORDER BY {quote_identifier(order.column)} {direction}"


def build_select(table: str, where: Optional[Dict[str, Any]] = None, order=None) -> Statement:
    params = _Params()
    clauses = []
    if where:
        clauses.append("WHERE " + _equality_clause(where, params))
    order_by = _order_clause(order)
    if order_by:
        clauses.append(order_by)
    sql = " ".join([f"SELECT * FROM {table}"] + clauses)
    return Statement(sql, params.values)


def build_insert(table: str, values: Dict[str, Any]) -> Statement:
    if not values:
        return Statement(f"INSERT INTO {table} DEFAULT VALUES RETURNING *", single_row=True, commit=True)
    params = _Params()
    cols = ", ".join(quote_identifier(c) for c in values)
    placeholders = ", ".join(params.add(values[c]) for c in values)
    sql = f"INSERT INTO {table} ({cols}) VALUES ({placeholders}) RETURNING *"
    return Statement(sql, params.values, single_row=True, commit=True)


def build_bulk_insert(table: str, rows: List[Dict[str, Any]]) -> Statement:
    """Every row is laid out on the first row's columns; absent keys become NULL."""
    columns = list(rows[0].keys())
    if not columns:
        raise InvalidRelayRequestError("Bulk insert rows must have at least one column")
    params = _Params()
    cols = ", ".join(quote_identifier(c) for c in columns)
    tuples = []
    for row in rows:
        tuples.append("(" + ", ".join(params.add(row.get(c)) for c in columns) + ")")
    sql = f"INSERT INTO {table} ({cols}) VALUES {', '.join(tuples)} RETURNING *"
    return Statement(sql, params.values, commit=True)


def build_update(table: str, values: Dict[str, Any], where: Dict[str, Any]) -> Statement:
    params = _Params()
    assignments = ", ".join(f"{quote_identifier(k)} = {params.add(v)}" for k, v in values.items())
    condition = _equality_clause(where, params)
    sql = f"UPDATE {table} SET {assignments} WHERE {condition} RETURNING *"
    return Statement(sql, params.values, single_row=True, commit=True)


def build_delete(table: str, where: Dict[str, Any]) -> Statement:
    params = _Params()
    sql = f"DELETE FROM {table} WHERE {_equality_clause(where, params)}"
    return Statement(sql, params.values, returns_rows=False, commit=True)


def build_statement(request: RelayRequest) -> Statement:
    """Validate a relay request and build its statement without touching the database."""
    if not request.table:
        raise InvalidRelayRequestError("Missing table")
    # Unquoted table names fold to lower case on Postgres; keep that behaviour
    table = quote_identifier(
        request.table.lower(), [t.lower() for t in settings.relay_allowed_tables]
    )
    action = request.action

    if action == "select":
        return build_select(table, request.where, request.order)

    if action == "insert":
        values = request.values
        if values is None or values == []:
            raise InvalidRelayRequestError("Missing values")
        if request.bulk and isinstance(values, list):
            return build_bulk_insert(table, values)
        if isinstance(values, list):
            raise InvalidRelayRequestError("values must be an object unless bulk is true")
        return build_insert(table, values)

    if action == "update":
        if not request.values or not request.where or isinstance(request.values, list):
            raise InvalidRelayRequestError("Missing values/where")
        return build_update(table, request.values, request.where)

    if action == "delete":
        if not request.where:
            raise InvalidRelayRequestError("Missing where")
        return build_delete(table, request.where)

    raise InvalidRelayRequestError("Unknown action")


async def execute_relay(db: AsyncSession, request: RelayRequest) -> Tuple[str, Any]:
    """
    Run one relay request.

    Returns ("data", rows | row | None) for statements with RETURNING/SELECT,
    or ("ok", True) for deletes.
    """
    stmt = build_statement(request)
    logger.info(
        f"Relay {request.action} on {request.table}",
        extra={"action": request.action, "table": request.table, "param_count": len(stmt.params)},
    )

    try:
        result = await db.execute(text(stmt.sql), stmt.params)
        rows = [dict(r._mapping) for r in result] if stmt.returns_rows else None
        if stmt.commit:
            await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        message = str(getattr(e, "orig", None) or e)
        logger.error(
            f"Relay {request.action} on {request.table} failed: {message}",
            extra={"action": request.action, "table": request.table},
        )
        raise QueryExecutionError(message)

    if not stmt.returns_rows:
        return "ok", True
    if stmt.single_row:
        return "data", rows[0] if rows else None
    return "data", rows
