"""Filtering and sorting helpers shared by the employee and leave list endpoints.

Filters arrive as a flat dict whose keys name a mapped column, optionally
followed by an operator suffix::

    {"status": LeaveStatus.pending, "start_date__from": date(2024, 6, 1)}

Sorting takes the ``sort`` query string of ``PaginationParams``: a
comma-separated list of column names, each optionally prefixed with ``-``
for descending order (``"-start_date,created_at"``).
"""

from __future__ import annotations

from typing import Any, Callable, Optional

from sqlalchemy import Select, and_
from sqlalchemy.orm import InstrumentedAttribute

# suffix -> builder(column, value) -> SQL condition
_OPERATORS: dict[str, Callable[[Any, Any], Any]] = {
    "ilike": lambda col, value: col.ilike(f"%{value}%"),
    "from": lambda col, value: col >= value,
    "to": lambda col, value: col <= value,
    "in": lambda col, value: col.in_(value),
}


def _split_key(key: str) -> tuple[str, Optional[str]]:
    name, sep, suffix = key.rpartition("__")
    if sep and suffix in _OPERATORS:
        return name, suffix
    return key, None


# ── Filtering ───────────────────────────────────────────────────────

def apply_filters(
    query: Select,
    model: Any,
    filters: dict[str, Any],
) -> Select:
    """
    Narrow *query* by *filters*.

    ============  ==================
    Suffix        Operator
    ============  ==================
    (none)        ``==``
    ``__ilike``   case-insensitive substring match
    ``__from``    ``>=``
    ``__to``      ``<=``
    ``__in``      ``IN (...)``
    ============  ==================

    ``None`` values and keys that do not name a mapped column are skipped.
    """
    conditions: list = []

    for key, value in filters.items():
        if value is None:
            continue

        name, op = _split_key(key)
        col = _get_column(model, name)
        if col is None:
            continue

        conditions.append(col == value if op is None else _OPERATORS[op](col, value))

    if conditions:
        query = query.where(and_(*conditions))
    return query


# ── Sorting ─────────────────────────────────────────────────────────

def apply_sorting(
    query: Select,
    model: Any,
    sort: Optional[str],
) -> Select:
    """
    Replace the ORDER BY of *query* with the columns named in *sort*.

    Unknown names are dropped; if none remain the query is returned as is,
    keeping its default ordering.
    """
    if not sort:
        return query

    clauses = []
    for token in sort.split(","):
        token = token.strip()
        col = _get_column(model, token.lstrip("-"))
        if col is None:
            continue
        clauses.append(col.desc() if token.startswith("-") else col.asc())

    if not clauses:
        return query
    return query.order_by(None).order_by(*clauses)


# ── Internal helper ─────────────────────────────────────────────────

def _get_column(model: Any, name: str) -> Optional[InstrumentedAttribute]:
    """Return the mapped attribute called *name*, or None."""
    attr = getattr(model, name, None)
    if isinstance(attr, InstrumentedAttribute):
        return attr
    return None
