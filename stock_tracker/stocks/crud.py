from __future__ import annotations

import json
import math
from typing import Any, Dict, List, Optional, Tuple

from stock_tracker.errors import ConflictError, InvalidFormat, NotFoundError, ValidationError
from stock_tracker.util.time import utcnow_iso

from .validation import STOCK_FIELDS, normalize_fields, normalize_ticker, validate_record


SORTABLE_COLUMNS = tuple(f for f in STOCK_FIELDS if f != "leadership") + (
    "created_at",
    "updated_at",
)

# Outcomes of upsert_stock()
CREATED = "created"
UPDATED = "updated"
SKIPPED = "skipped"


def _to_columns(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Map normalized API fields to table columns."""
    cols = dict(fields)
    if "leadership" in cols:
        leadership = cols.pop("leadership")
        cols["leadership_json"] = (
            json.dumps(leadership, ensure_ascii=False) if leadership is not None else None
        )
    return cols


def row_to_stock(row: Any) -> Dict[str, Any]:
    d = dict(row)
    raw = d.pop("leadership_json", None)
    d["leadership"] = json.loads(raw) if raw else None
    return d


def _lookup_ticker(ticker: Any) -> str:
    # A blank or malformed ticker can never match a row.
    try:
        return normalize_ticker(ticker)
    except ValidationError:
        raise NotFoundError("stock_not_found")


def get_stock_row(conn: Any, ticker: str) -> Optional[Any]:
    return conn.execute(
        "SELECT * FROM stocks WHERE ticker=?",
        (normalize_ticker(ticker),),
    ).fetchone()


def get_stock_by_ticker(conn: Any, ticker: str) -> Dict[str, Any]:
    row = get_stock_row(conn, _lookup_ticker(ticker))
    if row is None:
        raise NotFoundError("stock_not_found")
    return row_to_stock(row)


def insert_stock(conn: Any, fields: Dict[str, Any]) -> None:
    """Insert a validated record. Caller guarantees the ticker is new."""
    now = utcnow_iso()
    cols = _to_columns(fields)
    cols["created_at"] = now
    cols["updated_at"] = now

    names = list(cols)
    placeholders = ",".join("?" for _ in names)
    conn.execute(
        f"INSERT INTO stocks ({', '.join(names)}) VALUES ({placeholders})",
        [cols[n] for n in names],
    )


def update_stock_fields(conn: Any, ticker: str, fields: Dict[str, Any]) -> None:
    """Overwrite only the provided fields on an existing row."""
    cols = _to_columns(fields)
    cols.pop("ticker", None)
    if not cols:
        return
    cols["updated_at"] = utcnow_iso()

    sets = ", ".join(f"{k}=?" for k in cols)
    params = list(cols.values()) + [ticker]
    conn.execute(f"UPDATE stocks SET {sets} WHERE ticker=?", params)


def upsert_stock(conn: Any, fields: Dict[str, Any], *, update_existing: bool) -> str:
    """Create, update or skip one validated record.

    One read by ticker, then at most one write:
      - absent                      -> insert, returns CREATED
      - present and update_existing -> merge provided fields, returns UPDATED
      - present otherwise           -> nothing, returns SKIPPED
    """
    ticker = fields["ticker"]
    existing = get_stock_row(conn, ticker)

    if existing is None:
        insert_stock(conn, fields)
        return CREATED

    if update_existing:
        update_stock_fields(conn, ticker, fields)
        return UPDATED

    return SKIPPED


def list_stocks(
    conn: Any,
    *,
    page: int = 1,
    limit: int = 10,
    sort: str = "ticker",
    order: str = "asc",
) -> Tuple[List[Dict[str, Any]], int]:
    """Return one page of stocks and the total row count."""
    sort = (sort or "ticker").strip()
    if sort not in SORTABLE_COLUMNS:
        raise InvalidFormat("invalid_sort")

    order = (order or "asc").strip().lower()
    if order not in ("asc", "desc"):
        raise InvalidFormat("invalid_order")

    page = max(1, int(page))
    limit = max(1, int(limit))
    offset = (page - 1) * limit

    total = conn.execute("SELECT COUNT(*) AS n FROM stocks").fetchone()["n"]
    # Column name is whitelisted above; ticker breaks ties so pages are stable.
    rows = conn.execute(
        f"""
        SELECT * FROM stocks
        ORDER BY {sort} {order.upper()}, ticker ASC
        LIMIT ? OFFSET ?
        """,
        (limit, offset),
    ).fetchall()
    return [row_to_stock(r) for r in rows], int(total)


def pagination(total: int, page: int, limit: int) -> Dict[str, Any]:
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "totalPages": math.ceil(total / limit) if limit else 0,
    }


def create_stock(conn: Any, record: Any) -> Dict[str, Any]:
    fields = validate_record(record)
    if get_stock_row(conn, fields["ticker"]) is not None:
        raise ConflictError("stock_exists")
    insert_stock(conn, fields)
    return get_stock_by_ticker(conn, fields["ticker"])


def update_stock(conn: Any, ticker: str, record: Any) -> Dict[str, Any]:
    """Partial update of one stock. The ticker itself cannot be changed."""
    if not isinstance(record, dict):
        raise InvalidFormat("invalid_data_format")
    t = _lookup_ticker(ticker)
    if get_stock_row(conn, t) is None:
        raise NotFoundError("stock_not_found")

    fields = normalize_fields({k: v for k, v in record.items() if k != "ticker"})
    update_stock_fields(conn, t, fields)
    return get_stock_by_ticker(conn, t)


def delete_stock(conn: Any, ticker: str) -> None:
    cur = conn.execute("DELETE FROM stocks WHERE ticker=?", (_lookup_ticker(ticker),))
    if cur.rowcount == 0:
        raise NotFoundError("stock_not_found")
