"""Bulk stock import.

A batch is a list of candidate records. Each record is validated and upserted
on its own connection, so it is committed before the next one starts and a
failure only rolls back that record. Errors are collected per record and the
rest of the batch keeps going.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from stock_tracker.db import connect
from stock_tracker.errors import InvalidFormat, StockTrackerError

from .crud import CREATED, UPDATED, upsert_stock
from .validation import record_ticker, validate_record


def _debug(msg: str) -> None:
    print(f"[import] {msg}")


@dataclass
class ImportResult:
    created: int = 0
    updated: int = 0
    errors: List[Dict[str, str]] = field(default_factory=list)

    def add_error(self, ticker: str, error: str) -> None:
        self.errors.append({"ticker": ticker, "error": error})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "created": self.created,
            "updated": self.updated,
            "errors": list(self.errors),
        }


def import_stocks(db_dsn: str, stocks: Any, *, update_existing: bool = False) -> ImportResult:
    """Reconcile a batch of stock records against the database.

    Raises InvalidFormat only when `stocks` is not a list. Every other problem
    is reported in ImportResult.errors, tagged with the record's ticker.
    Existing tickers are left untouched unless `update_existing` is set.
    """
    if not isinstance(stocks, list):
        raise InvalidFormat("invalid_data_format")

    result = ImportResult()
    skipped = 0

    for record in stocks:
        ticker = record_ticker(record)
        try:
            fields = validate_record(record)
            with connect(db_dsn) as conn:
                outcome = upsert_stock(conn, fields, update_existing=update_existing)
        except StockTrackerError as e:
            result.add_error(ticker, e.detail)
            continue
        except Exception as e:
            _debug(f"Unexpected error importing ticker={ticker}: {e!r}")
            result.add_error(ticker, "Failed to save record")
            continue

        if outcome == CREATED:
            result.created += 1
        elif outcome == UPDATED:
            result.updated += 1
        else:
            skipped += 1

    _debug(
        f"Imported batch of {len(stocks)}: created={result.created} updated={result.updated} "
        f"skipped={skipped} errors={len(result.errors)}"
    )
    return result
