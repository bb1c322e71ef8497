"""Import stock reference data from a JSON file.

Usage:
  python scripts/import_stocks.py --file stocks.json [--update]

Notes:
  - The file holds either a JSON list of stock objects or {"stocks": [...]}
    (the same body POST /stocks/import accepts).
  - Without --update, tickers that already exist are left untouched.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


from stock_tracker.config import load_config
from stock_tracker.db import init_db
from stock_tracker.errors import InvalidFormat
from stock_tracker.stocks.importer import import_stocks


def _read_stocks_file(path: Path) -> object:
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        return data.get("stocks")
    return data


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--file", default="stocks.json", help="Path to JSON file")
    parser.add_argument("--update", action="store_true", help="Overwrite existing tickers")
    args = parser.parse_args()

    cfg = load_config()
    init_db(cfg.DB_DSN)

    path = Path(args.file)
    try:
        stocks = _read_stocks_file(path)
    except (OSError, json.JSONDecodeError) as e:
        raise SystemExit(f"Could not read {path}: {e}")

    try:
        result = import_stocks(cfg.DB_DSN, stocks, update_existing=args.update)
    except InvalidFormat:
        raise SystemExit(f"{path} does not contain a list of stocks")

    print(f"Done. created={result.created} updated={result.updated} errors={len(result.errors)}")
    if result.errors:
        print("Errors, first 50:")
        for err in result.errors[:50]:
            print("  ", err["ticker"], "-", err["error"])


if __name__ == "__main__":
    main()
