"""Create a user in the configured DB.

Usage:
  python scripts/create_user.py --email alice@example.com --password '...' --full-name Alice --role admin

NOTE: This is intended for local/dev and for creating additional admins.
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from stock_tracker.auth.crud import create_user
from stock_tracker.config import load_config
from stock_tracker.db import connect, init_db
from stock_tracker.errors import StockTrackerError


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--email", required=True)
    ap.add_argument("--password", required=True)
    ap.add_argument("--full-name", default=None)
    ap.add_argument("--role", choices=["user", "admin"], default="user")
    args = ap.parse_args()

    cfg = load_config()
    init_db(cfg.DB_DSN)

    try:
        with connect(cfg.DB_DSN) as conn:
            u = create_user(
                conn,
                email=args.email,
                password=args.password,
                full_name=args.full_name,
                role=args.role,
            )
    except StockTrackerError as e:
        raise SystemExit(f"Could not create user: {e.detail}")

    print("Created user:")
    print(u)


if __name__ == "__main__":
    main()
