"""Stock Tracker - Backend.

Reference data for listed equities (ticker, price, valuation ratios,
leadership) behind a small authenticated REST API.

Core concepts:
- A stock row is keyed by its ticker; everything else is optional except
  company name and price.
- Bulk JSON import is an upsert loop where one bad record never blocks the
  rest of the batch.

See README for setup and usage.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
