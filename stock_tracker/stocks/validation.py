"""Validation and normalization of candidate stock records.

Everything here is pure: functions take a raw mapping (typically decoded JSON
from an import file) and return a cleaned copy or raise.
"""

from __future__ import annotations

import math
from typing import Any, Dict, Optional

from stock_tracker.errors import MissingRequiredField, ValidationError


REQUIRED_FIELDS = ("ticker", "company_name", "price")

# Stock columns a client may set. leadership maps to leadership_json on disk.
FLOAT_FIELDS = (
    "price",
    "eps_ttm",
    "pe_ttm",
    "forward_pe",
    "bvps",
    "pb",
    "beta",
    "foreign_ownership",
)
INT_FIELDS = ("market_cap",)
TEXT_FIELDS = ("ticker", "company_name")
STOCK_FIELDS = TEXT_FIELDS + FLOAT_FIELDS + INT_FIELDS + ("leadership",)

LEADERSHIP_ROLES = ("ceo", "chairman", "chairwoman", "vice_chairman")
LEADERSHIP_LISTS = ("deputy_ceos",)

# BIGINT bounds of the market_cap column.
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


def record_ticker(record: Any) -> str:
    """Submitted ticker for error reporting, trimmed ("unknown" when unusable)."""
    if isinstance(record, dict):
        t = record.get("ticker")
        if _is_ticker_value(t) and str(t).strip():
            return str(t).strip()
    return "unknown"


def _is_ticker_value(v: Any) -> bool:
    # Tickers come as strings, occasionally as bare numbers. bool is an int subclass.
    return isinstance(v, (str, int)) and not isinstance(v, bool)


def _blank(v: Any) -> bool:
    if v is None:
        return True
    if isinstance(v, str) and not v.strip():
        return True
    return False


def validate_required(record: Any) -> None:
    """Raise MissingRequiredField unless ticker, company_name and price are present."""
    if not isinstance(record, dict):
        raise ValidationError("Invalid record format")
    for field in REQUIRED_FIELDS:
        if _blank(record.get(field)):
            raise MissingRequiredField(record_ticker(record))
    if not _is_ticker_value(record["ticker"]) or not isinstance(record["company_name"], str):
        raise ValidationError("Invalid record format")


def normalize_ticker(ticker: Any) -> str:
    if ticker is not None and not _is_ticker_value(ticker):
        raise ValidationError("Invalid record format")
    t = str("" if ticker is None else ticker).strip().upper()
    if not t:
        raise MissingRequiredField()
    return t


def _to_float(field: str, v: Any) -> Optional[float]:
    if v is None:
        return None
    if isinstance(v, bool):
        raise ValidationError(f"Invalid numeric value for {field}")
    if isinstance(v, str):
        v = v.strip().replace(",", "")
        if not v:
            return None
    try:
        out = float(v)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid numeric value for {field}")
    if math.isnan(out) or math.isinf(out):
        raise ValidationError(f"Invalid numeric value for {field}")
    return out


def _to_int(field: str, v: Any) -> Optional[int]:
    f = _to_float(field, v)
    if f is None:
        return None
    if not f.is_integer() or not INT64_MIN <= f <= INT64_MAX:
        raise ValidationError(f"Invalid numeric value for {field}")
    return int(f)


def _person(v: Any) -> Any:
    # A leadership entry is either a plain name or a person record.
    if isinstance(v, str):
        name = v.strip()
        if not name:
            raise ValidationError("Invalid leadership format")
        return name
    if not isinstance(v, dict):
        raise ValidationError("Invalid leadership format")

    name = v.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Invalid leadership format")
    out: Dict[str, Any] = dict(v)
    out["name"] = name.strip()
    for key in ("position", "education"):
        if out.get(key) is not None and not isinstance(out[key], str):
            raise ValidationError("Invalid leadership format")
    if out.get("birth_year") is not None:
        try:
            out["birth_year"] = _to_int("birth_year", out["birth_year"])
        except ValidationError:
            raise ValidationError("Invalid leadership format")
    return out


def normalize_leadership(v: Any) -> Optional[Dict[str, Any]]:
    """Check the leadership structure and return a cleaned copy.

    Known roles are validated; unrecognized keys are kept as given.
    """
    if v is None:
        return None
    if not isinstance(v, dict):
        raise ValidationError("Invalid leadership format")

    out: Dict[str, Any] = {}
    for key, value in v.items():
        if value is None:
            out[key] = None
        elif key in LEADERSHIP_ROLES:
            out[key] = _person(value)
        elif key in LEADERSHIP_LISTS:
            if not isinstance(value, list):
                raise ValidationError("Invalid leadership format")
            out[key] = [_person(p) for p in value]
        else:
            out[key] = value
    return out


def normalize_fields(record: Dict[str, Any]) -> Dict[str, Any]:
    """Return only the stock fields present in `record`, coerced to storage types.

    Absent keys stay absent so callers can tell "not provided" from "null".
    """
    out: Dict[str, Any] = {}
    for field in STOCK_FIELDS:
        if field not in record:
            continue
        v = record[field]
        if field == "ticker":
            out[field] = normalize_ticker(v)
        elif field == "company_name":
            if _blank(v):
                raise MissingRequiredField(record_ticker(record))
            if not isinstance(v, str):
                raise ValidationError("Invalid record format")
            out[field] = str(v).strip()
        elif field in FLOAT_FIELDS:
            out[field] = _to_float(field, v)
        elif field in INT_FIELDS:
            out[field] = _to_int(field, v)
        else:
            out[field] = normalize_leadership(v)

    if "price" in out and out["price"] is None:
        raise MissingRequiredField(record_ticker(record))
    return out


def validate_record(record: Any) -> Dict[str, Any]:
    """Validate a full candidate record and return its normalized fields."""
    validate_required(record)
    return normalize_fields(record)
