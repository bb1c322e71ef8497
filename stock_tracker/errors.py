"""Error taxonomy shared by the services and the HTTP layer.

Every error carries a short machine-readable `detail` code (what the API
returns to clients) and the HTTP status it maps to.
"""

from __future__ import annotations


class StockTrackerError(Exception):
    status_code: int = 500

    def __init__(self, detail: str = "server_error", *, status_code: int | None = None):
        super().__init__(detail)
        self.detail = detail
        if status_code is not None:
            self.status_code = int(status_code)


class ValidationError(StockTrackerError):
    """A single record failed validation."""

    status_code = 400


class MissingRequiredField(ValidationError):
    """A record lacks ticker, company_name or price."""

    def __init__(self, ticker: str | None = None):
        super().__init__("Missing required fields")
        self.ticker = ticker or "unknown"


class InvalidFormat(StockTrackerError):
    """The request as a whole is malformed."""

    status_code = 400


class NotFoundError(StockTrackerError):
    status_code = 404


class AuthError(StockTrackerError):
    status_code = 401


class ConflictError(StockTrackerError):
    status_code = 409
