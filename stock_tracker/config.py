import os
from dataclasses import dataclass
from typing import Optional

# Optional: load a local .env file if present.
try:
    from dotenv import load_dotenv

    load_dotenv()
except ImportError:
    # If python-dotenv isn't installed, plain environment variables still work.
    pass


def _env_bool(name: str, default: Optional[bool] = None) -> Optional[bool]:
    """Parse a boolean environment variable.

    Accepted truthy: 1, true, yes, y, on
    Accepted falsy:  0, false, no, n, off
    Anything else (or unset) returns `default`.
    """

    raw = os.environ.get(name)
    if raw is None:
        return default
    v = raw.strip().lower()
    if v in ("1", "true", "yes", "y", "on"):
        return True
    if v in ("0", "false", "no", "n", "off"):
        return False
    return default


@dataclass(frozen=True)
class Config:
    """Runtime configuration.

    IMPORTANT: Provide secrets via environment variables or a .env file.
    Do not hardcode them in source code.
    """

    # -----------------
    # Core
    # -----------------
    # Preferred: set STOCKS_DATABASE_URL (or DATABASE_URL) to use Postgres.
    # Fallback: STOCKS_DB_PATH for SQLite.
    DB_DSN: str = (
        os.environ.get("STOCKS_DATABASE_URL")
        or os.environ.get("DATABASE_URL")
        or os.environ.get("STOCKS_DB_PATH", "./stock_tracker.sqlite")
    )

    # Upper bound for `limit` on the paginated stock listing.
    STOCKS_PAGE_LIMIT_MAX: int = int(os.environ.get("STOCKS_PAGE_LIMIT_MAX", "100"))

    # -----------------
    # Auth (JWT)
    # -----------------
    # NOTE: In dev, this defaults to a fixed string so you can get started.
    # In production, you MUST set AUTH_JWT_SECRET to a strong random value.
    AUTH_JWT_SECRET: str = os.environ.get("AUTH_JWT_SECRET", "dev_change_me")
    AUTH_TOKEN_EXPIRE_MINUTES: int = int(os.environ.get("AUTH_TOKEN_EXPIRE_MINUTES", "10080"))  # 7 days

    # Bootstrap first admin user if users table is empty.
    # Set either to an empty string to disable.
    AUTH_BOOTSTRAP_ADMIN_EMAIL: str = os.environ.get("AUTH_BOOTSTRAP_ADMIN_EMAIL", "admin@example.com")
    AUTH_BOOTSTRAP_ADMIN_PASSWORD: str = os.environ.get("AUTH_BOOTSTRAP_ADMIN_PASSWORD", "admin")

    # Allow self-serve registration via POST /auth/register.
    AUTH_ALLOW_REGISTRATION: bool = _env_bool("AUTH_ALLOW_REGISTRATION", True) is True

    # -----------------
    # CORS (development)
    # -----------------
    # The Vite dev server runs on :5173 and the API on :8000.
    CORS_ALLOW_ORIGINS: str = os.environ.get(
        "CORS_ALLOW_ORIGINS",
        "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000",
    )


def load_config() -> Config:
    return Config()
