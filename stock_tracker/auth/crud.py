from __future__ import annotations

from typing import Any, Dict, Optional

from stock_tracker.config import Config
from stock_tracker.db import connect
from stock_tracker.errors import AuthError
from stock_tracker.util.time import utcnow_iso

from .security import hash_password, verify_password


MIN_PASSWORD_LENGTH = 8


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def public_user(row: Any | Dict[str, Any]) -> Dict[str, Any]:
    d = dict(row)
    d.pop("password_hash", None)
    d["is_admin"] = d.get("role") == "admin"
    return d


def get_user_by_email(conn: Any, email: str) -> Optional[Any]:
    e = normalize_email(email)
    if not e:
        return None
    return conn.execute(
        "SELECT * FROM users WHERE email=?",
        (e,),
    ).fetchone()


def get_user_by_id(conn: Any, user_id: int) -> Optional[Any]:
    return conn.execute(
        "SELECT * FROM users WHERE user_id=?",
        (int(user_id),),
    ).fetchone()


def verify_user_credentials(conn: Any, email: str, password: str) -> Optional[Any]:
    row = get_user_by_email(conn, email)
    if row is None:
        return None
    if int(row["is_active"] or 0) != 1:
        return None
    if not verify_password(password, str(row["password_hash"])):
        return None
    return row


def create_user(
    conn: Any,
    *,
    email: str,
    password: str,
    full_name: str | None = None,
    role: str = "user",
    is_active: bool = True,
) -> Dict[str, Any]:
    """Insert a user and return its public profile.

    Raises AuthError (400) on bad input or an email that is already registered.
    """
    e = normalize_email(email)
    if not e or "@" not in e:
        raise AuthError("invalid_email", status_code=400)
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise AuthError("password_too_short", status_code=400)
    if role not in ("admin", "user"):
        raise AuthError("invalid_role", status_code=400)

    # Use the normalized email for uniqueness checks.
    existing = conn.execute("SELECT 1 FROM users WHERE email=?", (e,)).fetchone()
    if existing is not None:
        raise AuthError("email_exists", status_code=400)

    now = utcnow_iso()
    name = (full_name or "").strip() or None
    conn.execute(
        """
        INSERT INTO users (email, password_hash, full_name, role, is_active, created_at, updated_at)
        VALUES (?,?,?,?,?,?,?)
        """,
        (e, hash_password(password), name, role, 1 if is_active else 0, now, now),
    )
    row = get_user_by_email(conn, e)
    assert row is not None
    return public_user(row)


def touch_last_login(conn: Any, user_id: int) -> None:
    now = utcnow_iso()
    conn.execute(
        "UPDATE users SET last_login_at=?, updated_at=? WHERE user_id=?",
        (now, now, int(user_id)),
    )


def bootstrap_admin_if_needed(cfg: Config) -> Optional[Dict[str, Any]]:
    """Create the first admin user if the users table is empty.

    - AUTH_BOOTSTRAP_ADMIN_EMAIL (default: admin@example.com)
    - AUTH_BOOTSTRAP_ADMIN_PASSWORD

    Only runs when there are 0 rows in `users`. Blank values disable it.
    """

    email = normalize_email(cfg.AUTH_BOOTSTRAP_ADMIN_EMAIL)
    password = cfg.AUTH_BOOTSTRAP_ADMIN_PASSWORD or ""
    if not email or not password:
        return None

    with connect(cfg.DB_DSN) as conn:
        n = conn.execute("SELECT COUNT(*) AS n FROM users").fetchone()["n"]
        if int(n) > 0:
            return None

        # Bootstrap password is not subject to MIN_PASSWORD_LENGTH.
        now = utcnow_iso()
        conn.execute(
            """
            INSERT INTO users (email, password_hash, full_name, role, is_active, created_at, updated_at)
            VALUES (?,?,?,'admin',1,?,?)
            """,
            (email, hash_password(password), "Administrator", now, now),
        )
        row = get_user_by_email(conn, email)
        assert row is not None
        return public_user(row)
