from __future__ import annotations

from typing import Any, Dict, Optional

import jwt
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from stock_tracker.db import connect

from .crud import get_user_by_id, public_user
from .security import decode_access_token


_bearer = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=401, detail=detail, headers={"WWW-Authenticate": "Bearer"})


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> Dict[str, Any]:
    """Authenticate a request from its `Authorization: Bearer <jwt>` header."""

    cfg = getattr(request.app.state, "cfg", None)
    if cfg is None:
        raise HTTPException(status_code=500, detail="server_config_missing")

    token = credentials.credentials if credentials is not None else None
    if not token:
        # Keep a single detail string so frontends can handle consistently.
        raise _unauthorized("missing_token")

    try:
        payload = decode_access_token(token=token, secret=cfg.AUTH_JWT_SECRET)
    except jwt.ExpiredSignatureError:
        raise _unauthorized("token_expired")
    except jwt.InvalidTokenError:
        raise _unauthorized("token_invalid")

    try:
        user_id = int(payload.get("sub") or "")
    except (TypeError, ValueError):
        raise _unauthorized("token_invalid")

    with connect(cfg.DB_DSN) as conn:
        row = get_user_by_id(conn, user_id)
        if row is None:
            raise _unauthorized("user_not_found")
        if int(row["is_active"] or 0) != 1:
            raise _unauthorized("user_inactive")
        return public_user(row)


def require_admin(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if user.get("role") != "admin":
        raise HTTPException(status_code=403, detail="admin_required")
    return user
