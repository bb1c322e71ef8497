from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import Body, Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from stock_tracker.config import Config, load_config
from stock_tracker.db import connect, init_db
from stock_tracker.errors import AuthError, StockTrackerError

from stock_tracker.auth import bootstrap_admin_if_needed, get_current_user, require_admin
from stock_tracker.auth.crud import (
    create_user,
    public_user,
    touch_last_login,
    verify_user_credentials,
)
from stock_tracker.auth.security import create_access_token

from stock_tracker.stocks.crud import (
    create_stock,
    delete_stock,
    get_stock_by_ticker,
    list_stocks,
    pagination,
    update_stock,
)
from stock_tracker.stocks.importer import import_stocks


def _debug(msg: str) -> None:
    print(f"[api] {msg}")


cfg: Config = load_config()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Make config available to auth deps.
    app.state.cfg = cfg

    # Ensure schema exists.
    init_db(cfg.DB_DSN)

    # Bootstrap first admin if needed (only when users table is empty)
    boot = bootstrap_admin_if_needed(cfg)
    if boot:
        _debug(f"Bootstrapped initial admin user: email={boot.get('email')}")
    yield


app = FastAPI(title="Stock Tracker", version="0.1.0", lifespan=lifespan)

# CORS is mainly needed for local development (Vite on :5173 -> API on :8000).
_cors_origins = [o.strip() for o in (cfg.CORS_ALLOW_ORIGINS or "").split(",") if o.strip()]
if _cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(StockTrackerError)
async def _stock_tracker_error(request: Request, exc: StockTrackerError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(Exception)
async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    # Clients only get a generic code. The exception itself goes to the log.
    _debug(f"Unhandled error on {request.method} {request.url.path}: {exc!r}")
    return JSONResponse(status_code=500, content={"detail": "server_error"})


# -----------------------------
# Health
# -----------------------------


@app.get("/health")
def health() -> Dict[str, Any]:
    return {"status": "ok"}


# -----------------------------
# Auth
# -----------------------------


class LoginRequest(BaseModel):
    email: str
    password: str


class RegisterRequest(BaseModel):
    email: str
    password: str
    full_name: str | None = None


def _issue_token(user: Dict[str, Any]) -> str:
    return create_access_token(
        secret=cfg.AUTH_JWT_SECRET,
        user_id=int(user["user_id"]),
        email=str(user["email"]),
        role=str(user["role"]),
        expires_minutes=int(cfg.AUTH_TOKEN_EXPIRE_MINUTES),
    )


@app.post("/auth/login")
def auth_login(payload: LoginRequest) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        user_row = verify_user_credentials(conn, payload.email, payload.password)
        if user_row is None:
            raise AuthError("invalid_credentials")

        touch_last_login(conn, int(user_row["user_id"]))
        u = public_user(user_row)

    return {"user": u, "token": _issue_token(u), "token_type": "bearer"}


@app.post("/auth/register", status_code=201)
def auth_register(payload: RegisterRequest) -> Dict[str, Any]:
    """Create a new user account (role=user) and log it in."""
    if not cfg.AUTH_ALLOW_REGISTRATION:
        raise AuthError("registration_disabled", status_code=403)

    with connect(cfg.DB_DSN) as conn:
        u = create_user(
            conn,
            email=payload.email,
            password=payload.password,
            full_name=payload.full_name,
            role="user",
        )

    return {"user": u, "token": _issue_token(u), "token_type": "bearer"}


@app.get("/auth/me")
def auth_me(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    return {"user": user}


# -----------------------------
# Stocks
# -----------------------------


@app.get("/stocks")
def stocks_list(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    sort: str = Query("ticker"),
    order: str = Query("asc"),
    _user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    limit = min(limit, cfg.STOCKS_PAGE_LIMIT_MAX)
    with connect(cfg.DB_DSN) as conn:
        rows, total = list_stocks(conn, page=page, limit=limit, sort=sort, order=order)
    return {"data": rows, "pagination": pagination(total, page, limit)}


@app.post("/stocks/import")
def stocks_import(
    payload: Any = Body(None),
    update: bool = False,
    _admin: Dict[str, Any] = Depends(require_admin),
) -> Dict[str, Any]:
    """Bulk upsert. Body: {"stocks": [...]}. Existing tickers are only
    overwritten when ?update=true."""
    stocks = payload.get("stocks") if isinstance(payload, dict) else None
    result = import_stocks(cfg.DB_DSN, stocks, update_existing=update)
    return {"success": True, "message": "Import completed", "result": result.to_dict()}


@app.post("/stocks", status_code=201)
def stocks_create(
    payload: Any = Body(None),
    _admin: Dict[str, Any] = Depends(require_admin),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        return create_stock(conn, payload)


@app.get("/stocks/{ticker}")
def stocks_get(ticker: str, _user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        return get_stock_by_ticker(conn, ticker)


@app.put("/stocks/{ticker}")
def stocks_update(
    ticker: str,
    payload: Any = Body(None),
    _admin: Dict[str, Any] = Depends(require_admin),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        return update_stock(conn, ticker, payload)


@app.delete("/stocks/{ticker}")
def stocks_delete(ticker: str, _admin: Dict[str, Any] = Depends(require_admin)) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        delete_stock(conn, ticker)
    return {"deleted": ticker.strip().upper()}
