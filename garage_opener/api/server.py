from __future__ import annotations

import html
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, Request, Response
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel, model_validator

from garage_opener.auth import get_current_user
from garage_opener.auth.deps import AUTH_HEADER
from garage_opener.auth.service import login, new_one_time_pin, redeem_one_time_pin
from garage_opener.auth.users import bootstrap_user_if_needed, set_subscribed
from garage_opener.config import Config, load_config
from garage_opener.db import connect, init_db
from garage_opener.errors import (
    BadCredentials,
    DeviceUnavailable,
    PersistenceError,
    Unauthorized,
)
from garage_opener.garage import ToggleCoordinator, build_relay
from garage_opener.models import User


def _debug(msg: str) -> None:
    print(f"[api] {msg}")


class LoginRequest(BaseModel):
    # Field names match the JSON body sent by existing clients.
    Email: str
    Password: str

    @model_validator(mode="before")
    @classmethod
    def _case_insensitive_keys(cls, data: Any) -> Any:
        # Older clients send {"email", "password"}; key case is not significant.
        if not isinstance(data, dict):
            return data
        out = dict(data)
        for key, value in data.items():
            for name in ("Email", "Password"):
                if isinstance(key, str) and key.lower() == name.lower() and name not in out:
                    out[name] = value
        return out


class SubscriptionRequest(BaseModel):
    Subscribed: bool


_PIN_PAGE = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <title>Garage door</title>
</head>
<body>
  <h1>Garage door</h1>
  <p>This link works once.</p>
  <form method="post" action="/garage/one-time-pin/{pin}">
    <button type="submit">Open / close the garage</button>
  </form>
</body>
</html>
"""


def create_app(cfg: Optional[Config] = None, *, toggler: Optional[ToggleCoordinator] = None) -> FastAPI:
    cfg = cfg or load_config()

    def _on_startup() -> None:
        # Ensure schema exists.
        init_db(cfg.DB_PATH, timeout=cfg.DB_TIMEOUT_SECONDS)

        # Seed the first user if needed (only when the user table is empty)
        boot = bootstrap_user_if_needed(cfg)
        if boot:
            _debug(f"Bootstrapped initial user: email={boot.email}")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        _on_startup()
        yield

    app = FastAPI(title="Garage Opener", version="0.1.0", lifespan=lifespan)
    app.state.cfg = cfg
    app.state.toggler = toggler or ToggleCoordinator(
        build_relay(cfg),
        pulse_seconds=cfg.PULSE_SECONDS,
        wait_seconds=cfg.TOGGLE_WAIT_SECONDS,
    )

    def _connect():
        return connect(cfg.DB_PATH, timeout=cfg.DB_TIMEOUT_SECONDS)

    # -----------------------------
    # Error mapping
    # -----------------------------
    # Every authorization failure renders the same body so pins and tokens give
    # no hint about why they were rejected.

    @app.exception_handler(Unauthorized)
    def _unauthorized(request: Request, exc: Unauthorized) -> JSONResponse:
        return JSONResponse(status_code=401, content={"detail": Unauthorized.code})

    @app.exception_handler(BadCredentials)
    def _bad_credentials(request: Request, exc: BadCredentials) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": BadCredentials.code})

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        # A malformed login body is just a failed login; do not echo field names.
        if request.url.path == "/user/login":
            return JSONResponse(status_code=400, content={"detail": BadCredentials.code})
        return await request_validation_exception_handler(request, exc)

    @app.exception_handler(DeviceUnavailable)
    def _device_unavailable(request: Request, exc: DeviceUnavailable) -> JSONResponse:
        return JSONResponse(status_code=503, content={"detail": DeviceUnavailable.code})

    @app.exception_handler(PersistenceError)
    def _persistence_error(request: Request, exc: PersistenceError) -> JSONResponse:
        _debug(f"Persistence error on {request.method} {request.url.path}")
        return JSONResponse(status_code=500, content={"detail": "internal_error"})

    # -----------------------------
    # Health
    # -----------------------------

    @app.get("/health")
    def health() -> Dict[str, Any]:
        return {"status": "ok"}

    # -----------------------------
    # User
    # -----------------------------

    @app.post("/user/login")
    def user_login(payload: LoginRequest, response: Response) -> Dict[str, Any]:
        with _connect() as conn:
            token = login(conn, payload.Email, payload.Password, token_bytes=cfg.TOKEN_BYTES)
        response.headers[AUTH_HEADER] = token
        return {"ok": True}

    @app.post("/user/one-time-pin")
    def user_new_one_time_pin(user: User = Depends(get_current_user)) -> Dict[str, Any]:
        with _connect() as conn:
            pin = new_one_time_pin(conn, user, pin_bytes=cfg.PIN_BYTES)
        return {"pin": pin}

    @app.get("/user/one-time-pin/{pin}", response_class=HTMLResponse)
    def user_one_time_pin_page(pin: str) -> HTMLResponse:
        # Rendering the form does not consume or even look up the pin.
        return HTMLResponse(_PIN_PAGE.format(pin=html.escape(pin, quote=True)))

    @app.put("/user/subscription")
    def user_subscription(
        payload: SubscriptionRequest,
        user: User = Depends(get_current_user),
    ) -> Dict[str, Any]:
        with _connect() as conn:
            set_subscribed(conn, user.email, payload.Subscribed)
        return {"email": user.email, "subscribed": payload.Subscribed}

    @app.get("/user/me")
    def user_me(user: User = Depends(get_current_user)) -> Dict[str, Any]:
        return {"user": user.public()}

    # -----------------------------
    # Garage
    # -----------------------------

    @app.post("/garage/one-time-pin/{pin}", status_code=202)
    def garage_one_time_pin(pin: str) -> Dict[str, Any]:
        # The pin is consumed in its own committed transaction before the relay
        # is touched: a failed pulse still burns the pin.
        with _connect() as conn:
            email = redeem_one_time_pin(conn, pin)
        _debug(f"One-time pin issued by {email} redeemed, toggling")
        app.state.toggler.toggle()
        return {"status": "accepted"}

    @app.post("/garage/toggle", status_code=202)
    def garage_toggle(user: User = Depends(get_current_user)) -> Dict[str, Any]:
        _debug(f"Toggle requested by {user.email}")
        app.state.toggler.toggle()
        return {"status": "accepted"}

    @app.get("/garage/state")
    def garage_state(user: User = Depends(get_current_user)) -> Dict[str, Any]:
        return {"state": app.state.toggler.state()}

    return app


def get_app() -> FastAPI:
    """uvicorn factory entry point (``--factory``)."""
    return create_app(load_config())
