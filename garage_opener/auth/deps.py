from __future__ import annotations

from typing import Optional

from fastapi import Header, HTTPException, Request

from garage_opener.db import connect
from garage_opener.errors import Unauthorized
from garage_opener.models import User

from .service import authenticate


AUTH_HEADER = "X-Auth-Token"


def get_current_user(
    request: Request,
    x_auth_token: Optional[str] = Header(default=None, alias=AUTH_HEADER),
) -> User:
    """Authenticate a request from its X-Auth-Token header.

    Missing, empty and unknown tokens all raise Unauthorized, which the app
    renders as the same 401 response.
    """

    cfg = getattr(request.app.state, "cfg", None)
    if cfg is None:
        raise HTTPException(status_code=500, detail="server_config_missing")

    token = (x_auth_token or "").strip()
    if not token:
        raise Unauthorized()

    with connect(cfg.DB_PATH, timeout=cfg.DB_TIMEOUT_SECONDS) as conn:
        return authenticate(conn, token)
