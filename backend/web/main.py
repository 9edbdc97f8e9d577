"Token Image Vault"
from __future__ import annotations

import logging
import os
import sys

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from backend.identity_access.domain import ROLE_UNAUTHENTICATED
from backend.identity_access.stores import SessionStore
from backend.web import config as _cfg
from backend.web.routes.token_images import token_images_router


def _should_load_dotenv() -> bool:
    """Decide if we should load a local .env file.

    - Never load under pytest to avoid contaminating test env.
    - Allow explicit opt-out via TOKENVAULT_ENABLE_DOTENV (default true
      outside pytest).
    """
    if "pytest" in sys.modules or os.getenv("PYTEST_CURRENT_TEST"):
        return False
    flag = (os.getenv("TOKENVAULT_ENABLE_DOTENV", "true") or "").strip().lower()
    return flag in ("1", "true", "yes")


if _should_load_dotenv():
    from dotenv import load_dotenv

    load_dotenv()

# Minimal production safety checks (fail-fast on insecure config)
_cfg.ensure_secure_config_on_startup()

logger = logging.getLogger("tokenvault.web")
SESSION_COOKIE_NAME = "tokenvault_session"
SESSION_STORE = SessionStore()

app = FastAPI(title="Token Image Vault", description="Content-addressed token image uploads", version="0.1.0")
app.include_router(token_images_router)


# --- Session Middleware ---------------------------------------------------------

@app.middleware("http")
async def resolve_viewer_role(request: Request, call_next):
    """Expose the viewer role as `request.state.role` for downstream handlers.

    Requests without a valid session are not rejected here; each operation
    decides which capability it needs.
    """
    role = ROLE_UNAUTHENTICATED
    sid = request.cookies.get(SESSION_COOKIE_NAME)
    if sid:
        try:
            rec = SESSION_STORE.get(sid)
        except Exception as exc:
            logger.warning("Session store get failed: %s", exc.__class__.__name__)
            rec = None
        if rec:
            role = rec.role
    request.state.role = role
    return await call_next(request)


@app.get("/health")
async def health():
    return JSONResponse({"status": "healthy"}, headers={"Cache-Control": "no-store"})
