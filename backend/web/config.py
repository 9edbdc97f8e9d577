"""
Configuration and startup security checks for the token image vault.

Why: Upload locators are handed to browsers and blobs land on disk, so a
production deployment must not silently fall back to development defaults.
This module provides a single guard that enforces minimal production safety
constraints without burdening local development.

Permissions: The caller needs no special privileges. The function simply reads
environment variables and raises `SystemExit` on fatal misconfiguration.
"""
from __future__ import annotations

import os
from urllib.parse import urlparse


def _is_prod_like(env: str) -> bool:
    env_l = (env or "").lower()
    return env_l in {"prod", "production", "stage", "staging"}


def ensure_secure_config_on_startup() -> None:
    """Fail fast on insecure production configuration.

    Checks (prod-like environments only):
    - PUBLIC_URL must be set and use https; upload URLs are built from it.
    - FILE_STORAGE_PATH must be set explicitly instead of the working-directory
      default.
    - DATABASE_URL / TOKEN_IMAGES_DATABASE_URL must not disable TLS.
    """

    env = os.getenv("TOKENVAULT_ENV", "dev")
    if not _is_prod_like(env):
        return  # dev/test remain permissive

    public_url = (os.getenv("PUBLIC_URL") or "").strip()
    parsed = urlparse(public_url)
    if not public_url or parsed.scheme != "https" or not parsed.hostname:
        raise SystemExit("Refusing to start: PUBLIC_URL must be an https URL in production.")

    if not (os.getenv("FILE_STORAGE_PATH") or "").strip():
        raise SystemExit("Refusing to start: FILE_STORAGE_PATH is unset in production.")

    for key in ("DATABASE_URL", "TOKEN_IMAGES_DATABASE_URL"):
        if "sslmode=disable" in os.getenv(key, ""):
            raise SystemExit(
                f"Refusing to start: {key} contains sslmode=disable in production. Use sslmode=require or verify TLS."
            )
