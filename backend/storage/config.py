"""
Centralized storage configuration for token image uploads.

Intent:
    Provide a single source of truth for the storage root, the public base URL
    used to build upload locators, and upload limits. Prevents drift across
    modules and enables simple testing via environment overrides.

Behavior:
    - get_storage_root() reads FILE_STORAGE_PATH (default ./.tmp/files) and
      returns an absolute path.
    - get_public_url() reads PUBLIC_URL and strips trailing slashes.

Permissions:
    Pure configuration; no external calls or privileges required.
"""
from __future__ import annotations

import os


STORAGE_ROOT_DEFAULT = ".tmp/files"
PUBLIC_URL_DEFAULT = "http://localhost:3000"


def get_storage_root() -> str:
    """Return the absolute base directory for stored blobs.

    Env:
        FILE_STORAGE_PATH – optional override; otherwise STORAGE_ROOT_DEFAULT
        relative to the working directory.
    """
    raw = (os.getenv("FILE_STORAGE_PATH") or STORAGE_ROOT_DEFAULT).strip()
    return os.path.abspath(raw)


def get_public_url() -> str:
    """Return the browser-facing base URL without a trailing slash."""
    return (os.getenv("PUBLIC_URL") or PUBLIC_URL_DEFAULT).strip().rstrip("/")


__all__ = [
    "PUBLIC_URL_DEFAULT",
    "STORAGE_ROOT_DEFAULT",
    "get_public_url",
    "get_storage_root",
]

# --- Size limits and expiry ---------------------------------------------------

def _parse_int_env(name: str, default: int, *, contract_max: int | None = None, allow_zero: bool = False) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    if value < 0 or (value == 0 and not allow_zero):
        return default
    if isinstance(contract_max, int) and contract_max > 0:
        value = min(value, contract_max)
    return value


def get_max_upload_bytes() -> int:
    """Maximum size of a single token image upload (default/clamped 20 MiB)."""
    contract_max = 20 * 1024 * 1024
    return _parse_int_env("TOKEN_IMAGE_MAX_UPLOAD_BYTES", contract_max, contract_max=contract_max)


def get_upload_register_ttl_seconds() -> int:
    """Expiry window for pending upload registrations; 0 disables expiry."""
    return _parse_int_env(
        "TOKEN_IMAGE_UPLOAD_REGISTER_TTL_SECONDS",
        0,
        contract_max=7 * 24 * 60 * 60,
        allow_zero=True,
    )


__all__ += [
    "get_max_upload_bytes",
    "get_upload_register_ttl_seconds",
]
