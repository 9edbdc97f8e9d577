"""
Identity domain constants and simple helpers.

Why:
- Centralize viewer roles to avoid drift between the guard and the web layer.
- A caller without a session is modelled as an explicit role, not as `None`.
"""

from __future__ import annotations

ROLE_UNAUTHENTICATED = "unauthenticated"
ROLE_USER = "user"
ROLE_ADMIN = "admin"

# Keep roles minimal and explicit. Immutable to prevent accidental mutation.
ALLOWED_ROLES = frozenset({ROLE_UNAUTHENTICATED, ROLE_USER, ROLE_ADMIN})


def normalize_role(value: str | None) -> str:
    """Return a known role for `value`; unknown or empty maps to unauthenticated."""
    role = (value or "").strip().lower()
    return role if role in ALLOWED_ROLES else ROLE_UNAUTHENTICATED


__all__ = ["ALLOWED_ROLES", "ROLE_ADMIN", "ROLE_UNAUTHENTICATED", "ROLE_USER", "normalize_role"]
