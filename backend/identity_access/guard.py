"""
Access guard for token image operations.

Intent:
    Evaluate a caller's role against the capability an operation requires.
    Operations call `require_role` as their first statement so a rejection
    always happens before any side effect.

Permissions:
    Pure decision function; no I/O, no state.
"""
from __future__ import annotations

from enum import Enum

from backend.identity_access.domain import ROLE_ADMIN, ROLE_UNAUTHENTICATED, normalize_role
from backend.token_images.errors import InsufficientPermission


class Capability(str, Enum):
    ADMIN = "admin"
    AUTHENTICATED = "authenticated"


def has_capability(capability: Capability, caller_role: str | None) -> bool:
    role = normalize_role(caller_role)
    if capability is Capability.ADMIN:
        return role == ROLE_ADMIN
    if capability is Capability.AUTHENTICATED:
        return role != ROLE_UNAUTHENTICATED
    return False


def require_role(capability: Capability, caller_role: str | None) -> None:
    """Raise `InsufficientPermission` unless `caller_role` grants `capability`."""
    if not has_capability(capability, caller_role):
        raise InsufficientPermission(capability.value, normalize_role(caller_role))


__all__ = ["Capability", "has_capability", "require_role"]
