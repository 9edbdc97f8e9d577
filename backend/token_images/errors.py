"""Error types raised by the token image upload flow.

Each error subclasses the builtin family callers already handle
(`PermissionError`, `OSError`, ...) and carries a short machine-readable code
as its message so adapters can map it without string parsing.
"""
from __future__ import annotations


class InsufficientPermission(PermissionError):
    """Caller's role does not grant the capability an operation requires."""

    code = "insufficient_permissions"

    def __init__(self, capability: str, role: str) -> None:
        super().__init__(self.code)
        self.capability = capability
        self.role = role


class UploadNotRequested(PermissionError):
    """Bytes were sent for a hash that has no pending upload registration."""

    code = "upload_not_requested"

    def __init__(self, sha256: str) -> None:
        super().__init__(self.code)
        self.sha256 = sha256


class UploadIOError(OSError):
    """Reading the upload stream or writing the blob failed.

    The original exception is kept as `__cause__`.
    """

    code = "storage_io_error"


class UploadTooLarge(ValueError):
    code = "size_exceeded"

    def __init__(self, limit: int) -> None:
        super().__init__(self.code)
        self.limit = limit


class DuplicateTokenImage(LookupError):
    """The catalog already holds a token image for this hash."""

    code = "duplicate_sha256"

    def __init__(self, sha256: str) -> None:
        super().__init__(self.code)
        self.sha256 = sha256


__all__ = [
    "DuplicateTokenImage",
    "InsufficientPermission",
    "UploadIOError",
    "UploadNotRequested",
    "UploadTooLarge",
]
