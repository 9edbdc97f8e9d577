"""
Helpers to build content-addressed storage keys for token images.

Conventions:
    - Token images: token-image/{sha256}.{ext}
    - The same key shape forms both the on-disk path beneath the storage root
      and the public upload locator under `/files/`.

Security:
    - Hashes must match [A-Za-z0-9][A-Za-z0-9_-]* (no dots, no separators), so a
      key can never traverse out of its prefix directory.
    - Extensions are lowercased, a single leading dot is dropped, and only
      1-16 alphanumeric characters are accepted.
"""
from __future__ import annotations

import re

TOKEN_IMAGE_PREFIX = "token-image"

_HASH_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]{0,127}$")
_EXT_RE = re.compile(r"^[a-z0-9]{1,16}$")


def validate_content_hash(value: str) -> str:
    sha = (value or "").strip()
    if not _HASH_RE.fullmatch(sha):
        raise ValueError("invalid_sha256")
    return sha


def validate_extension(value: str) -> str:
    ext = (value or "").strip().lower()
    if ext.startswith("."):
        ext = ext[1:]
    if not _EXT_RE.fullmatch(ext):
        raise ValueError("invalid_extension")
    return ext


def make_token_image_filename(sha256: str, extension: str) -> str:
    return f"{validate_content_hash(sha256)}.{validate_extension(extension)}"


def make_token_image_key(sha256: str, extension: str) -> str:
    """Build the storage key for a token image.

    Returns: token-image/{sha256}.{ext}
    """
    return f"{TOKEN_IMAGE_PREFIX}/{make_token_image_filename(sha256, extension)}"


def split_token_image_filename(filename: str) -> tuple[str, str]:
    """Split `{sha256}.{ext}` into its validated parts.

    Used by the upload endpoint, whose path carries the filename from the
    locator.
    """
    sha, sep, ext = (filename or "").rpartition(".")
    if not sep:
        raise ValueError("invalid_filename")
    return validate_content_hash(sha), validate_extension(ext)


def make_upload_url(public_url: str, sha256: str, extension: str) -> str:
    return f"{public_url.rstrip('/')}/files/{make_token_image_key(sha256, extension)}"


__all__ = [
    "TOKEN_IMAGE_PREFIX",
    "make_token_image_filename",
    "make_token_image_key",
    "make_upload_url",
    "split_token_image_filename",
    "validate_content_hash",
    "validate_extension",
]
