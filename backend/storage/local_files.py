"""
Filesystem-backed blob storage for content-addressed uploads.

Intent:
    Persist an incoming byte stream beneath a configured root and answer
    "is the blob there?" for the finalize step.

Behavior:
    - Bytes are streamed into a hidden sibling `.part` file which is renamed
      over the target only after every chunk was written and the handle was
      closed. The target path therefore only ever holds a complete upload, and
      re-running a write for the same key replaces it.
    - Any error from the source stream or the filesystem is raised as
      `UploadIOError` with the original exception chained; the temporary file
      is removed before the error propagates.

Security:
    Keys are resolved beneath the root; anything escaping it is rejected with
    ValueError("path_escape").
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import AsyncIterable
from uuid import uuid4

import anyio

from backend.token_images.errors import UploadIOError, UploadTooLarge

_log = logging.getLogger("tokenvault.storage")


class LocalBlobStorage:
    def __init__(self, root: str, *, max_bytes: int | None = None) -> None:
        self._root = Path(root)
        self._max_bytes = max_bytes

    def resolve(self, key: str) -> Path:
        base = self._root.resolve()
        target = (base / key).resolve()
        try:
            common = os.path.commonpath([str(base), str(target)])
        except ValueError:
            raise ValueError("path_error") from None
        if common != str(base) or target == base:
            raise ValueError("path_escape")
        return target

    async def _copy(self, tmp: Path, chunks: AsyncIterable[bytes]) -> int:
        total = 0
        async with await anyio.open_file(tmp, "wb") as fh:
            async for chunk in chunks:
                if not chunk:
                    continue
                total += len(chunk)
                if self._max_bytes and total > self._max_bytes:
                    raise UploadTooLarge(self._max_bytes)
                await fh.write(chunk)
        return total

    async def write_stream(self, key: str, chunks: AsyncIterable[bytes]) -> int:
        """Stream `chunks` to `key` and return the number of bytes written."""
        target = self.resolve(key)
        tmp = target.with_name(f".{target.name}.{uuid4().hex}.part")
        total = 0
        try:
            try:
                await anyio.Path(target.parent).mkdir(parents=True, exist_ok=True)
                total = await self._copy(tmp, chunks)
                if total > 0:
                    await anyio.Path(tmp).replace(target)
            except UploadTooLarge:
                raise
            except Exception as exc:
                _log.warning("Blob write failed key=%s: %s", key, exc.__class__.__name__)
                raise UploadIOError(UploadIOError.code) from exc
        finally:
            with anyio.CancelScope(shield=True):
                await anyio.Path(tmp).unlink(missing_ok=True)
        if total == 0:
            raise ValueError("empty_body")
        _log.debug("Stored blob key=%s size=%s", key, total)
        return total

    async def exists(self, key: str) -> bool:
        return await anyio.Path(self.resolve(key)).is_file()


__all__ = ["LocalBlobStorage"]
