"""
Storage ports used by the token image service.

Keep these small and framework-agnostic so tests can supply simple fakes.
"""
from __future__ import annotations

from typing import AsyncIterable, Protocol


class BlobStorageProtocol(Protocol):
    """Minimal interface to persist and probe content-addressed blobs.

    Intent:
        Let the service write uploads and verify their presence without
        depending on a specific filesystem or cloud SDK.

    Permissions:
        Implementations must keep keys beneath their configured root; callers
        are responsible for authorizing the write.
    """

    async def write_stream(self, key: str, chunks: AsyncIterable[bytes]) -> int: ...

    async def exists(self, key: str) -> bool: ...


__all__ = ["BlobStorageProtocol"]
