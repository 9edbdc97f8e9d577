"""Token image catalog contract and the in-memory implementation."""
from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Protocol

from backend.token_images.errors import DuplicateTokenImage


@dataclass(frozen=True, slots=True)
class TokenImageRecord:
    id: int
    sha256: str
    extension: str
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "sha256": self.sha256,
            "extension": self.extension,
            "createdAt": self.created_at.isoformat(),
        }


class TokenImageCatalogProtocol(Protocol):
    """Durable store of committed token images.

    `insert` must enforce one row per sha256 and raise `DuplicateTokenImage`
    when the hash is already present.
    """

    def find_by_sha256(self, sha256: str) -> Optional[TokenImageRecord]: ...

    def find_by_id(self, token_image_id: int) -> Optional[TokenImageRecord]: ...

    def insert(self, *, sha256: str, extension: str) -> int: ...


class InMemoryTokenImageCatalog:
    """Process-local catalog used in development and tests."""

    def __init__(self) -> None:
        self._by_id: Dict[int, TokenImageRecord] = {}
        self._id_by_sha: Dict[str, int] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def find_by_sha256(self, sha256: str) -> Optional[TokenImageRecord]:
        with self._lock:
            token_image_id = self._id_by_sha.get(sha256)
            return self._by_id.get(token_image_id) if token_image_id is not None else None

    def find_by_id(self, token_image_id: int) -> Optional[TokenImageRecord]:
        with self._lock:
            return self._by_id.get(token_image_id)

    def insert(self, *, sha256: str, extension: str) -> int:
        with self._lock:
            if sha256 in self._id_by_sha:
                raise DuplicateTokenImage(sha256)
            token_image_id = self._next_id
            self._next_id += 1
            self._by_id[token_image_id] = TokenImageRecord(
                id=token_image_id,
                sha256=sha256,
                extension=extension,
                created_at=datetime.now(timezone.utc),
            )
            self._id_by_sha[sha256] = token_image_id
            return token_image_id


__all__ = ["InMemoryTokenImageCatalog", "TokenImageCatalogProtocol", "TokenImageRecord"]
