"""Token image upload service.

Coordinates the three-step upload handshake:

1. `request_upload` (admin): dedup against the catalog, otherwise register a
   pending upload and hand out a content-addressed upload URL.
2. `store_upload` (no role; gated by the register): stream bytes to storage.
3. `create_token_image` (admin): promote a registered upload whose blob is
   present on storage into a catalog row.

Capability checks run first in every gated operation, before any lookup or
mutation. Catalog calls are synchronous adapters and run in a worker thread.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import partial
from typing import Any, AsyncIterable, Dict, Literal, Optional, Union

import anyio

from backend.identity_access.guard import Capability, require_role
from backend.storage.config import get_public_url, get_upload_register_ttl_seconds
from backend.storage.keys import make_token_image_key, make_upload_url, validate_content_hash, validate_extension
from backend.storage.ports import BlobStorageProtocol
from backend.token_images.catalog import TokenImageCatalogProtocol, TokenImageRecord
from backend.token_images.errors import DuplicateTokenImage, UploadNotRequested
from backend.token_images.registry import UploadRegister

logger = logging.getLogger("tokenvault.token_images")

# Catalog ids are Postgres bigserial values.
_MAX_TOKEN_IMAGE_ID = 2**63 - 1
_MAX_ID_DIGITS = len(str(_MAX_TOKEN_IMAGE_ID))


@dataclass(frozen=True)
class RequestUploadDuplicate:
    token_image: TokenImageRecord
    type: Literal["Duplicate"] = "Duplicate"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "tokenImage": self.token_image.to_dict()}


@dataclass(frozen=True)
class RequestUploadUrl:
    upload_url: str
    type: Literal["Url"] = "Url"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "uploadUrl": self.upload_url}


@dataclass(frozen=True)
class CreateTokenImageSuccess:
    token_image_id: int
    type: Literal["Success"] = "Success"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "tokenImageId": self.token_image_id}


@dataclass(frozen=True)
class CreateTokenImageFailure:
    type: Literal["Failure"] = "Failure"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type}


RequestUploadResult = Union[RequestUploadDuplicate, RequestUploadUrl]
CreateTokenImageResult = Union[CreateTokenImageSuccess, CreateTokenImageFailure]


@dataclass
class TokenImageSettings:
    """Configuration for token image uploads."""

    public_url: str = field(default_factory=get_public_url)
    upload_register_ttl_seconds: int = field(default_factory=get_upload_register_ttl_seconds)


@dataclass
class TokenImageService:
    """Encapsulate token image use cases independent of web adapters."""

    catalog: TokenImageCatalogProtocol
    storage: BlobStorageProtocol
    register: UploadRegister = field(default_factory=UploadRegister)
    settings: TokenImageSettings = field(default_factory=TokenImageSettings)

    async def get_token_image_by_sha256(self, sha256: str) -> Optional[TokenImageRecord]:
        return await anyio.to_thread.run_sync(self.catalog.find_by_sha256, sha256)

    async def get_token_image_by_id(self, *, role: str, token_image_id: str) -> Optional[TokenImageRecord]:
        """Return the catalog entry for a numeric id (authenticated callers only).

        Ids that are not ASCII digits or exceed the bigint range cannot exist in
        the catalog and yield None.
        """
        require_role(Capability.AUTHENTICATED, role)
        raw = str(token_image_id or "").strip()
        if not (raw.isascii() and raw.isdigit()) or len(raw) > _MAX_ID_DIGITS:
            return None
        value = int(raw)
        if value > _MAX_TOKEN_IMAGE_ID:
            return None
        return await anyio.to_thread.run_sync(self.catalog.find_by_id, value)

    async def request_upload(self, *, role: str, sha256: str, extension: str) -> RequestUploadResult:
        require_role(Capability.ADMIN, role)
        sha = validate_content_hash(sha256)
        ext = validate_extension(extension)
        existing = await self.get_token_image_by_sha256(sha)
        if existing is not None:
            logger.info("Token image upload skipped; duplicate sha256=%s id=%s", sha, existing.id)
            return RequestUploadDuplicate(token_image=existing)
        ttl = self.settings.upload_register_ttl_seconds
        if ttl > 0:
            pruned = self.register.prune_older_than(ttl)
            if pruned:
                logger.info("Pruned %s expired pending uploads", pruned)
        record = self.register.register(sha, ext)
        # The stored extension wins over the one passed on a repeated request.
        upload_url = make_upload_url(self.settings.public_url, record.sha256, record.file_extension)
        logger.info("Token image upload requested sha256=%s ext=%s", record.sha256, record.file_extension)
        return RequestUploadUrl(upload_url=upload_url)

    async def store_upload(self, *, sha256: str, extension: str, chunks: AsyncIterable[bytes]) -> int:
        """Persist the upload stream for a registered hash; return bytes written.

        Raises:
            UploadNotRequested: no pending registration for `sha256`.
            UploadIOError: the stream or the filesystem failed; retry is safe.
            UploadTooLarge: the stream exceeded the configured byte limit.
        """
        sha = validate_content_hash(sha256)
        ext = validate_extension(extension)
        if sha not in self.register:
            logger.warning("Rejected token image upload without request sha256=%s", sha)
            raise UploadNotRequested(sha)
        size = await self.storage.write_stream(make_token_image_key(sha, ext), chunks)
        logger.info("Token image stored sha256=%s ext=%s size=%s", sha, ext, size)
        return size

    async def create_token_image(self, *, role: str, sha256: str) -> CreateTokenImageResult:
        require_role(Capability.ADMIN, role)
        record = self.register.get((sha256 or "").strip())
        if record is None:
            return CreateTokenImageFailure()
        key = make_token_image_key(record.sha256, record.file_extension)
        if not await self.storage.exists(key):
            logger.info("Token image not finalized; blob missing sha256=%s", record.sha256)
            return CreateTokenImageFailure()
        existing = await self.get_token_image_by_sha256(record.sha256)
        if existing is not None:
            self.register.mark_committed(record.sha256)
            return CreateTokenImageSuccess(token_image_id=existing.id)
        insert = partial(self.catalog.insert, sha256=record.sha256, extension=record.file_extension)
        try:
            token_image_id = await anyio.to_thread.run_sync(insert)
        except DuplicateTokenImage:
            # Lost a race against a concurrent finalize for the same hash.
            existing = await self.get_token_image_by_sha256(record.sha256)
            if existing is None:
                raise
            self.register.mark_committed(record.sha256)
            return CreateTokenImageSuccess(token_image_id=existing.id)
        self.register.mark_committed(record.sha256)
        logger.info("Token image created id=%s sha256=%s", token_image_id, record.sha256)
        return CreateTokenImageSuccess(token_image_id=token_image_id)


__all__ = [
    "CreateTokenImageFailure",
    "CreateTokenImageResult",
    "CreateTokenImageSuccess",
    "RequestUploadDuplicate",
    "RequestUploadResult",
    "RequestUploadUrl",
    "TokenImageService",
    "TokenImageSettings",
]
