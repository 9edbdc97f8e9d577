"""Token image API routes.

Thin HTTP adapter over `TokenImageService`: parse input, call the service with
the viewer role resolved by the session middleware, map errors to JSON.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from backend.identity_access.domain import ROLE_UNAUTHENTICATED, normalize_role
from backend.storage.config import get_max_upload_bytes, get_storage_root
from backend.storage.keys import split_token_image_filename
from backend.storage.local_files import LocalBlobStorage
from backend.token_images.errors import InsufficientPermission, UploadIOError, UploadNotRequested, UploadTooLarge
from backend.token_images.repo_db import build_default_catalog
from backend.token_images.service import TokenImageService

logger = logging.getLogger("tokenvault.web")

token_images_router = APIRouter(tags=["TokenImages"])

SERVICE: Optional[TokenImageService] = None


def _build_default_service() -> TokenImageService:
    storage = LocalBlobStorage(get_storage_root(), max_bytes=get_max_upload_bytes())
    return TokenImageService(catalog=build_default_catalog(), storage=storage)


def set_service(service: Optional[TokenImageService]) -> None:
    """Allow tests or startup code to provide a configured service (None resets)."""
    global SERVICE
    SERVICE = service


def _get_service() -> TokenImageService:
    global SERVICE
    if SERVICE is None:
        SERVICE = _build_default_service()
    return SERVICE


def _cache_headers_error() -> dict[str, str]:
    return {"Cache-Control": "private, no-store"}


def _error(payload: dict, status_code: int) -> JSONResponse:
    return JSONResponse(payload, status_code=status_code, headers=_cache_headers_error())


def _role(request: Request) -> str:
    return normalize_role(getattr(request.state, "role", ROLE_UNAUTHENTICATED))


def _permission_error(role: str) -> JSONResponse:
    if role == ROLE_UNAUTHENTICATED:
        return _error({"error": "unauthenticated"}, status_code=401)
    return _error({"error": "forbidden"}, status_code=403)


class UploadRequestPayload(BaseModel):
    sha256: str = Field(..., min_length=1, max_length=128)
    extension: str = Field(..., min_length=1, max_length=17)


class CreateTokenImagePayload(BaseModel):
    sha256: str = Field(..., min_length=1, max_length=128)


@token_images_router.post("/api/token-images/upload-requests")
async def request_token_image_upload(request: Request, payload: UploadRequestPayload):
    """Ask for an upload URL, or learn that the content is already stored.

    Responses:
        200 {"type": "Url", "uploadUrl": ...} or {"type": "Duplicate", "tokenImage": {...}}
        400 invalid sha256/extension, 401/403 when the caller is not an admin.
    """
    role = _role(request)
    try:
        result = await _get_service().request_upload(role=role, sha256=payload.sha256, extension=payload.extension)
    except InsufficientPermission:
        return _permission_error(role)
    except ValueError as exc:
        return _error({"error": "bad_request", "detail": str(exc)}, status_code=400)
    return JSONResponse(result.to_dict(), headers={"Cache-Control": "private, no-store"})


@token_images_router.put("/files/token-image/{filename}")
async def upload_token_image(request: Request, filename: str):
    """Receive the raw bytes for a previously requested upload.

    The path is the locator returned by the upload request. The body is
    streamed to storage without buffering it in memory.
    """
    try:
        sha256, extension = split_token_image_filename(filename)
    except ValueError as exc:
        return _error({"error": "bad_request", "detail": str(exc)}, status_code=400)
    try:
        await _get_service().store_upload(sha256=sha256, extension=extension, chunks=request.stream())
    except UploadNotRequested:
        return _error({"error": "upload_not_requested"}, status_code=403)
    except UploadTooLarge:
        return _error({"error": "payload_too_large", "detail": UploadTooLarge.code}, status_code=413)
    except UploadIOError:
        return _error({"error": "storage_error"}, status_code=500)
    except ValueError as exc:
        return _error({"error": "bad_request", "detail": str(exc)}, status_code=400)
    return Response(status_code=204)


@token_images_router.post("/api/token-images")
async def create_token_image(request: Request, payload: CreateTokenImagePayload):
    """Finalize an upload: {"type": "Success", "tokenImageId": n} or {"type": "Failure"}."""
    role = _role(request)
    try:
        result = await _get_service().create_token_image(role=role, sha256=payload.sha256)
    except InsufficientPermission:
        return _permission_error(role)
    return JSONResponse(result.to_dict(), headers={"Cache-Control": "private, no-store"})


@token_images_router.get("/api/token-images/{token_image_id}")
async def get_token_image(request: Request, token_image_id: str):
    role = _role(request)
    try:
        record = await _get_service().get_token_image_by_id(role=role, token_image_id=token_image_id)
    except InsufficientPermission:
        return _permission_error(role)
    if record is None:
        return _error({"error": "not_found"}, status_code=404)
    return JSONResponse(record.to_dict(), headers={"Cache-Control": "private, no-store"})


__all__ = ["set_service", "token_images_router"]
