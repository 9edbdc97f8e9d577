"""
Postgres-backed token image catalog (psycopg 3).

Why: Committed token images must survive restarts and be shared between
server instances. The table carries a unique constraint on `sha256`, which is
the backstop for two finalize calls racing on the same hash.

Note: psycopg is imported lazily so development setups without a database can
run on the in-memory catalog (see `build_default_catalog`).
"""
from __future__ import annotations

import logging
import os
import re
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

try:
    import psycopg
    HAVE_PSYCOPG = True
except Exception:  # pragma: no cover - optional dependency in dev
    psycopg = None  # type: ignore
    HAVE_PSYCOPG = False

from backend.token_images.catalog import InMemoryTokenImageCatalog, TokenImageCatalogProtocol, TokenImageRecord
from backend.token_images.errors import DuplicateTokenImage

logger = logging.getLogger("tokenvault.token_images")

_TABLE_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}(?:\.[A-Za-z_][A-Za-z0-9_]{0,62})?$")


def _dsn() -> str | None:
    """Resolve the DSN: TOKEN_IMAGES_DATABASE_URL first, then DATABASE_URL."""
    for name in ("TOKEN_IMAGES_DATABASE_URL", "DATABASE_URL"):
        value = (os.getenv(name) or "").strip()
        if value:
            return value
    return None


def _as_utc(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return datetime.fromisoformat(str(value))


def _row_to_record(row: Sequence[Any]) -> TokenImageRecord:
    return TokenImageRecord(id=int(row[0]), sha256=str(row[1]), extension=str(row[2]), created_at=_as_utc(row[3]))


class DBTokenImageCatalog:
    """Postgres catalog of committed token images.

    Parameters
    ----------
    dsn:
        Psycopg3 connection string; defaults to TOKEN_IMAGES_DATABASE_URL or
        DATABASE_URL.
    table:
        Table name, optionally schema-qualified. Defaults to `public.token_images`.
    """

    def __init__(self, dsn: str | None = None, table: str = "public.token_images") -> None:
        if not HAVE_PSYCOPG:
            raise RuntimeError("psycopg3 is required for DBTokenImageCatalog")
        self._dsn = dsn or _dsn()
        if not self._dsn:
            raise RuntimeError("No database DSN provided for DBTokenImageCatalog")
        # Identifier is interpolated into SQL below, so validate it up front.
        if not _TABLE_RE.match(table or ""):
            raise ValueError("Invalid table name")
        self._table = table

    def ensure_schema(self) -> None:
        with psycopg.connect(self._dsn, autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"create table if not exists {self._table} ("
                    "id bigserial primary key, "
                    "sha256 text not null unique, "
                    "extension text not null, "
                    "created_at timestamptz not null default now())"
                )

    def _select_one(self, where: str, params: tuple) -> Optional[TokenImageRecord]:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"select id, sha256, extension, created_at from {self._table} where {where}",
                    params,
                )
                row = cur.fetchone()
        return _row_to_record(row) if row else None

    def find_by_sha256(self, sha256: str) -> Optional[TokenImageRecord]:
        return self._select_one("sha256 = %s", (sha256,))

    def find_by_id(self, token_image_id: int) -> Optional[TokenImageRecord]:
        return self._select_one("id = %s", (int(token_image_id),))

    def insert(self, *, sha256: str, extension: str) -> int:
        try:
            with psycopg.connect(self._dsn, autocommit=True) as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        f"insert into {self._table} (sha256, extension) values (%s, %s) returning id",
                        (sha256, extension),
                    )
                    row = cur.fetchone()
        except psycopg.errors.UniqueViolation as exc:
            raise DuplicateTokenImage(sha256) from exc
        if not row:
            raise RuntimeError("token_image_insert_failed")
        return int(row[0])


def build_default_catalog() -> TokenImageCatalogProtocol:
    """Prefer the DB-backed catalog; fall back to in-memory if unavailable."""
    if not HAVE_PSYCOPG or not _dsn():
        logger.warning("Token image catalog: no database configured; using in-memory catalog")
        return InMemoryTokenImageCatalog()
    try:
        catalog = DBTokenImageCatalog()
        catalog.ensure_schema()
    except Exception as exc:  # pragma: no cover - exercised when DB unreachable
        logger.warning("Token image catalog unavailable (%s); using in-memory fallback", exc.__class__.__name__)
        return InMemoryTokenImageCatalog()
    return catalog


__all__ = ["DBTokenImageCatalog", "HAVE_PSYCOPG", "build_default_catalog"]
