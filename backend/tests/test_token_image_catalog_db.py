"""
Unit-style tests for DBTokenImageCatalog using a fake psycopg driver.

Rationale: Keep CI/self-contained runs green without a real Postgres.
We simulate the subset of psycopg used by the catalog (connect, cursor,
errors.UniqueViolation) to validate SQL flow, row mapping and the mapping of
unique violations to DuplicateTokenImage.
"""

from __future__ import annotations

import types
from datetime import datetime, timezone

import pytest

from backend.token_images import repo_db as mod
from backend.token_images.catalog import InMemoryTokenImageCatalog
from backend.token_images.errors import DuplicateTokenImage


class _FakeUniqueViolation(Exception):
    pass


class _FakeCursor:
    def __init__(self, db: dict):
        self._db = db
        self._row = None

    def execute(self, sql: str, params: tuple | list = ()):
        self._db["statements"].append(sql)
        sql_low = sql.lower().strip()
        rows = self._db["rows"]
        if sql_low.startswith("create table"):
            self._row = None
        elif sql_low.startswith("insert into"):
            sha256, extension = params
            if any(r[1] == sha256 for r in rows):
                raise _FakeUniqueViolation("duplicate key value violates unique constraint")
            row = (len(rows) + 1, sha256, extension, datetime(2024, 1, 1, 12, 0))
            rows.append(row)
            self._row = (row[0],)
        elif sql_low.startswith("select") and "where sha256 = %s" in sql_low:
            self._row = next((r for r in rows if r[1] == params[0]), None)
        elif sql_low.startswith("select") and "where id = %s" in sql_low:
            self._row = next((r for r in rows if r[0] == params[0]), None)
        else:
            raise AssertionError(f"Unexpected SQL: {sql}")

    def fetchone(self):
        return self._row

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


class _FakeConn:
    def __init__(self, db: dict):
        self._db = db

    def cursor(self):
        return _FakeCursor(self._db)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


def _install_fake_psycopg(monkeypatch: pytest.MonkeyPatch) -> dict:
    db: dict = {"rows": [], "statements": []}

    def fake_connect(dsn: str, autocommit: bool | None = None):  # signature-compatible
        return _FakeConn(db)

    fake_psycopg = types.SimpleNamespace(
        connect=fake_connect,
        errors=types.SimpleNamespace(UniqueViolation=_FakeUniqueViolation),
    )
    monkeypatch.setattr(mod, "HAVE_PSYCOPG", True, raising=False)
    monkeypatch.setattr(mod, "psycopg", fake_psycopg, raising=False)
    return db


def test_insert_and_lookup_roundtrip(monkeypatch: pytest.MonkeyPatch):
    _install_fake_psycopg(monkeypatch)
    catalog = mod.DBTokenImageCatalog(dsn="fake://dsn")

    new_id = catalog.insert(sha256="abc123", extension="png")

    by_hash = catalog.find_by_sha256("abc123")
    by_id = catalog.find_by_id(new_id)
    assert by_hash is not None and by_hash == by_id
    assert by_hash.id == new_id
    assert by_hash.extension == "png"
    # Naive timestamps from the driver are treated as UTC.
    assert by_hash.created_at.tzinfo == timezone.utc
    assert catalog.find_by_sha256("missing") is None


def test_unique_violation_maps_to_duplicate(monkeypatch: pytest.MonkeyPatch):
    _install_fake_psycopg(monkeypatch)
    catalog = mod.DBTokenImageCatalog(dsn="fake://dsn")
    catalog.insert(sha256="abc123", extension="png")

    with pytest.raises(DuplicateTokenImage) as excinfo:
        catalog.insert(sha256="abc123", extension="jpg")

    assert excinfo.value.sha256 == "abc123"
    assert isinstance(excinfo.value.__cause__, _FakeUniqueViolation)


def test_ensure_schema_declares_unique_hash(monkeypatch: pytest.MonkeyPatch):
    db = _install_fake_psycopg(monkeypatch)
    catalog = mod.DBTokenImageCatalog(dsn="fake://dsn", table="vault.token_images")

    catalog.ensure_schema()

    ddl = db["statements"][-1].lower()
    assert "create table if not exists vault.token_images" in ddl
    assert "sha256 text not null unique" in ddl


def test_invalid_table_name_is_rejected(monkeypatch: pytest.MonkeyPatch):
    _install_fake_psycopg(monkeypatch)
    with pytest.raises(ValueError):
        mod.DBTokenImageCatalog(dsn="fake://dsn", table="token_images; drop table x")


def test_missing_dsn_is_an_error(monkeypatch: pytest.MonkeyPatch):
    _install_fake_psycopg(monkeypatch)
    with pytest.raises(RuntimeError):
        mod.DBTokenImageCatalog()


def test_build_default_catalog_falls_back_to_memory_without_dsn():
    assert isinstance(mod.build_default_catalog(), InMemoryTokenImageCatalog)


def test_build_default_catalog_prefers_db_when_configured(monkeypatch: pytest.MonkeyPatch):
    _install_fake_psycopg(monkeypatch)
    monkeypatch.setenv("TOKEN_IMAGES_DATABASE_URL", "fake://dsn")
    assert isinstance(mod.build_default_catalog(), mod.DBTokenImageCatalog)
