"""Storage configuration: env overrides, defaults and clamping."""
from __future__ import annotations

import os

import pytest

from backend.storage import config


def test_storage_root_is_absolute(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("FILE_STORAGE_PATH", "relative/files")
    root = config.get_storage_root()
    assert os.path.isabs(root)
    assert root.endswith(os.path.join("relative", "files"))


def test_storage_root_default(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("FILE_STORAGE_PATH", raising=False)
    assert config.get_storage_root() == os.path.abspath(config.STORAGE_ROOT_DEFAULT)


def test_public_url_strips_trailing_slash(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("PUBLIC_URL", "https://vault.example/ ")
    assert config.get_public_url() == "https://vault.example"
    monkeypatch.delenv("PUBLIC_URL")
    assert config.get_public_url() == config.PUBLIC_URL_DEFAULT


@pytest.mark.parametrize(
    "raw,expected",
    [("", 20 * 1024 * 1024), ("abc", 20 * 1024 * 1024), ("-1", 20 * 1024 * 1024), ("1024", 1024), ("999999999", 20 * 1024 * 1024)],
)
def test_max_upload_bytes_clamped(monkeypatch: pytest.MonkeyPatch, raw, expected):
    monkeypatch.setenv("TOKEN_IMAGE_MAX_UPLOAD_BYTES", raw)
    assert config.get_max_upload_bytes() == expected


def test_register_ttl_defaults_to_disabled(monkeypatch: pytest.MonkeyPatch):
    assert config.get_upload_register_ttl_seconds() == 0
    monkeypatch.setenv("TOKEN_IMAGE_UPLOAD_REGISTER_TTL_SECONDS", "3600")
    assert config.get_upload_register_ttl_seconds() == 3600
    monkeypatch.setenv("TOKEN_IMAGE_UPLOAD_REGISTER_TTL_SECONDS", "0")
    assert config.get_upload_register_ttl_seconds() == 0
