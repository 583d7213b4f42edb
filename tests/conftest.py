# Shared fixtures for ytup tests.

from __future__ import annotations

import os
import socket

import pytest

from ytup.auth.token_store import TokenStore
from ytup.config import get_settings


def port_is_free(port: int, host: str = "127.0.0.1") -> bool:
    """True if a fresh listener could bind host:port right now."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            s.bind((host, port))
        except OSError:
            return False
    return True


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point ytup at a throwaway config dir and clear YTUP_* env vars."""
    for key in list(os.environ):
        if key.startswith("YTUP_"):
            monkeypatch.delenv(key)
    config_dir = tmp_path / "ytup-home"
    monkeypatch.setenv("YTUP_CONFIG_DIR", str(config_dir))
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield config_dir
    get_settings.cache_clear()


@pytest.fixture
def store(tmp_path):
    return TokenStore(tmp_path / "cache" / "oauth_token.json")


@pytest.fixture
def port_free():
    return port_is_free
