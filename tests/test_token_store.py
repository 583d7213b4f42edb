# Tests for auth/token_store.py
# Created: 2026-10-18

import json
import stat
import time
from pathlib import Path
from unittest.mock import patch

import pytest

from ytup.auth.token_store import OAuthToken, TokenStore


class TestOAuthToken:
    def test_defaults(self):
        t = OAuthToken(access_token="a")
        assert t.refresh_token is None
        assert t.token_type == "Bearer"
        assert t.expires_at is None

    def test_no_expiry_is_usable(self):
        assert OAuthToken(access_token="a").is_usable()

    def test_future_expiry_is_usable(self):
        assert OAuthToken(access_token="a", expires_at=time.time() + 3600).is_usable()

    def test_past_expiry_not_usable(self):
        t = OAuthToken(access_token="a", expires_at=time.time() - 3600)
        assert t.is_expired()
        assert not t.is_usable()

    def test_expiring_within_leeway_not_usable(self):
        assert not OAuthToken(access_token="a", expires_at=time.time() + 10).is_usable()

    def test_empty_access_token_not_usable(self):
        assert not OAuthToken(access_token="").is_usable()

    def test_from_response(self):
        before = time.time()
        t = OAuthToken.from_response(
            {"access_token": "tok1", "refresh_token": "r1", "expires_in": 3600}
        )
        assert t.access_token == "tok1"
        assert t.refresh_token == "r1"
        assert before + 3600 <= t.expires_at <= time.time() + 3600

    def test_from_response_without_expiry(self):
        t = OAuthToken.from_response({"access_token": "tok1"})
        assert t.expires_at is None
        assert t.refresh_token is None

    def test_from_response_keeps_previous_refresh_token(self):
        old = OAuthToken(access_token="old", refresh_token="keep-me")
        t = OAuthToken.from_response({"access_token": "new", "expires_in": 60}, previous=old)
        assert t.refresh_token == "keep-me"


class TestTokenStore:
    def test_save_and_load(self, store):
        expires = time.time() + 3600
        store.save(OAuthToken(access_token="access123", refresh_token="refresh456", expires_at=expires))

        loaded = store.load()
        assert loaded is not None
        assert loaded.access_token == "access123"
        assert loaded.refresh_token == "refresh456"
        assert loaded.expires_at == pytest.approx(expires)

    def test_load_missing_file(self, store):
        assert store.load() is None

    def test_load_malformed_json(self, store):
        store.path.parent.mkdir(parents=True)
        store.path.write_text("{not json")
        assert store.load() is None

    def test_load_wrong_shape(self, store):
        store.path.parent.mkdir(parents=True)
        store.path.write_text(json.dumps({"token": "x"}))
        assert store.load() is None

    def test_load_list_record(self, store):
        store.path.parent.mkdir(parents=True)
        store.path.write_text("[1, 2]")
        assert store.load() is None

    @pytest.mark.parametrize(
        "record",
        [
            {"access_token": "x", "expires_at": "soon"},
            {"access_token": "x", "expires_at": True},
            {"access_token": "x", "refresh_token": 42},
            {"access_token": "x", "token_type": None},
            {"access_token": ["x"]},
        ],
    )
    def test_load_wrong_field_types(self, store, record):
        store.path.parent.mkdir(parents=True)
        store.path.write_text(json.dumps(record))
        assert store.load() is None

    def test_load_integer_expiry(self, store):
        store.path.parent.mkdir(parents=True)
        store.path.write_text(json.dumps({"access_token": "x", "expires_at": 4102444800}))
        token = store.load()
        assert token.expires_at == 4102444800
        assert token.is_usable()

    def test_save_overwrites(self, store):
        store.save(OAuthToken(access_token="first"))
        store.save(OAuthToken(access_token="second"))
        assert store.load().access_token == "second"

    def test_file_permissions(self, store):
        store.save(OAuthToken(access_token="secret"))
        mode = store.path.stat().st_mode
        assert mode & stat.S_IRUSR
        assert mode & stat.S_IWUSR
        assert not (mode & stat.S_IRGRP)
        assert not (mode & stat.S_IROTH)

    def test_no_temp_file_left_behind(self, store):
        store.save(OAuthToken(access_token="x"))
        assert [p.name for p in store.path.parent.iterdir()] == ["oauth_token.json"]

    def test_failed_save_keeps_previous_token(self, store):
        store.save(OAuthToken(access_token="good"))

        with patch.object(Path, "replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                store.save(OAuthToken(access_token="lost"))

        assert store.load().access_token == "good"
        assert not store.path.with_name("oauth_token.json.tmp").exists()

    def test_delete(self, store):
        store.save(OAuthToken(access_token="x"))
        assert store.delete() is True
        assert store.load() is None

    def test_delete_missing(self, store):
        assert store.delete() is False

    def test_default_path_under_config_dir(self, isolated_config):
        assert TokenStore().path == isolated_config / "oauth_token.json"
