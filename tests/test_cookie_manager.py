"""Tests for the cookie-backed session store."""

import json

import pytest
from requests.cookies import create_cookie

from rushbuy.errors import ConfigError
from rushbuy.session.cookie_manager import SessionStore


def _cookie(name, value, domain=".jd.com"):
    return create_cookie(name=name, value=value, domain=domain)


class TestSessionStore:

    def test_missing_file_loads_empty(self, tmp_path):
        store = SessionStore(str(tmp_path / "missing.cookies"), "pickle")
        store.load()
        assert store.cookies() == []

    def test_get_and_replace_by_name(self):
        store = SessionStore(None)
        store.set_cookies([_cookie("TrackID", "one"), _cookie("pin", "user")])
        store.set_cookies([_cookie("TrackID", "two", domain=".trade.jd.com")])

        assert store.get("TrackID") == "two"
        assert store.get("pin") == "user"
        assert store.get("nothing") == ""
        assert len(store) == 2

    def test_clean(self):
        store = SessionStore(None)
        store.set_cookies([_cookie("a", "1")])
        store.clean()
        assert len(store) == 0

    @pytest.mark.parametrize("jar_type", ["json", "pickle"])
    def test_persist_and_load(self, tmp_path, jar_type):
        path = tmp_path / f"jd.{jar_type}"
        store = SessionStore(str(path), jar_type)
        store.set_cookies([_cookie("TrackID", "abc"), _cookie("thor", "token")])
        store.persist()

        restored = SessionStore(str(path), jar_type)
        restored.load()
        assert restored.get("TrackID") == "abc"
        assert restored.get("thor") == "token"
        assert restored.cookies()[0].domain == ".jd.com"

    def test_json_layout(self, tmp_path):
        path = tmp_path / "jd.json"
        store = SessionStore(str(path), "json")
        store.set_cookies([_cookie("pin", "user")])
        store.persist()

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["cookies"][0]["name"] == "pin"
        assert data["cookies"][0]["value"] == "user"

    def test_empty_jar_does_not_overwrite(self, tmp_path):
        path = tmp_path / "jd.json"
        path.write_text('{"cookies": [{"name": "keep", "value": "me"}]}', encoding="utf-8")

        SessionStore(str(path), "json").persist()

        restored = SessionStore(str(path), "json")
        restored.load()
        assert restored.get("keep") == "me"

    def test_memory_store_never_writes(self, tmp_path):
        store = SessionStore(str(tmp_path / "jd.mem"), "memory")
        store.set_cookies([_cookie("a", "1")])
        store.persist()
        assert not (tmp_path / "jd.mem").exists()

    def test_no_filename_means_memory(self):
        assert SessionStore("", "json").jar_type == "memory"

    def test_unknown_format(self, tmp_path):
        with pytest.raises(ConfigError):
            SessionStore(str(tmp_path / "jd"), "gob")
