#!/usr/bin/env python3
"""
Cookie storage for the buyer session

Wraps a RequestsCookieJar so the HTTP transport captures Set-Cookie headers
straight into it, and adds load/persist for the configured file format.
"""
import json
import logging
import pickle
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from requests.cookies import RequestsCookieJar, create_cookie

from ..errors import ConfigError


def _cookie_to_dict(cookie) -> Dict:
    return {
        'name': cookie.name,
        'value': cookie.value,
        'domain': cookie.domain,
        'path': cookie.path,
        'expires': cookie.expires,
        'secure': bool(cookie.secure),
    }


def _cookie_from_dict(data: Dict):
    return create_cookie(
        name=data['name'],
        value=data.get('value', ''),
        domain=data.get('domain', ''),
        path=data.get('path', '/'),
        expires=data.get('expires'),
        secure=bool(data.get('secure', False)),
    )


class SessionStore:
    """Named credential store backed by a cookie jar.

    ``jar_type`` selects the file format: ``memory`` never touches disk,
    ``json`` writes ``{"cookies": [...]}`` and ``pickle`` writes the list of
    cookie dicts with pickle. A missing file loads as an empty store.
    """

    def __init__(self, filename: Optional[str] = None, jar_type: str = "pickle"):
        self.logger = logging.getLogger(__name__)
        if not filename:
            jar_type = "memory"
        if jar_type not in ("memory", "json", "pickle"):
            raise ConfigError(f"jar type {jar_type!r} not implemented")

        self.path = Path(filename) if filename else None
        self.jar_type = jar_type
        self.jar = RequestsCookieJar()
        # same lock the jar takes while capturing Set-Cookie headers
        self._lock = self.jar._cookies_lock

    def load(self):
        """Replace the jar contents with what is stored on disk"""
        if self.jar_type == "memory":
            return

        if not self.path.exists():
            self.logger.debug(f"No cookie file at {self.path}, starting empty")
            return

        if self.jar_type == "json":
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            entries = data.get('cookies', []) if isinstance(data, dict) else data
        else:
            with open(self.path, 'rb') as f:
                entries = pickle.load(f)

        self.clean()
        self.set_cookies(_cookie_from_dict(entry) for entry in entries)
        self.logger.info(f"Loaded {len(self.jar)} cookies from {self.path}")

    def persist(self):
        """Write the jar to disk. An empty jar leaves the file untouched."""
        if self.jar_type == "memory":
            return

        entries = [_cookie_to_dict(c) for c in self.cookies()]
        if not entries:
            return

        self.path.parent.mkdir(parents=True, exist_ok=True)
        if self.jar_type == "json":
            with open(self.path, 'w', encoding='utf-8') as f:
                json.dump({'cookies': entries}, f, indent=4, ensure_ascii=False)
        else:
            with open(self.path, 'wb') as f:
                pickle.dump(entries, f)

        self.logger.info(f"Persisted {len(entries)} cookies to {self.path}")

    def clean(self):
        with self._lock:
            self.jar.clear()

    def get(self, name: str) -> str:
        """Value of the first cookie called ``name``, or an empty string"""
        for cookie in self.cookies():
            if cookie.name == name:
                return cookie.value
        return ""

    def set_cookies(self, cookies: Iterable):
        """Add cookies, replacing any existing cookie with the same name"""
        with self._lock:
            for cookie in cookies:
                for old in [c for c in self.jar if c.name == cookie.name]:
                    self.jar.clear(old.domain, old.path, old.name)
                self.jar.set_cookie(cookie)

    def cookies(self) -> List:
        with self._lock:
            return list(self.jar)

    def __len__(self):
        return len(self.cookies())
