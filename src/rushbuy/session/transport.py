"""
Cookie-aware HTTP transport shared by every worker
"""
import logging
import time
from typing import Dict, Optional

import requests

from ..config import BuyerConfig
from ..errors import TransportError
from .cookie_manager import SessionStore


def timestamp_ms() -> str:
    """Millisecond timestamp used as a cache-buster by most endpoints"""
    return str(int(time.time() * 1000))


class HttpTransport:
    """requests.Session bound to the SessionStore jar.

    Every response's Set-Cookie headers land in the store's jar, so all
    tasks read and extend the same credential set. Content-Encoding (gzip,
    deflate) is undone by requests. Connection errors and timeouts surface
    as TransportError.
    """

    def __init__(self, config: BuyerConfig, store: SessionStore):
        self.config = config
        self.store = store
        self.logger = logging.getLogger(__name__)

        self.session = requests.Session()
        self.session.cookies = store.jar
        self.session.headers.update(dict(config.headers))
        self.timeout = config.request_timeout

    def request(self, method: str, url: str, params: Optional[Dict] = None,
                headers: Optional[Dict] = None, allow_redirects: bool = True) -> requests.Response:
        try:
            response = self.session.request(
                method,
                url,
                params=params,
                headers=headers,
                timeout=self.timeout,
                allow_redirects=allow_redirects,
            )
        except requests.RequestException as e:
            self.logger.error(f"{method} {url} failed: {e}")
            raise TransportError(f"{method} {url} failed: {e}") from e

        self.logger.debug(f"{method} {response.url} -> {response.status_code}")
        return response

    def get(self, url: str, params: Optional[Dict] = None, **kwargs) -> requests.Response:
        return self.request("GET", url, params=params, **kwargs)

    def post(self, url: str, params: Optional[Dict] = None, **kwargs) -> requests.Response:
        return self.request("POST", url, params=params, **kwargs)

    def close(self):
        self.session.close()
